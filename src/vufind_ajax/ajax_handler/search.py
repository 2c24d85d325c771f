"""Search, facet and autocomplete handlers."""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence
from urllib.parse import parse_qsl

from markupsafe import escape

from vufind_ajax.ajax_handler.base import AbstractBase, ResponseTuple
from vufind_ajax.ajax_handler.params import Params, parse_pairs
from vufind_ajax.config.app_settings import FacetsConfig
from vufind_ajax.constants import DEFAULT_SEARCH_BACKEND
from vufind_ajax.exception.api_exceptions import (
    RecordMissingError,
    SearchBackendError,
)
from vufind_ajax.infrastructure.i18n.translator import Translator
from vufind_ajax.infrastructure.persistence.postgresql.models import User
from vufind_ajax.infrastructure.rendering.renderer import TemplateRenderer
from vufind_ajax.repository.search_repository import SearchRepository
from vufind_ajax.service.autocomplete import AutocompleteManager
from vufind_ajax.service.hierarchical_facet_helper import HierarchicalFacetHelper
from vufind_ajax.service.record_loader import RecordLoader
from vufind_ajax.service.search_service import (
    WORK_KEYS_SEARCH_TYPE,
    SearchResults,
    SearchService,
)
from vufind_ajax.service.session_settings import SessionSettings
from vufind_ajax.service.url_query_helper import UrlQueryHelper

logger = logging.getLogger(__name__)

SIDE_FACETS_MODULES = ("SideFacets", "SideFacetsDeferred")


def hierarchical_facet_data(
    helper: HierarchicalFacetHelper,
    facets_config: FacetsConfig,
    facet: str,
    facet_list: List[Dict[str, Any]],
    url_helper: UrlQueryHelper,
    sort: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Facet tree for one hierarchical field, sorted and filtered as configured.

    Args:
        sort: "top" sorts the first level only, "all" sorts every level,
            None falls back to the configured sort for the field
    """
    sort = sort or facets_config.hierarchical_sort.get(facet)
    if sort:
        helper.sort_facet_list(facet_list, sort == "top")

    tree = helper.build_facet_array(facet, facet_list, url_helper, False)

    include = facets_config.facet_filters.get(facet) or []
    exclude = facets_config.exclude_filters.get(facet) or []
    if include or exclude:
        tree = helper.filter_facets(tree, include, exclude)
    return tree


class GetSearchResults(AbstractBase):
    """Render a page of search results for in-place result list updates.

    Each entry of ELEMENTS names a page element selector, the renderer
    method producing its HTML and how the client replaces it.
    """

    ELEMENTS = {
        ".js-record-list": {"method": "render_results", "target": "outer"},
        ".js-pagination": {"method": "render_pagination", "target": "outer"},
        ".js-pagination-simple": {
            "method": "render_pagination_simple",
            "target": "outer",
        },
        ".js-search-stats": {
            "method": "render_search_stats",
            "target": "inner",
            "attrs": {"aria-live": "polite"},
        },
    }

    def __init__(
        self,
        session_settings: SessionSettings,
        search_service: SearchService,
        renderer: TemplateRenderer,
        record_loader: RecordLoader,
        user: Optional[User],
        session_id: Optional[str],
        search_repo: SearchRepository,
        translator: Optional[Translator] = None,
    ):
        self.session_settings = session_settings
        self.search_service = search_service
        self.renderer = renderer
        self.record_loader = record_loader
        self.user = user
        self.session_id = session_id
        self.search_repo = search_repo
        self.translator = translator

    async def handle_request(self, params: Params) -> ResponseTuple:
        results = await self.get_search_results(params)
        if results is None:
            return self.format_response(
                {"error": "Invalid request"}, self.STATUS_HTTP_BAD_REQUEST
            )
        elements = await self.get_elements(params, results)
        return self.format_response({"elements": elements})

    async def work_keys_for(
        self, search_params: Mapping[str, Any], backend: str
    ) -> List[str]:
        """Work keys from an explicit keys parameter or from the record id."""
        keys = search_params.get("keys")
        if keys:
            return [keys] if isinstance(keys, str) else list(keys)
        record_id = search_params.get("id")
        if not record_id:
            return []
        try:
            record = await self.record_loader.load(str(record_id), backend)
        except RecordMissingError:
            return []
        return record.work_keys

    async def get_search_results(self, params: Params) -> Optional[SearchResults]:
        search_params = parse_pairs(parse_qsl(params.from_query("querystring", "")))
        backend = params.from_query("source", DEFAULT_SEARCH_BACKEND)
        search_type = params.from_query("searchType", "")
        if backend != DEFAULT_SEARCH_BACKEND:
            logger.warning(f"Search results requested for unknown backend {backend}")
            return None

        if search_type == "versions":
            keys = await self.work_keys_for(search_params, backend)
            if not keys:
                return None
            search_params["lookfor"] = self.search_service.work_keys_query(keys)
            search_params["type"] = WORK_KEYS_SEARCH_TYPE

        results = await self.search_service.run(search_params, backend)

        if search_type != "versions":
            await self.save_search_to_history(results)
        return results

    async def get_elements(
        self, params: Params, results: SearchResults
    ) -> Dict[str, Dict[str, Any]]:
        elements = {}
        for selector, element in self.ELEMENTS.items():
            render: Callable = getattr(self, element["method"])
            html = await render(params, results)
            if html is not None:
                elements[selector] = {
                    "html": html,
                    "target": element["target"],
                    "attrs": element.get("attrs", {}),
                }
        return elements

    async def render_results(self, params: Params, results: SearchResults) -> str:
        return await self.renderer.render(
            "search/results-list",
            {
                "results": results,
                "showBulkOptions": False,
                "showCartControls": False,
                "showCheckboxes": False,
            },
        )

    async def render_pagination(
        self,
        params: Params,
        results: SearchResults,
        template: str = "search/pagination",
    ) -> str:
        return await self.renderer.render(
            template, {"results": results, "options": {}}
        )

    async def render_pagination_simple(
        self, params: Params, results: SearchResults
    ) -> str:
        return await self.render_pagination(
            params, results, "search/pagination_simple"
        )

    async def render_search_stats(
        self, params: Params, results: SearchResults
    ) -> Optional[str]:
        stats_key = params.from_query("statsKey")
        if not stats_key:
            return None
        lookfor = "" if results.query_suppressed else results.display_query()
        number = self.renderer.localized_number
        return self.translate(
            stats_key,
            {
                "%%start%%": number(results.start_record),
                "%%end%%": number(results.end_record),
                "%%total%%": number(results.total),
                "%%lookfor%%": str(escape(lookfor)),
            },
        )

    async def save_search_to_history(self, results: SearchResults) -> None:
        await self.search_repo.save(
            self.session_id,
            self.user.id if self.user is not None else None,
            results.backend,
            results.minified(),
        )


class GetSideFacets(AbstractBase):
    """Side facets of a search, rendered whole or per facet."""

    def __init__(
        self,
        session_settings: SessionSettings,
        search_service: SearchService,
        facet_helper: HierarchicalFacetHelper,
        facets_config: FacetsConfig,
        renderer: TemplateRenderer,
    ):
        self.session_settings = session_settings
        self.search_service = search_service
        self.facet_helper = facet_helper
        self.facets_config = facets_config
        self.renderer = renderer

    def recommend_settings(self, location: str, index: Any) -> Optional[List[str]]:
        """Colon-separated recommendation settings for a location, when they
        configure side facets."""
        try:
            raw = self.facets_config.recommend.get(location, [])[int(index)]
        except (IndexError, TypeError, ValueError):
            return None
        settings = raw.split(":")
        if settings[0] not in SIDE_FACETS_MODULES:
            return None
        return settings

    async def handle_request(self, params: Params) -> ResponseTuple:
        self.disable_session_writes()

        request = params.all()
        config_index = request.get("configIndex", 0)
        location = request.get("location", "side")
        backend = request.get("searchClassId", DEFAULT_SEARCH_BACKEND)

        try:
            results = await self.search_service.run(
                request,
                backend,
                limit=0,
                facet_fields=self.facets_config.side,
                facet_limit=-1,
            )
        except SearchBackendError as e:
            logger.error(f"Faceting request failed: {e.message}", exc_info=True)
            return self.format_response("", self.STATUS_HTTP_ERROR)

        query_helper = results.url_query
        query_helper.set_suppress_query(bool(request.get("querySuppressed")))
        extra_fields = [f for f in str(request.get("extraFields", "")).split(",") if f]
        for extra in extra_fields:
            if extra in request:
                query_helper.set_default_parameter(extra, request[extra])

        if self.recommend_settings(location, config_index) is None:
            return self.format_response(
                "Invalid config requested", self.STATUS_HTTP_BAD_REQUEST
            )

        context = {
            "results": results,
            "facetSet": results.facets,
            "hierarchicalFacets": self.facets_config.hierarchical,
            "searchClassId": backend,
        }
        enabled = request.get("enabledFacets")
        if enabled is not None:
            if isinstance(enabled, str):
                enabled = [enabled]
            facets = await self.format_facets(context, enabled, results)
            return self.format_response({"facets": facets})

        html = await self.renderer.render("Recommend/SideFacets", context)
        return self.format_response({"html": html})

    async def format_facets(
        self,
        context: Dict[str, Any],
        facets: Sequence[str],
        results: SearchResults,
    ) -> Dict[str, Dict[str, Any]]:
        response: Dict[str, Dict[str, Any]] = {}
        for facet in facets:
            if facet.find(":") > 0:
                # No counts are available for checkbox filters
                response[facet] = {"checkboxCount": None}
            elif facet in self.facets_config.hierarchical:
                facet_list = results.facets.get(facet, {}).get("list", [])
                response[facet] = {
                    "list": hierarchical_facet_data(
                        self.facet_helper,
                        self.facets_config,
                        facet,
                        facet_list,
                        results.url_query,
                    )
                }
            else:
                facet_context = dict(
                    context,
                    facet=facet,
                    cluster=results.facets.get(facet, {}),
                    collapsedFacets=[],
                )
                response[facet] = {
                    "html": await self.renderer.render(
                        "Recommend/SideFacets/facet", facet_context
                    )
                }
        return response


class GetFacetData(AbstractBase):
    """Full hierarchical facet tree for a single field."""

    def __init__(
        self,
        session_settings: SessionSettings,
        search_service: SearchService,
        facet_helper: HierarchicalFacetHelper,
        facets_config: FacetsConfig,
    ):
        self.session_settings = session_settings
        self.search_service = search_service
        self.facet_helper = facet_helper
        self.facets_config = facets_config

    async def handle_request(self, params: Params) -> ResponseTuple:
        self.disable_session_writes()

        facet = params.from_query("facetName")
        if not facet:
            return self.format_response(
                "Missing parameter 'facetName'", self.STATUS_HTTP_BAD_REQUEST
            )
        sort = params.from_query("facetSort")
        operator = params.from_query("facetOperator")
        backend = params.from_query("source", DEFAULT_SEARCH_BACKEND)

        results = await self.search_service.run(
            params.from_query(),
            backend,
            limit=0,
            facet_fields=[facet],
            facet_limit=-1,
        )
        facet_list = results.facets.get(facet, {}).get("list", [])
        if operator:
            for entry in facet_list:
                entry["operator"] = operator

        facets = hierarchical_facet_data(
            self.facet_helper,
            self.facets_config,
            facet,
            facet_list,
            results.url_query,
            sort,
        )
        return self.format_response({"facets": facets})


class GetVisData(AbstractBase):
    """Year histograms for the date range visualisation.

    facetFields is a colon-separated list of date facet fields; it defaults
    to the facet field of the configured date range visualisation.
    """

    def __init__(
        self,
        session_settings: SessionSettings,
        search_service: SearchService,
        facets_config: FacetsConfig,
    ):
        self.session_settings = session_settings
        self.search_service = search_service
        self.facets_config = facets_config

    def date_fields(self, params: Params) -> List[str]:
        raw = params.from_query("facetFields")
        if not raw and self.facets_config.date_range_vis:
            raw = self.facets_config.date_range_vis.split(":")[-1]
        return [f for f in str(raw or "").split(":") if f]

    @staticmethod
    def parse_range(filters: Sequence[str], field: str) -> List[Any]:
        """[from, to] of an applied range filter on field, else ['', '']."""
        prefix = f"{field}:"
        for current in filters:
            if not current.startswith(prefix):
                continue
            value = current[len(prefix):].strip('"')
            if value.startswith("[") and value.endswith("]") and " TO " in value:
                low, high = value[1:-1].split(" TO ", 1)
                return [low.strip(), high.strip()]
        return ["", ""]

    async def handle_request(self, params: Params) -> ResponseTuple:
        self.disable_session_writes()

        fields = self.date_fields(params)
        if not fields:
            return self.format_response([], self.STATUS_HTTP_BAD_REQUEST)

        request = params.from_query()
        hidden = request.pop("hiddenFilters", [])
        if isinstance(hidden, str):
            hidden = [hidden]
        filters = request.get("filter", [])
        if isinstance(filters, str):
            filters = [filters]
        request["filter"] = list(filters) + list(hidden)

        results = await self.search_service.run(
            request,
            DEFAULT_SEARCH_BACKEND,
            limit=0,
            facet_fields=fields,
            facet_limit=-1,
        )

        data: Dict[str, Dict[str, Any]] = {}
        for field in fields:
            values = []
            for entry in results.facets.get(field, {}).get("list", []):
                value = str(entry["value"])
                if value.lstrip("-").isdigit():
                    values.append([int(value), entry["count"]])
            low, high = self.parse_range(filters, field)
            data[field] = {
                "data": values,
                "min": _positive_or_zero(low),
                "max": _positive_or_zero(high),
                "removalURL": results.url_query.remove_field(field),
            }
        return self.format_response(data)


def _positive_or_zero(value: Any) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return 0
    return number if number > 0 else 0


class GetACSuggestions(AbstractBase):
    """Autocomplete suggestions for the search box."""

    def __init__(
        self, session_settings: SessionSettings, autocomplete: AutocompleteManager
    ):
        self.session_settings = session_settings
        self.autocomplete = autocomplete

    async def handle_request(self, params: Params) -> ResponseTuple:
        self.disable_session_writes()
        query = params.from_query("lookfor", params.from_query("q", ""))
        search_type = params.from_query("type", "AllFields")
        hidden = params.from_query("hiddenFilters", [])
        if isinstance(hidden, str):
            hidden = [hidden]
        suggestions = await self.autocomplete.get_suggestions(
            str(query), search_type, hidden
        )
        return self.format_response({"suggestions": suggestions})
