"""Unit tests for search, facet and autocomplete handlers.

SearchService is exercised against a mocked Solr client; the handlers run
against a mocked SearchService returning real SearchResults.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from vufind_ajax.ajax_handler.params import Params
from vufind_ajax.ajax_handler.search import (
    GetACSuggestions,
    GetFacetData,
    GetSearchResults,
    GetSideFacets,
    GetVisData,
)
from vufind_ajax.config.app_settings import FacetsConfig
from vufind_ajax.exception.api_exceptions import SearchBackendError
from vufind_ajax.service.autocomplete import AutocompleteManager, munge_query
from vufind_ajax.service.hierarchical_facet_helper import HierarchicalFacetHelper
from vufind_ajax.service.search_service import SearchResults, SearchService
from vufind_ajax.service.url_query_helper import UrlQueryHelper

from tests.conftest import (
    make_record,
    make_record_loader,
    make_renderer,
    make_search_repo,
    make_user,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _results(facets=None, total=42, lookfor="dune", filters=None):
    return SearchResults(
        backend="Solr",
        records=[make_record("1")],
        total=total,
        page=2,
        limit=20,
        lookfor=lookfor,
        filters=list(filters or []),
        facets=facets or {},
        url_query=UrlQueryHelper(lookfor=lookfor, filters=list(filters or [])),
    )


def _search_service(results=None):
    service = MagicMock()
    service.run = AsyncMock(return_value=results or _results())
    service.work_keys_query = SearchService.work_keys_query
    return service


def _solr(docs=None, num_found=1, facet_fields=None):
    solr = MagicMock()
    solr.select = AsyncMock(
        return_value={
            "response": {"numFound": num_found, "docs": docs or []},
            "facet_counts": {"facet_fields": facet_fields or {}},
        }
    )
    return solr


# ---------------------------------------------------------------------------
# SearchService
# ---------------------------------------------------------------------------


class TestSearchService:
    """Tests for query building and result wrapping."""

    async def test_builds_solr_query(self) -> None:
        solr = _solr(docs=[{"id": "1", "title": "Dune"}])
        service = SearchService(solr, ["format"])

        results = await service.run(
            {
                "lookfor": "dune",
                "type": "Title",
                "filter": ['format:"Book"'],
                "page": "2",
            }
        )

        query = solr.select.await_args.args[0]
        assert query["q"] == "dune"
        assert query["qf"] == "title"
        assert query["fq"] == ['format:"Book"']
        assert query["start"] == 20
        assert query["facet.field"] == ["format"]
        assert results.records[0].title == "Dune"
        assert results.start_record == 21

    async def test_marks_applied_facets(self) -> None:
        solr = _solr(facet_fields={"format": [["Book", 3], ["Map", 1]]})
        service = SearchService(solr, ["format"])

        results = await service.run({"filter": 'format:"Book"'})

        entries = results.facets["format"]["list"]
        assert [e["isApplied"] for e in entries] == [True, False]

    async def test_unknown_backend(self) -> None:
        with pytest.raises(SearchBackendError):
            await SearchService(_solr()).run({}, "Summon")

    async def test_count_versions(self) -> None:
        solr = _solr(num_found=4)
        record = make_record("1", fields={"work_keys_str_mv": ["wk1"]})

        assert await SearchService(solr).count_versions(record) == 4
        assert await SearchService(solr).count_versions(make_record("2")) == 0

    def test_results_paging(self) -> None:
        results = _results(total=45)

        assert results.end_record == 40
        assert results.last_page == 3
        assert results.minified()["lookfor"] == "dune"


# ---------------------------------------------------------------------------
# getSearchResults
# ---------------------------------------------------------------------------


def _search_handler(service=None, translator=None, loader=None, user=None):
    repo = make_search_repo()
    handler = GetSearchResults(
        None,
        service or _search_service(),
        make_renderer(),
        loader or make_record_loader(),
        user,
        "01HSESSION",
        repo,
        translator,
    )
    return handler, repo


class TestGetSearchResults:
    """Tests for rendered result list fragments."""

    async def test_renders_elements_and_saves_history(self) -> None:
        handler, repo = _search_handler(user=make_user())

        (payload,) = await handler.handle_request(
            Params({"querystring": "lookfor=dune&page=2"})
        )

        elements = payload["elements"]
        assert elements[".js-record-list"] == {
            "html": "<search/results-list>",
            "target": "outer",
            "attrs": {},
        }
        assert elements[".js-pagination-simple"]["html"] == (
            "<search/pagination_simple>"
        )
        assert ".js-search-stats" not in elements
        repo.save.assert_awaited_once()
        assert repo.save.await_args.args[:3] == ("01HSESSION", 7, "Solr")

    async def test_query_string_is_decoded(self) -> None:
        service = _search_service()
        handler, _ = _search_handler(service)

        await handler.handle_request(
            Params({"querystring": "lookfor=dune&filter[]=format%3ABook"})
        )

        request = service.run.await_args.args[0]
        assert request == {"lookfor": "dune", "filter": ["format:Book"]}

    async def test_search_stats(self, translator) -> None:
        handler, _ = _search_handler(translator=translator)

        (payload,) = await handler.handle_request(
            Params({"querystring": "lookfor=dune", "statsKey": "stats_key"})
        )

        stats = payload["elements"][".js-search-stats"]
        assert stats["html"] == "Showing 21 - 40 of 42 for dune"
        assert stats["target"] == "inner"
        assert stats["attrs"] == {"aria-live": "polite"}

    async def test_unknown_backend(self) -> None:
        handler, _ = _search_handler()

        response = await handler.handle_request(Params({"source": "Summon"}))

        assert response == ({"error": "Invalid request"}, 400)

    async def test_versions_search_uses_work_keys(self) -> None:
        service = _search_service()
        loader = make_record_loader(
            make_record("1", fields={"work_keys_str_mv": ["wk1", "wk2"]})
        )
        handler, repo = _search_handler(service, loader=loader)

        await handler.handle_request(
            Params({"querystring": "id=1", "searchType": "versions"})
        )

        request = service.run.await_args.args[0]
        assert request["lookfor"] == '"wk1" OR "wk2"'
        assert request["type"] == "WorkKeys"
        repo.save.assert_not_awaited()

    async def test_versions_search_without_keys(self) -> None:
        handler, _ = _search_handler()

        response = await handler.handle_request(
            Params({"querystring": "", "searchType": "versions"})
        )

        assert response[1] == 400


# ---------------------------------------------------------------------------
# Facets
# ---------------------------------------------------------------------------


def _side_facets(results=None, facets_config=None):
    service = _search_service(results)
    renderer = make_renderer()
    handler = GetSideFacets(
        None,
        service,
        HierarchicalFacetHelper(),
        facets_config or FacetsConfig(),
        renderer,
    )
    return handler, service, renderer


class TestGetSideFacets:
    """Tests for side facet rendering."""

    async def test_renders_all_side_facets(self) -> None:
        handler, service, _ = _side_facets()

        response = await handler.handle_request(Params({"lookfor": "dune"}))

        assert response == ({"html": "<Recommend/SideFacets>"},)
        kwargs = service.run.await_args.kwargs
        assert kwargs["limit"] == 0
        assert kwargs["facet_limit"] == -1

    async def test_enabled_facets(self) -> None:
        facets = {
            "building": {
                "list": [
                    {"value": "0/Main/", "displayText": "Main", "count": 2},
                    {"value": "1/Main/Ref/", "displayText": "Ref", "count": 1},
                ]
            },
            "format": {"list": []},
        }
        handler, _, _ = _side_facets(_results(facets=facets))

        (payload,) = await handler.handle_request(
            Params.from_pairs(
                [
                    ("enabledFacets[]", "building"),
                    ("enabledFacets[]", "format"),
                    ("enabledFacets[]", "onlineOnly:true"),
                ]
            )
        )

        result = payload["facets"]
        assert result["onlineOnly:true"] == {"checkboxCount": None}
        assert result["format"] == {"html": "<Recommend/SideFacets/facet>"}
        tree = result["building"]["list"]
        assert tree[0]["displayText"] == "Main"
        assert tree[0]["children"][0]["displayText"] == "Ref"

    async def test_invalid_recommendation_config(self) -> None:
        handler, _, _ = _side_facets()

        response = await handler.handle_request(Params({"configIndex": "5"}))

        assert response == ("Invalid config requested", 400)

    async def test_backend_failure(self) -> None:
        handler, service, _ = _side_facets()
        service.run.side_effect = SearchBackendError("down")

        response = await handler.handle_request(Params())

        assert response == ("", 500)

    async def test_extra_fields_become_default_parameters(self) -> None:
        results = _results()
        handler, _, _ = _side_facets(results)

        await handler.handle_request(
            Params({"extraFields": "view", "view": "grid", "querySuppressed": "1"})
        )

        assert results.url_query.defaults == {"view": "grid"}
        assert results.url_query.suppress_query is True


class TestGetFacetData:
    """Tests for the hierarchical facet tree lookup."""

    async def test_builds_tree_with_operator(self) -> None:
        facets = {
            "building": {
                "list": [
                    {"value": "0/B/", "displayText": "B", "count": 1},
                    {"value": "0/A/", "displayText": "A", "count": 5},
                ]
            }
        }
        handler = GetFacetData(
            None,
            _search_service(_results(facets=facets)),
            HierarchicalFacetHelper(),
            FacetsConfig(),
        )

        (payload,) = await handler.handle_request(
            Params({"facetName": "building", "facetSort": "top", "facetOperator": "OR"})
        )

        tree = payload["facets"]
        assert [node["displayText"] for node in tree] == ["A", "B"]
        assert tree[0]["operator"] == "OR"
        assert tree[0]["href"].startswith("/Search/Results?")

    async def test_missing_facet_name(self) -> None:
        handler = GetFacetData(
            None, _search_service(), HierarchicalFacetHelper(), FacetsConfig()
        )

        response = await handler.handle_request(Params())

        assert response[1] == 400


class TestGetVisData:
    """Tests for date range histograms."""

    async def test_histogram_and_range(self) -> None:
        facets = {
            "publishDate": {
                "list": [
                    {"value": "1999", "count": 2},
                    {"value": "n.d.", "count": 9},
                    {"value": "2001", "count": 1},
                ]
            }
        }
        service = _search_service(
            _results(facets=facets, filters=['publishDate:"[1990 TO 2005]"'])
        )
        handler = GetVisData(None, service, FacetsConfig())

        (payload,) = await handler.handle_request(
            Params.from_pairs(
                [
                    ("filter[]", 'publishDate:"[1990 TO 2005]"'),
                    ("hiddenFilters[]", "building:Main"),
                ]
            )
        )

        data = payload["publishDate"]
        assert data["data"] == [[1999, 2], [2001, 1]]
        assert data["min"] == 1990
        assert data["max"] == 2005
        assert "publishDate" not in data["removalURL"]
        request = service.run.await_args.args[0]
        assert request["filter"] == ['publishDate:"[1990 TO 2005]"', "building:Main"]

    def test_parse_range_without_filter(self) -> None:
        assert GetVisData.parse_range([], "publishDate") == ["", ""]

    async def test_no_fields(self) -> None:
        handler = GetVisData(
            None, _search_service(), FacetsConfig(date_range_vis="")
        )

        assert await handler.handle_request(Params()) == ([], 400)


# ---------------------------------------------------------------------------
# Autocomplete
# ---------------------------------------------------------------------------


class TestAutocomplete:
    """Tests for search-box suggestions."""

    def test_munge_query(self) -> None:
        assert munge_query("du(ne") == "du ne*"
        assert munge_query("dune ") == "dune "
        assert munge_query("dun") == "dun*"

    async def test_prefers_matching_values(self) -> None:
        docs = [
            {"id": "1", "title": ["Dune Messiah"]},
            {"id": "2", "title": ["Dune"]},
            {"id": "3", "title": "Dune"},
        ]
        manager = AutocompleteManager(
            SearchService(_solr(docs=docs)), {"AllFields": "Solr"}
        )

        assert await manager.get_suggestions("dune") == ["Dune Messiah", "Dune"]

    async def test_empty_query(self) -> None:
        manager = AutocompleteManager(MagicMock(), {})

        assert await manager.get_suggestions("") == []

    async def test_handler_passes_hidden_filters(self) -> None:
        autocomplete = MagicMock()
        autocomplete.get_suggestions = AsyncMock(return_value=["Dune"])
        handler = GetACSuggestions(None, autocomplete)

        response = await handler.handle_request(
            Params.from_pairs(
                [("q", "du"), ("type", "Title"), ("hiddenFilters[]", "a:b")]
            )
        )

        assert response == ({"suggestions": ["Dune"]},)
        autocomplete.get_suggestions.assert_awaited_once_with("du", "Title", ["a:b"])
