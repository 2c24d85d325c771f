"""Run catalog searches against the search backend.

SearchService turns a request parameter bag (lookfor, type, filter[], page,
limit, sort) into a Solr query and wraps the answer in SearchResults, the
object the search and facet handlers render from.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from vufind_ajax.constants import DEFAULT_SEARCH_BACKEND
from vufind_ajax.exception.api_exceptions import SearchBackendError
from vufind_ajax.infrastructure.search.solr_client import SolrClient
from vufind_ajax.service.record_loader import Record
from vufind_ajax.service.url_query_helper import UrlQueryHelper

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20
WORK_KEYS_SEARCH_TYPE = "WorkKeys"

SEARCH_TYPE_FIELDS = {
    "Title": "title",
    "Author": "author",
    "Subject": "topic",
    "ISN": "isbn issn",
    WORK_KEYS_SEARCH_TYPE: "work_keys_str_mv",
}

SORT_OPTIONS = {
    "year": "publishDate desc",
    "year asc": "publishDate asc",
    "title": "title_sort asc",
    "author": "author_sort asc",
}


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass
class SearchResults:
    """Outcome of one search.

    Attributes:
        backend: Search backend name
        records: Records on the requested page
        total: Total number of matches
        page: 1-based page number
        limit: Page size
        facets: Field → {"label", "list"} where list entries carry value,
            displayText, count, isApplied and operator
        url_query: Link builder bound to this search
    """

    backend: str
    records: List[Record]
    total: int
    page: int
    limit: int
    lookfor: str = ""
    search_type: str = "AllFields"
    filters: List[str] = field(default_factory=list)
    facets: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    url_query: UrlQueryHelper = field(default_factory=UrlQueryHelper)

    @property
    def start_record(self) -> int:
        if self.total == 0:
            return 0
        return (self.page - 1) * self.limit + 1

    @property
    def end_record(self) -> int:
        if self.limit == 0:
            return 0
        return min(self.page * self.limit, self.total)

    @property
    def last_page(self) -> int:
        if self.limit <= 0:
            return 1
        return max(1, math.ceil(self.total / self.limit))

    @property
    def query_suppressed(self) -> bool:
        return self.url_query.suppress_query

    def display_query(self) -> str:
        return self.lookfor

    def minified(self) -> Dict[str, Any]:
        """Parameters needed to replay this search from history."""
        return {
            "lookfor": self.lookfor,
            "type": self.search_type,
            "filter": list(self.filters),
            "page": self.page,
            "limit": self.limit,
        }


class SearchService:
    """Search runner for the Solr backend.

    Attributes:
        solr: Solr client
        facet_fields: Facet fields requested by default
    """

    def __init__(self, solr: SolrClient, facet_fields: Optional[Sequence[str]] = None):
        self.solr = solr
        self.facet_fields = list(facet_fields or [])

    def _build_params(
        self,
        request: Mapping[str, Any],
        limit: int,
        page: int,
        facet_fields: Sequence[str],
        facet_limit: int,
    ) -> Dict[str, Any]:
        lookfor = str(request.get("lookfor", "") or "").strip()
        search_type = str(request.get("type", "AllFields") or "AllFields")
        params: Dict[str, Any] = {
            "q": lookfor or "*:*",
            "rows": limit,
            "start": (page - 1) * limit,
        }
        if lookfor:
            params["defType"] = "edismax"
            if search_type in SEARCH_TYPE_FIELDS:
                params["qf"] = SEARCH_TYPE_FIELDS[search_type]
        filters = _as_list(request.get("filter"))
        if filters:
            params["fq"] = filters
        sort = str(request.get("sort", "") or "")
        sort = SORT_OPTIONS.get(sort, sort if " " in sort else None)
        if sort:
            params["sort"] = sort
        if facet_fields:
            params["facet"] = "true"
            params["facet.field"] = list(facet_fields)
            params["facet.limit"] = facet_limit
            params["facet.mincount"] = 1
            params["json.nl"] = "arrarr"
        return params

    async def run(
        self,
        request: Mapping[str, Any],
        backend: str = DEFAULT_SEARCH_BACKEND,
        limit: Optional[int] = None,
        facet_fields: Optional[Sequence[str]] = None,
        facet_limit: int = 30,
    ) -> SearchResults:
        """Run a search described by request parameters.

        Args:
            request: lookfor, type, filter, page, limit and sort values
            backend: Search backend name; only Solr is available
            limit: Page size override (0 for facet-only searches)
            facet_fields: Facet fields to retrieve (defaults to the configured ones)
            facet_limit: Maximum values per facet field, -1 for all

        Returns:
            SearchResults

        Raises:
            SearchBackendError: For an unsupported backend or a failed search
        """
        if backend != DEFAULT_SEARCH_BACKEND:
            raise SearchBackendError(f"Unsupported search backend: {backend}")

        page = max(1, _as_int(request.get("page"), 1))
        if limit is None:
            limit = max(0, _as_int(request.get("limit"), DEFAULT_LIMIT))
        fields = self.facet_fields if facet_fields is None else list(facet_fields)

        url_query = UrlQueryHelper.from_request(request)
        data = await self.solr.select(
            self._build_params(request, limit, page, fields, facet_limit)
        )

        response = data.get("response", {})
        records = [
            Record(id=str(doc.get("id", "")), source=backend, fields=doc)
            for doc in response.get("docs", [])
        ]

        facets: Dict[str, Dict[str, Any]] = {}
        raw_facets = data.get("facet_counts", {}).get("facet_fields", {})
        for field_name in fields:
            entries = []
            for value, count in raw_facets.get(field_name, []):
                entries.append(
                    {
                        "value": value,
                        "displayText": value,
                        "count": count,
                        "operator": "AND",
                        "isApplied": url_query.is_filter_applied(field_name, value),
                    }
                )
            facets[field_name] = {"label": field_name, "list": entries}

        logger.debug(f"Search returned {response.get('numFound', 0)} results")
        return SearchResults(
            backend=backend,
            records=records,
            total=int(response.get("numFound", 0)),
            page=page,
            limit=limit,
            lookfor=url_query.lookfor,
            search_type=url_query.search_type,
            filters=url_query.filters,
            facets=facets,
            url_query=url_query,
        )

    @staticmethod
    def work_keys_query(keys: Sequence[str]) -> str:
        return " OR ".join('"' + k.replace('"', '\\"') + '"' for k in keys)

    async def count_versions(self, record: Record) -> int:
        """Number of other records sharing a work key with record."""
        if not record.work_keys:
            return 0
        data = await self.solr.select(
            {
                "q": f"work_keys_str_mv:({self.work_keys_query(record.work_keys)})",
                "fq": f'-id:"{record.id}"',
                "rows": 0,
            }
        )
        return int(data.get("response", {}).get("numFound", 0))
