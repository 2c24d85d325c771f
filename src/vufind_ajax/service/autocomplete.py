"""Search-box autocomplete backed by the Solr search service.

Suggestions are drawn from the display fields of records matching a
wildcarded version of the user's input. Exact matches (every query term
present) are preferred; when none exist the first value of each display
field is used instead.
"""

import logging
import re
from typing import Any, List, Mapping, Optional, Sequence

from vufind_ajax.exception.api_exceptions import SearchBackendError
from vufind_ajax.service.search_service import SearchService

logger = logging.getLogger(__name__)

FORBIDDEN_CHARS = (":", "(", ")", "*", "+", '"', "'")
DEFAULT_DISPLAY_FIELD = "title"
SUGGESTION_LIMIT = 10


def munge_query(query: str, wildcard: bool = True) -> str:
    """Strip query syntax characters and append a trailing wildcard.

    No wildcard is added when the input ends with a space.
    """
    for char in FORBIDDEN_CHARS:
        query = query.replace(char, " ")
    if wildcard and not query.endswith(" "):
        query += "*"
    return query


def match_query_terms(data: Any, query: str) -> bool:
    """True when every query term occurs in data, ignoring case."""
    haystack = str(data).lower()
    return all(term.lower() in haystack for term in re.split(r"\s+", query))


def pick_best_match(value: Any, query: str, exact: bool) -> Optional[Any]:
    if isinstance(value, list):
        if not value:
            return None
        for candidate in value:
            if match_query_terms(candidate, query):
                return candidate
        return None if exact else value[0]
    if not exact or match_query_terms(value, query):
        return value
    return None


class SolrAutocomplete:
    """Autocomplete module configured from "handler:displayFields:sort:filters...".

    Attributes:
        handler: Search type used for the suggestion search
        display_fields: Record fields suggestions are taken from
        sort_field: Raw sort applied to the suggestion search
        filters: field:value filters added to the suggestion search
    """

    def __init__(self, search_service: SearchService, config: str = ""):
        self.search_service = search_service
        parts = config.split(":") if config else []
        self.handler = parts[0] if parts and parts[0] else None
        self.display_fields = (
            parts[1].split(",")
            if len(parts) > 1 and parts[1]
            else [DEFAULT_DISPLAY_FIELD]
        )
        self.sort_field = parts[2] if len(parts) > 2 and parts[2] else None
        self.filters: List[str] = []
        for index in range(3, len(parts) - 1, 2):
            self.filters.append(f"{parts[index]}:{parts[index + 1]}")

    def add_filters(self, filters: Sequence[str]) -> None:
        self.filters.extend(filters)

    async def _search(self, query: str) -> List[Mapping[str, Any]]:
        request = {
            "lookfor": query,
            "type": self.handler or "AllFields",
            "filter": list(self.filters),
        }
        if self.sort_field:
            request["sort"] = self.sort_field
        results = await self.search_service.run(
            request, limit=SUGGESTION_LIMIT, facet_fields=[]
        )
        return [record.fields for record in results.records]

    def _suggestions_from(
        self, docs: List[Mapping[str, Any]], query: str, exact: bool
    ) -> List[Any]:
        suggestions = []
        for doc in docs:
            for field_name in self.display_fields:
                if field_name in doc:
                    best = pick_best_match(doc[field_name], query, exact)
                    if best:
                        suggestions.append(best)
                        break
        return suggestions

    async def get_suggestions(self, query: str) -> List[Any]:
        """Suggestions for query, unique and in result order; [] on backend failure."""
        try:
            munged = munge_query(query)
            docs = await self._search(munged)
            if not docs and munged.endswith("*"):
                docs = await self._search(munge_query(query, wildcard=False))

            suggestions = self._suggestions_from(docs, query, True)
            if not suggestions:
                suggestions = self._suggestions_from(docs, query, False)
        except SearchBackendError as e:
            logger.warning(f"Autocomplete search failed: {e.message}")
            return []

        unique: List[Any] = []
        for suggestion in suggestions:
            if suggestion not in unique:
                unique.append(suggestion)
        return unique


class AutocompleteManager:
    """Choose the autocomplete module for a search type."""

    def __init__(
        self,
        search_service: SearchService,
        types: Mapping[str, str],
        default: str = "Solr",
    ):
        self.search_service = search_service
        self.types = dict(types)
        self.default = default

    def get_module(self, search_type: str) -> SolrAutocomplete:
        config = self.types.get(search_type, self.default)
        module, _, rest = config.partition(":")
        if module != "Solr":
            logger.warning(f"Unknown autocomplete module {module}, using Solr")
        return SolrAutocomplete(self.search_service, rest or search_type)

    async def get_suggestions(
        self, query: str, search_type: str = "AllFields", filters: Sequence[str] = ()
    ) -> List[Any]:
        if not query:
            return []
        module = self.get_module(search_type)
        module.add_filters(filters)
        return await module.get_suggestions(query)
