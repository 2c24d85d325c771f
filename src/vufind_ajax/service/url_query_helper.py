"""Build search URLs that add or remove filters from the current search."""

from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urlencode


class UrlQueryHelper:
    """Query-string builder bound to the parameters of one search.

    Attributes:
        base_path: Path the generated links point at
        suppress_query: Omit the lookfor/type pair from generated links
    """

    def __init__(
        self,
        lookfor: str = "",
        search_type: str = "AllFields",
        filters: Optional[List[str]] = None,
        base_path: str = "/Search/Results",
    ):
        self.lookfor = lookfor
        self.search_type = search_type
        self.filters = list(filters or [])
        self.base_path = base_path
        self.suppress_query = False
        self.defaults: Dict[str, Any] = {}

    def set_suppress_query(self, suppress: bool) -> None:
        self.suppress_query = suppress

    def set_default_parameter(self, name: str, value: Any) -> None:
        self.defaults[name] = value

    @staticmethod
    def filter_string(field: str, value: str) -> str:
        return f'{field}:"{value}"'

    def is_filter_applied(self, field: str, value: str) -> bool:
        return self.filter_string(field, value) in self.filters

    def _build(self, filters: List[str]) -> str:
        params: List[tuple] = []
        if not self.suppress_query and self.lookfor:
            params.append(("lookfor", self.lookfor))
            params.append(("type", self.search_type))
        for name, value in self.defaults.items():
            params.append((name, value))
        for current in filters:
            params.append(("filter[]", current))
        query = urlencode(params)
        return f"{self.base_path}?{query}" if query else self.base_path

    def get_params(self) -> str:
        return self._build(self.filters)

    def add_facet(self, field: str, value: str) -> str:
        """Link to the current search with one more filter applied."""
        new_filter = self.filter_string(field, value)
        filters = [f for f in self.filters if f != new_filter] + [new_filter]
        return self._build(filters)

    def remove_facet(self, field: str, value: str) -> str:
        target = self.filter_string(field, value)
        return self._build([f for f in self.filters if f != target])

    def remove_field(self, field: str) -> str:
        """Link to the current search without any filter on field."""
        prefix = f"{field}:"
        return self._build([f for f in self.filters if not f.startswith(prefix)])

    @classmethod
    def from_request(
        cls, request: Mapping[str, Any], base_path: str = "/Search/Results"
    ) -> "UrlQueryHelper":
        filters = request.get("filter", [])
        if isinstance(filters, str):
            filters = [filters]
        return cls(
            lookfor=str(request.get("lookfor", "") or ""),
            search_type=str(request.get("type", "AllFields") or "AllFields"),
            filters=filters,
            base_path=base_path,
        )
