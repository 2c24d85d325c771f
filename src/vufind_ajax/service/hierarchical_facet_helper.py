"""Turn flat hierarchical facet values into a display tree.

Solr returns hierarchical facets as flat values prefixed with their depth:

    0/Main/            → top level "Main"
    1/Main/Reference/  → "Reference" below "Main"

The helper sorts such lists, builds the nested structure the facet widgets
consume and applies include/exclude filters from the facet configuration.
"""

import re
from typing import Any, Dict, List, Optional, Sequence

from vufind_ajax.service.url_query_helper import UrlQueryHelper


def _level(value: str) -> int:
    head = value.split("/", 1)[0]
    return int(head) if head.isdigit() else 0


def _parts(value: str) -> List[str]:
    return [p for p in value.split("/")[1:] if p != ""]


def _parent_value(value: str) -> Optional[str]:
    level = _level(value)
    if level == 0:
        return None
    parts = _parts(value)
    return f"{level - 1}/" + "/".join(parts[:level]) + "/"


class HierarchicalFacetHelper:
    """Sort, build and filter hierarchical facet lists."""

    def sort_facet_list(
        self, facet_list: List[Dict[str, Any]], top_level_only: bool = True
    ) -> List[Dict[str, Any]]:
        """Sort facet entries alphabetically by display text.

        With top_level_only, only level 0 entries are sorted and deeper
        entries keep their incoming (count) order.

        The list is sorted in place and returned.
        """
        def key(indexed):
            index, item = indexed
            text = str(item.get("displayText", item.get("value", ""))).lower()
            if top_level_only and _level(str(item.get("value", ""))) > 0:
                return (1, index, "")
            return (0, 0, text)

        ordered = [item for _, item in sorted(enumerate(facet_list), key=key)]
        facet_list[:] = ordered
        return facet_list

    def build_facet_array(
        self,
        facet: str,
        facet_list: Sequence[Dict[str, Any]],
        url_helper: Optional[UrlQueryHelper] = None,
        escape: bool = True,
    ) -> List[Dict[str, Any]]:
        """Build the nested facet tree.

        Args:
            facet: Facet field name
            facet_list: Flat entries with value, displayText, count, isApplied
            url_helper: Builds the href that toggles each entry
            escape: HTML-escape display texts

        Returns:
            Top level nodes, each with a "children" list
        """
        nodes: Dict[str, Dict[str, Any]] = {}
        order: List[str] = []
        for item in facet_list:
            value = str(item.get("value", ""))
            parts = _parts(value)
            display = item.get("displayText") or (parts[-1] if parts else value)
            if escape:
                display = (
                    str(display)
                    .replace("&", "&amp;")
                    .replace("<", "&lt;")
                    .replace(">", "&gt;")
                    .replace('"', "&quot;")
                )
            applied = bool(item.get("isApplied", False))
            href = ""
            if url_helper is not None:
                href = (
                    url_helper.remove_facet(facet, value)
                    if applied
                    else url_helper.add_facet(facet, value)
                )
            nodes[value] = {
                "value": value,
                "displayText": display,
                "count": item.get("count", 0),
                "operator": item.get("operator", "AND"),
                "level": _level(value),
                "isApplied": applied,
                "hasAppliedChildren": False,
                "href": href,
                "children": [],
            }
            order.append(value)

        roots: List[Dict[str, Any]] = []
        for value in order:
            node = nodes[value]
            parent = nodes.get(_parent_value(value) or "")
            if parent is None:
                roots.append(node)
            else:
                parent["children"].append(node)

        for root in roots:
            self._mark_applied_children(root)
        return roots

    def _mark_applied_children(self, node: Dict[str, Any]) -> bool:
        found = False
        for child in node["children"]:
            if self._mark_applied_children(child) or child["isApplied"]:
                found = True
        node["hasAppliedChildren"] = found
        return found

    def filter_facets(
        self,
        facets: List[Dict[str, Any]],
        include: Sequence[str] = (),
        exclude: Sequence[str] = (),
    ) -> List[Dict[str, Any]]:
        """Apply include and exclude regex filters to a facet tree.

        A node survives when it matches an include pattern (or no include
        patterns are given) and matches no exclude pattern. A node that fails
        the include test is still kept if one of its descendants passes, and
        descendants of an included node only face the exclude test.
        """
        include_res = [re.compile(p) for p in include]
        exclude_res = [re.compile(p) for p in exclude]

        def keep(
            node: Dict[str, Any], parent_included: bool
        ) -> Optional[Dict[str, Any]]:
            value = node["value"]
            if any(r.match(value) for r in exclude_res):
                return None
            included = (
                parent_included
                or not include_res
                or any(r.match(value) for r in include_res)
            )
            children = [
                c for c in (keep(c, included) for c in node["children"]) if c
            ]
            if not included and not children:
                return None
            return dict(node, children=children)

        return [n for n in (keep(n, False) for n in facets) if n]
