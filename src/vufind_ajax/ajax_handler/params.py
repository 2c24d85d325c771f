"""Request parameter bag handed to AJAX handlers.

Query and form values are decoded the way browser form serialization sends
them:

    id[]=a&id[]=b          → {"id": ["a", "b"]}
    id=a&id=b              → {"id": ["a", "b"]}
    params[listId]=3       → {"params": {"listId": "3"}}
    params[ids][]=x        → {"params": {"ids": ["x"]}}
"""

import re
from typing import Any, Dict, Iterable, Optional, Tuple

_NESTED_KEY = re.compile(r"^([^\[\]]+)\[([^\[\]]*)\](\[\])?$")


def _add_value(target: Dict[str, Any], key: str, value: Any, force_list: bool) -> None:
    if force_list:
        current = target.get(key)
        if isinstance(current, list):
            current.append(value)
        elif current is None:
            target[key] = [value]
        else:
            target[key] = [current, value]
        return

    if key in target:
        current = target[key]
        if isinstance(current, list):
            current.append(value)
        else:
            target[key] = [current, value]
    else:
        target[key] = value


def parse_pairs(pairs: Iterable[Tuple[str, Any]]) -> Dict[str, Any]:
    """Decode key/value pairs into nested dicts and lists."""
    result: Dict[str, Any] = {}
    for raw_key, value in pairs:
        match = _NESTED_KEY.match(raw_key)
        if match is None:
            _add_value(result, raw_key, value, force_list=False)
            continue

        name, inner, trailing_list = match.groups()
        if inner == "":
            _add_value(result, name, value, force_list=True)
            continue

        nested = result.get(name)
        if not isinstance(nested, dict):
            nested = {}
            result[name] = nested
        _add_value(nested, inner, value, force_list=bool(trailing_list))
    return result


class Params:
    """Query and form parameters of one AJAX request."""

    def __init__(
        self,
        query: Optional[Dict[str, Any]] = None,
        post: Optional[Dict[str, Any]] = None,
    ):
        self._query = dict(query or {})
        self._post = dict(post or {})

    @classmethod
    def from_pairs(
        cls,
        query_pairs: Iterable[Tuple[str, Any]] = (),
        post_pairs: Iterable[Tuple[str, Any]] = (),
    ) -> "Params":
        return cls(parse_pairs(query_pairs), parse_pairs(post_pairs))

    def from_query(self, name: Optional[str] = None, default: Any = None) -> Any:
        """A query value, or every query value when name is None."""
        if name is None:
            return dict(self._query)
        return self._query.get(name, default)

    def from_post(self, name: Optional[str] = None, default: Any = None) -> Any:
        """A form value, or every form value when name is None."""
        if name is None:
            return dict(self._post)
        return self._post.get(name, default)

    def from_either(self, name: str, default: Any = None) -> Any:
        """Form value if present, else query value."""
        if name in self._post:
            return self._post[name]
        return self._query.get(name, default)

    def all(self) -> Dict[str, Any]:
        """Query values merged with form values; query wins on conflicts."""
        merged = dict(self._post)
        merged.update(self._query)
        return merged
