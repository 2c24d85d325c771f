"""Holdings display rules."""

from typing import FrozenSet, Iterable


class HoldLogic:
    """Holdings rules derived from the holds configuration."""

    def __init__(self, hide_holdings: Iterable[str] = ()):
        self._suppressed = frozenset(hide_holdings)

    def get_suppressed_locations(self) -> FrozenSet[str]:
        """Locations whose items are hidden from status displays."""
        return self._suppressed
