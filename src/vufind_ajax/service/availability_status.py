"""Item availability statuses and their combination across copies."""

from typing import Any, Dict, Iterable, Mapping, Optional, Union


class AvailabilityStatus:
    """Availability of a single item copy.

    Attributes:
        availability: One of the STATUS_* constants
        status: Free-text status reported by the ILS
    """

    STATUS_UNAVAILABLE = 0
    STATUS_AVAILABLE = 1
    STATUS_UNKNOWN = 2
    STATUS_UNCERTAIN = 3

    _AS_STRING = {
        STATUS_UNAVAILABLE: "false",
        STATUS_AVAILABLE: "true",
        STATUS_UNKNOWN: "unknown",
        STATUS_UNCERTAIN: "uncertain",
    }

    # Higher wins when combining several copies
    _PRIORITY = {
        STATUS_UNKNOWN: 0,
        STATUS_UNAVAILABLE: 1,
        STATUS_UNCERTAIN: 2,
        STATUS_AVAILABLE: 3,
    }

    def __init__(self, availability: Union[bool, int, str], status: str = ""):
        self.availability = self._parse(availability)
        self.status = status or ""

    @classmethod
    def _parse(cls, value: Union[bool, int, str, None]) -> int:
        if isinstance(value, bool):
            return cls.STATUS_AVAILABLE if value else cls.STATUS_UNAVAILABLE
        if isinstance(value, int) and value in cls._AS_STRING:
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            for code, text in cls._AS_STRING.items():
                if lowered == text:
                    return code
            if lowered in ("1", "y", "yes", "available"):
                return cls.STATUS_AVAILABLE
        return cls.STATUS_UNAVAILABLE

    def is_available(self) -> bool:
        return self.availability == self.STATUS_AVAILABLE

    def is_(self, availability: int) -> bool:
        return self.availability == availability

    def get_priority(self) -> int:
        return self._PRIORITY[self.availability]

    def availability_as_string(self) -> str:
        return self._AS_STRING[self.availability]

    def get_status_description(self) -> str:
        """Status text for display, defaulting from the availability."""
        if self.status:
            return self.status
        if self.availability == self.STATUS_AVAILABLE:
            return "Available"
        if self.availability == self.STATUS_UNCERTAIN:
            return "Uncertain"
        if self.availability == self.STATUS_UNKNOWN:
            return "status_unknown_message"
        return "Unavailable"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "availability": self.availability_as_string(),
            "status": self.get_status_description(),
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AvailabilityStatus):
            return NotImplemented
        return (self.availability, self.status) == (other.availability, other.status)

    def __repr__(self) -> str:
        return f"AvailabilityStatus({self.availability_as_string()!r}, {self.status!r})"


class AvailabilityStatusManager:
    """Creates statuses and combines the statuses of all copies of a record."""

    def create_availability_status(
        self, availability: Union[bool, int, str], status: str = ""
    ) -> AvailabilityStatus:
        return AvailabilityStatus(availability, status)

    def from_item(self, item: Mapping[str, Any]) -> AvailabilityStatus:
        """Normalize the raw availability fields of an ILS item.

        Items flagged use_unknown_message are reported as unknown.
        """
        current = item.get("availability")
        if isinstance(current, AvailabilityStatus):
            return current
        if item.get("use_unknown_message"):
            current = AvailabilityStatus.STATUS_UNKNOWN
        return AvailabilityStatus(
            current if current is not None else False, item.get("status") or ""
        )

    def combine(
        self, items: Iterable[Mapping[str, Any]]
    ) -> Dict[str, AvailabilityStatus]:
        """Pick the highest-priority availability among item copies.

        Args:
            items: Item dicts carrying an "availability" AvailabilityStatus

        Returns:
            {"availability": AvailabilityStatus}; unavailable when items is empty
        """
        best: Optional[AvailabilityStatus] = None
        for item in items:
            status = self.from_item(item)
            if best is None or status.get_priority() > best.get_priority():
                best = status
        if best is None:
            best = AvailabilityStatus(False)
        return {"availability": best}
