"""Service layer for catalog logic.

Exports the availability model, the search and record services and the small
rule objects (hold logic, tag parsing, captcha) the AJAX handlers consult.
"""

from vufind_ajax.service.availability_status import (
    AvailabilityStatus,
    AvailabilityStatusManager,
)
from vufind_ajax.service.hold_logic import HoldLogic
from vufind_ajax.service.record_loader import Record, RecordLoader
from vufind_ajax.service.search_service import SearchResults, SearchService
from vufind_ajax.service.tag_parser import TagParser

__all__ = [
    "AvailabilityStatus",
    "AvailabilityStatusManager",
    "HoldLogic",
    "Record",
    "RecordLoader",
    "SearchResults",
    "SearchService",
    "TagParser",
]
