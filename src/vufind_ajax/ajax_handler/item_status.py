"""Item status lookup for result lists and record pages.

The ILS answers with one list of item copies per requested record id. Each
list is summarized into a single status entry: call number and location are
reduced with the configured pick mode, availability is the best availability
among the copies. Ids the ILS did not answer for get a placeholder entry so
that the browser can clear its loading indicators.
"""

import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from markupsafe import escape

from vufind_ajax.ajax_handler.base import AbstractBase, ResponseTuple
from vufind_ajax.ajax_handler.params import Params
from vufind_ajax.config.app_settings import ItemStatusConfig, PickMode
from vufind_ajax.constants import CALLNUMBER_PREFIX_SEPARATOR, MULTI_VALUE_SEPARATOR
from vufind_ajax.exception.api_exceptions import ILSError
from vufind_ajax.infrastructure.i18n.translator import Translator
from vufind_ajax.infrastructure.ils.connection import IlsConnection
from vufind_ajax.infrastructure.rendering.renderer import TemplateRenderer
from vufind_ajax.service.availability_status import (
    AvailabilityStatus,
    AvailabilityStatusManager,
)
from vufind_ajax.service.hold_logic import HoldLogic
from vufind_ajax.service.session_settings import SessionSettings

logger = logging.getLogger(__name__)

_NON_LETTERS = re.compile(r"[^A-Za-z]")


def _unique(values: Iterable[Any]) -> List[Any]:
    seen = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


def pick_value(
    values: Sequence[Any],
    mode: str,
    msg: str,
    trans_prefix: Optional[str] = None,
    translator: Optional[Translator] = None,
) -> str:
    """Reduce a list of values to a single display string.

    Args:
        values: Raw values, possibly with duplicates
        mode: first, all or msg
        msg: Message shown in msg mode when values differ
        trans_prefix: Translation prefix applied to each value
        translator: Translator; values and msg are left as-is without one

    Returns:
        The first value when mode is first or only one distinct value exists,
        an empty string for no values, all values joined in all mode, the
        translated msg otherwise
    """
    unique = _unique(values)

    def with_prefix(value: Any) -> str:
        if trans_prefix and translator is not None:
            return translator.translate_with_prefix(trans_prefix, value)
        return value

    if mode == PickMode.FIRST or len(unique) == 1:
        return with_prefix(unique[0]) if unique else ""
    if not unique:
        return ""
    if mode == PickMode.ALL:
        return MULTI_VALUE_SEPARATOR.join(str(with_prefix(v)) for v in unique)
    return translator.translate(msg) if translator is not None else msg


def format_call_no(prefix: Optional[str], callnumber: Any) -> str:
    """Join a call number prefix and call number so the client can split them."""
    if prefix:
        return f"{prefix}{CALLNUMBER_PREFIX_SEPARATOR}{callnumber}"
    return callnumber


def filter_suppressed_locations(
    items: Iterable[Mapping[str, Any]], suppressed: Iterable[str]
) -> List[Mapping[str, Any]]:
    """Drop item copies held at suppressed locations."""
    suppressed = frozenset(suppressed)
    return [item for item in items if item.get("location") not in suppressed]


def reduce_services(
    raw_services: Iterable[str], preferred_service: Optional[str] = None
) -> List[str]:
    """Normalize, dedupe and sort service names.

    A configured preferred service that is present replaces the whole list.
    """

    def normalize(value: str) -> str:
        return _NON_LETTERS.sub("", value).lower()

    services = sorted(_unique(normalize(s) for s in raw_services))
    if preferred_service:
        preferred = normalize(preferred_service)
        if preferred in services:
            return [preferred]
    return services


def get_callnumber_handler(
    config: ItemStatusConfig,
    callnumbers: Optional[Sequence[str]] = None,
    display_setting: Optional[str] = None,
) -> Any:
    """Configured call number handler, or False when several call numbers
    collapse into a message."""
    if display_setting == PickMode.MSG and callnumbers and len(callnumbers) > 1:
        return False
    return config.callnumber_handler or False


def record_number(ids: Sequence[str], record_id: Any) -> Optional[int]:
    """Position of record_id in the requested ids, compared as strings."""
    try:
        return [str(id_) for id_ in ids].index(str(record_id))
    except ValueError:
        return None


def normalize_ids(raw: Any) -> List[str]:
    if raw is None:
        return []
    if isinstance(raw, (list, tuple)):
        return [str(value) for value in raw]
    if isinstance(raw, dict):
        return [str(value) for value in raw.values()]
    return [str(raw)]


class GetItemStatuses(AbstractBase):
    """Availability, location and call number summaries for a set of records."""

    def __init__(
        self,
        session_settings: SessionSettings,
        config: ItemStatusConfig,
        ils: IlsConnection,
        renderer: TemplateRenderer,
        hold_logic: HoldLogic,
        availability_manager: AvailabilityStatusManager,
        translator: Optional[Translator] = None,
    ):
        self.session_settings = session_settings
        self.config = config
        self.ils = ils
        self.renderer = renderer
        self.hold_logic = hold_logic
        self.availability_manager = availability_manager
        self.translator = translator
        self._suppressed: Optional[frozenset] = None

    @property
    def suppressed_locations(self) -> frozenset:
        if self._suppressed is None:
            self._suppressed = frozenset(self.hold_logic.get_suppressed_locations())
        return self._suppressed

    async def get_availability_message(self, availability: AvailabilityStatus) -> str:
        return await self.renderer.render(
            "ajax/status", {"availabilityStatus": availability}
        )

    async def render_services(self, services: Iterable[str]) -> str:
        reduced = reduce_services(services, self.config.preferred_service)
        return await self.renderer.render(
            "ajax/status-available-services", {"services": reduced}
        )

    def _reserve(self, items: Sequence[Mapping[str, Any]]) -> bool:
        return (items[0].get("reserve") or "N") == "Y"

    async def get_item_status(
        self,
        items: Sequence[Mapping[str, Any]],
        location_setting: str,
        callnumber_setting: str,
    ) -> Dict[str, Any]:
        """Summary of one record with a single location value."""
        callnumbers = []
        locations = []
        services: List[str] = []
        for info in items:
            callnumbers.append(
                format_call_no(
                    info.get("callnumber_prefix"), info.get("callnumber") or ""
                )
            )
            locations.append(info.get("location") or "")
            services.extend(info.get("services") or [])

        callnumber_handler = get_callnumber_handler(
            self.config, _unique(callnumbers), callnumber_setting
        )
        callnumber = pick_value(
            callnumbers,
            callnumber_setting,
            "Multiple Call Numbers",
            translator=self.translator,
        )
        location = pick_value(
            locations,
            location_setting,
            "Multiple Locations",
            "location_",
            translator=self.translator,
        )

        combined = self.availability_manager.combine(items)["availability"]
        if services:
            availability_message = await self.render_services(services)
        else:
            availability_message = await self.get_availability_message(combined)

        reserve = self._reserve(items)
        return {
            "id": items[0]["id"],
            "availability": combined.availability_as_string(),
            "availability_message": availability_message,
            "location": str(escape(location)),
            "locationList": False,
            "reserve": "true" if reserve else "false",
            "reserve_message": self.translate(
                "on_reserve" if reserve else "Not On Reserve"
            ),
            "callnumber": str(escape(callnumber)),
            "callnumber_handler": callnumber_handler,
        }

    async def get_item_status_group(
        self, items: Sequence[Mapping[str, Any]], callnumber_setting: str
    ) -> Dict[str, Any]:
        """Summary of one record split out by location."""
        locations: Dict[str, Dict[str, Any]] = {}
        for info in items:
            availability = self.availability_manager.from_item(info)
            details = locations.setdefault(
                info.get("location") or "", {"callnumbers": []}
            )
            if availability.is_available() and details.get("available") != "true":
                details["available"] = availability.get_status_description()
            if availability.is_(AvailabilityStatus.STATUS_UNKNOWN):
                details["status_unknown"] = True
            details["callnumbers"].append(
                format_call_no(
                    info.get("callnumber_prefix"), info.get("callnumber") or ""
                )
            )

        location_list = []
        for location, details in locations.items():
            callnumbers = _unique(details["callnumbers"])
            handler = get_callnumber_handler(
                self.config, callnumbers, callnumber_setting
            )
            picked = pick_value(
                callnumbers,
                callnumber_setting,
                "Multiple Call Numbers",
                translator=self.translator,
            )
            location_list.append(
                {
                    "availability": details.get("available", False),
                    "location": str(
                        escape(self.translate_with_prefix("location_", location))
                    ),
                    "callnumbers": str(escape(picked)),
                    "status_unknown": details.get("status_unknown", False),
                    "callnumber_handler": handler,
                }
            )

        combined = self.availability_manager.combine(items)["availability"]
        reserve = self._reserve(items)
        return {
            "id": items[0]["id"],
            "availability": combined.availability_as_string(),
            "availability_message": await self.get_availability_message(combined),
            "location": False,
            "locationList": location_list,
            "reserve": "true" if reserve else "false",
            "reserve_message": self.translate(
                "on_reserve" if reserve else "Not On Reserve"
            ),
            "callnumber": False,
        }

    def get_item_status_error(
        self, items: Sequence[Mapping[str, Any]], msg: str = ""
    ) -> Dict[str, Any]:
        return {
            "id": items[0]["id"],
            "error": self.translate(items[0]["error"]),
            "availability": False,
            "availability_message": msg,
            "location": False,
            "locationList": [],
            "reserve": False,
            "reserve_message": "",
            "callnumber": False,
        }

    async def render_full_status(
        self,
        items: Sequence[Mapping[str, Any]],
        simple_status: Mapping[str, Any],
        values: Optional[Mapping[str, Any]] = None,
    ) -> str:
        holdings_text_fields: List[str] = []
        if self.config.include_holdings_text_fields:
            holdings_text_fields = self.config.displayed_holdings_text_fields
            if holdings_text_fields is None:
                holdings_text_fields = await self.ils.get_holdings_text_field_names()

        context = {
            "statusItems": items,
            "simpleStatus": simple_status,
            "callnumberHandler": get_callnumber_handler(self.config),
            "holdingsTextFieldNames": holdings_text_fields,
        }
        context.update(values or {})
        return await self.renderer.render("ajax/status-full", context)

    def missing_placeholder(self, record_id: str, index: int, message: str) -> Dict:
        return {
            "id": record_id,
            "availability": "false",
            "availability_message": message,
            "location": self.translate("Unknown"),
            "locationList": False,
            "reserve": "false",
            "reserve_message": self.translate("Not On Reserve"),
            "callnumber": "",
            "missing_data": True,
            "record_number": index,
        }

    async def handle_request(self, params: Params) -> ResponseTuple:
        # Parallel status calls share the session; never write it back
        self.disable_session_writes()
        ids = normalize_ids(
            params.from_post("id")
            if params.from_post("id") is not None
            else params.from_query("id", [])
        )
        search_id = params.from_either("sid")

        try:
            results = await self.ils.get_statuses(ids)
        except ILSError as e:
            logger.error(f"Status lookup failed: {e.message}", exc_info=True)
            results = [[{"id": id_, "error": "An error has occurred"}] for id_ in ids]

        if not isinstance(results, list):
            results = []

        # Requested ids not seen in the answer, with their request position
        missing_ids = {id_: index for index, id_ in enumerate(ids)}

        callnumber_setting = self.config.multiple_call_nos
        location_setting = self.config.multiple_locations

        statuses = []
        for items in results:
            items = filter_suppressed_locations(items or [], self.suppressed_locations)
            if not items:
                continue

            if items[0].get("error"):
                unknown = self.availability_manager.create_availability_status(
                    AvailabilityStatus.STATUS_UNKNOWN
                )
                current = self.get_item_status_error(
                    items, await self.get_availability_message(unknown)
                )
            elif location_setting == PickMode.GROUP:
                current = await self.get_item_status_group(items, callnumber_setting)
            else:
                current = await self.get_item_status(
                    items, location_setting, callnumber_setting
                )

            if self.config.show_full_status and not items[0].get("error"):
                current["full_status"] = await self.render_full_status(
                    items, current, {"searchId": search_id, "current": current}
                )
            # The ILS may answer numeric ids as ints
            key = str(current["id"])
            current["record_number"] = record_number(ids, key)
            statuses.append(current)
            missing_ids.pop(key, None)

        if missing_ids:
            message = await self.get_availability_message(
                self.availability_manager.create_availability_status(False)
            )
            for missing_id, index in missing_ids.items():
                statuses.append(self.missing_placeholder(missing_id, index, message))

        return self.format_response({"statuses": statuses})
