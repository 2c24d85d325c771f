"""Hold, ILL and storage retrieval request helpers."""

import logging
from typing import Any, Dict, List, Optional

from vufind_ajax.ajax_handler.base import AbstractBase, ResponseTuple
from vufind_ajax.ajax_handler.params import Params
from vufind_ajax.exception.api_exceptions import ILSError
from vufind_ajax.infrastructure.i18n.translator import Translator
from vufind_ajax.infrastructure.ils import IlsAuthenticator, IlsConnection
from vufind_ajax.infrastructure.persistence.postgresql.models import User
from vufind_ajax.service.session_settings import SessionSettings

logger = logging.getLogger(__name__)

# request type → (ILS method, message when valid, message when blocked)
REQUEST_CHECKS = {
    "ILLRequest": (
        "check_ill_request_is_valid",
        "ill_request_place_text",
        "ill_request_error_blocked",
    ),
    "StorageRetrievalRequest": (
        "check_storage_retrieval_request_is_valid",
        "storage_retrieval_request_place_text",
        "storage_retrieval_request_error_blocked",
    ),
}
HOLD_CHECK = ("check_request_is_valid", "request_place_text", "hold_error_blocked")


class PatronRequestAction(AbstractBase):
    """Handlers needing both a logged-in user and the user's ILS patron."""

    def __init__(
        self,
        session_settings: SessionSettings,
        ils: IlsConnection,
        ils_authenticator: IlsAuthenticator,
        user: Optional[User],
        translator: Optional[Translator] = None,
    ):
        self.session_settings = session_settings
        self.ils = ils
        self.ils_authenticator = ils_authenticator
        self.user = user
        self.translator = translator

    def missing(self) -> ResponseTuple:
        return self.format_response(
            self.translate("bulk_error_missing"), self.STATUS_HTTP_BAD_REQUEST
        )

    def failure(self) -> ResponseTuple:
        return self.format_response(
            self.translate("An error has occurred"), self.STATUS_HTTP_ERROR
        )

    def translate_locations(
        self, locations: List[Dict[str, Any]], field: str
    ) -> List[Dict[str, Any]]:
        translated = []
        for location in locations:
            location = dict(location)
            if field in location:
                location[field] = self.translate_with_prefix(
                    "location_", location[field]
                )
            translated.append(location)
        return translated


class CheckRequestIsValid(PatronRequestAction):
    """Whether the patron may place a hold, ILL or storage retrieval request."""

    async def handle_request(self, params: Params) -> ResponseTuple:
        self.disable_session_writes()
        record_id = params.from_query("id")
        data = params.from_query("data")
        request_type = params.from_query("requestType")
        if not record_id or not data:
            return self.missing()
        if self.user is None:
            return self.need_auth_response()

        try:
            patron = await self.ils_authenticator.stored_catalog_login()
            if patron:
                method, valid_msg, blocked_msg = REQUEST_CHECKS.get(
                    request_type, HOLD_CHECK
                )
                results = await getattr(self.ils, method)(record_id, data, patron)
                if isinstance(results, dict):
                    msg = results.get("status") or (
                        valid_msg if results.get("valid") else blocked_msg
                    )
                    results = results.get("valid", False)
                else:
                    msg = valid_msg if results else blocked_msg
                return self.format_response(
                    {"status": results, "msg": self.translate(msg)}
                )
        except ILSError as e:
            logger.error(f"Request validity check failed: {e.message}", exc_info=True)
        return self.failure()


class GetLibraryPickupLocations(PatronRequestAction):
    """Pickup locations of a library for an ILL request."""

    async def handle_request(self, params: Params) -> ResponseTuple:
        record_id = params.from_query("id")
        pickup_lib = params.from_query("pickupLib")
        if record_id is None or pickup_lib is None:
            return self.missing()
        if self.user is None:
            return self.need_auth_response()

        try:
            patron = await self.ils_authenticator.stored_catalog_login()
            if patron:
                locations = await self.ils.get_ill_pickup_locations(
                    record_id, pickup_lib, patron
                )
                return self.format_response(
                    {"locations": self.translate_locations(locations, "name")}
                )
        except ILSError as e:
            logger.error(
                f"ILL pickup location lookup failed: {e.message}", exc_info=True
            )
        return self.failure()


class GetRequestGroupPickupLocations(PatronRequestAction):
    """Pickup locations available for a request group."""

    async def handle_request(self, params: Params) -> ResponseTuple:
        record_id = params.from_query("id")
        request_group_id = params.from_query("requestGroupId")
        if record_id is None or request_group_id is None:
            return self.missing()
        if self.user is None:
            return self.need_auth_response()

        try:
            patron = await self.ils_authenticator.stored_catalog_login()
            if patron:
                details = {"id": record_id, "requestGroupId": request_group_id}
                locations = await self.ils.get_pickup_locations(patron, details)
                default = await self.ils.get_default_pickup_location(patron, details)
                return self.format_response(
                    {
                        "locations": self.translate_locations(
                            locations, "locationDisplay"
                        ),
                        "defaultLocation": default,
                    }
                )
        except ILSError as e:
            logger.error(
                f"Request group pickup location lookup failed: {e.message}",
                exc_info=True,
            )
        return self.failure()


class ChangePickupLocation(PatronRequestAction):
    """Move an existing hold to another pickup location."""

    async def handle_request(self, params: Params) -> ResponseTuple:
        request_id = params.from_query("requestId")
        pickup_location_id = params.from_query("pickupLocationId")
        if not request_id:
            return self.missing()
        if self.user is None:
            return self.need_auth_response()

        try:
            patron = await self.ils_authenticator.stored_catalog_login()
            if patron:
                result = await self.ils.change_pickup_location(
                    patron,
                    {"requestId": request_id, "pickupLocationId": pickup_location_id},
                )
                return self.format_response(result)
        except ILSError as e:
            logger.error(f"Pickup location change failed: {e.message}", exc_info=True)
        return self.failure()
