"""AJAX handler contract.

Every handler answers handle_request(params) with a response tuple:

    (payload,)                              HTTP 200, status derived
    (payload, http_status)                  status derived from http_status
    (payload, internal_status, http_status) explicit status

The controller wraps the payload into the JSON envelope
{"data": payload, "status": "OK" | "ERROR" | "NEED_AUTH"}.
"""

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional, Tuple

from vufind_ajax.ajax_handler.params import Params
from vufind_ajax.constants import (
    LOGIN_REQUIRED_MESSAGE,
    STATUS_ERROR,
    STATUS_NEED_AUTH,
    STATUS_OK,
)
from vufind_ajax.infrastructure.i18n.translator import Translator
from vufind_ajax.service.session_settings import SessionSettings

ResponseTuple = Tuple[Any, ...]


class AjaxHandler(ABC):
    """Interface implemented by every AJAX handler."""

    @abstractmethod
    async def handle_request(self, params: Params) -> ResponseTuple:
        """Handle a request.

        Args:
            params: Query and form parameters

        Returns:
            Response tuple of one to three elements
        """


class AbstractBase(AjaxHandler):
    """Shared helpers for handlers: status constants, response formatting,
    session write suppression and translation."""

    STATUS_HTTP_OK = 200
    STATUS_HTTP_BAD_REQUEST = 400
    STATUS_HTTP_NEED_AUTH = 401
    STATUS_HTTP_FORBIDDEN = 403
    STATUS_HTTP_NOT_FOUND = 404
    STATUS_HTTP_NOT_ALLOWED = 405
    STATUS_HTTP_ERROR = 500
    STATUS_HTTP_UNAVAILABLE = 503

    session_settings: Optional[SessionSettings] = None
    translator: Optional[Translator] = None

    def disable_session_writes(self) -> None:
        """Keep this request from saving the session."""
        if self.session_settings is not None:
            self.session_settings.disable_write()

    def format_response(
        self,
        data: Any,
        http_status: Optional[int] = None,
        internal_status: Optional[str] = None,
    ) -> ResponseTuple:
        if internal_status is not None:
            return (data, internal_status, http_status or self.STATUS_HTTP_OK)
        if http_status is not None:
            return (data, http_status)
        return (data,)

    def translate(
        self,
        key: Any,
        params: Optional[Mapping[str, Any]] = None,
        default: Optional[str] = None,
    ) -> str:
        if self.translator is None:
            return default if default is not None and key is None else str(key)
        return self.translator.translate(key, params, default)

    def translate_with_prefix(self, prefix: str, key: Any) -> str:
        if self.translator is None:
            return str(key)
        return self.translator.translate_with_prefix(prefix, key)

    def need_auth_response(self) -> ResponseTuple:
        return self.format_response(
            self.translate(LOGIN_REQUIRED_MESSAGE), self.STATUS_HTTP_NEED_AUTH
        )


def status_for_http(http_status: int) -> str:
    """Default internal status for an HTTP status."""
    if 200 <= http_status < 300:
        return STATUS_OK
    if http_status == 401:
        return STATUS_NEED_AUTH
    return STATUS_ERROR


def unpack_response(response: ResponseTuple) -> Tuple[Any, str, int]:
    """Normalize a handler response into (payload, internal_status, http_status).

    Raises:
        ValueError: If the tuple is empty or has more than three elements
    """
    if not isinstance(response, tuple):
        response = (response,)
    if len(response) == 1:
        return response[0], STATUS_OK, 200
    if len(response) == 2:
        http_status = int(response[1])
        return response[0], status_for_http(http_status), http_status
    if len(response) == 3:
        return response[0], str(response[1]), int(response[2])
    raise ValueError(f"Handler returned {len(response)} response elements")
