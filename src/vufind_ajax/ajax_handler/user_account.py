"""Patron account summaries shown as badges in the account menu.

Every handler here logs the patron into the ILS with the stored catalog
credentials and never writes the session.
"""

import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from vufind_ajax.ajax_handler.base import AbstractBase, ResponseTuple
from vufind_ajax.ajax_handler.params import Params
from vufind_ajax.config.app_settings import CurrencyConfig
from vufind_ajax.exception.api_exceptions import ILSError
from vufind_ajax.infrastructure.i18n.translator import Translator
from vufind_ajax.infrastructure.ils import IlsAuthenticator, IlsConnection
from vufind_ajax.service.session_settings import SessionSettings

logger = logging.getLogger(__name__)


class AbstractIlsAndUserAction(AbstractBase):
    """Base for handlers answering from the patron's ILS account.

    Subclasses set lookup_method to the ILS capability they need and
    implement summarize().
    """

    lookup_method: str = ""

    def __init__(
        self,
        session_settings: SessionSettings,
        ils: IlsConnection,
        ils_authenticator: IlsAuthenticator,
        translator: Optional[Translator] = None,
    ):
        self.session_settings = session_settings
        self.ils = ils
        self.ils_authenticator = ils_authenticator
        self.translator = translator

    async def fetch(self, patron: Dict[str, Any]) -> Any:
        raise NotImplementedError

    def summarize(self, data: Any) -> Any:
        raise NotImplementedError

    async def handle_request(self, params: Params) -> ResponseTuple:
        self.disable_session_writes()
        patron = await self.ils_authenticator.stored_catalog_login()
        if not patron:
            return self.need_auth_response()
        if not await self.ils.check_capability(
            self.lookup_method, {"patron": patron}
        ):
            return self.format_response("", self.STATUS_HTTP_NOT_ALLOWED)

        try:
            data = await self.fetch(patron)
        except ILSError as e:
            logger.error(f"{self.lookup_method} failed: {e.message}", exc_info=True)
            return self.format_response("", self.STATUS_HTTP_ERROR)
        return self.format_response(self.summarize(data))


def count_request_statuses(requests: Iterable[Mapping[str, Any]]) -> Dict[str, int]:
    """Count requests that are available for pickup, in transit, or otherwise."""
    status = {"available": 0, "in_transit": 0, "other": 0}
    for request in requests:
        if request.get("available"):
            status["available"] += 1
        elif request.get("in_transit"):
            status["in_transit"] += 1
        else:
            status["other"] += 1
    return status


class GetUserFines(AbstractIlsAndUserAction):
    """Number and total balance of the patron's fines.

    Balances are reported by the ILS in minor currency units.
    """

    lookup_method = "getMyFines"

    def __init__(
        self,
        session_settings: SessionSettings,
        ils: IlsConnection,
        ils_authenticator: IlsAuthenticator,
        currency: Optional[CurrencyConfig] = None,
        translator: Optional[Translator] = None,
    ):
        super().__init__(session_settings, ils, ils_authenticator, translator)
        self.currency = currency or CurrencyConfig()

    async def fetch(self, patron: Dict[str, Any]) -> Any:
        return await self.ils.get_my_fines(patron)

    def format_amount(self, value: float) -> str:
        return f"{self.currency.symbol}{value:,.2f}"

    def summarize(self, data: Any) -> Dict[str, Any]:
        fines = list(data or [])
        balance = sum(int(fine.get("balance") or 0) for fine in fines)
        value = balance / 100
        return {
            "total": len(fines),
            "display": self.format_amount(value),
            "value": value,
        }


class GetUserHolds(AbstractIlsAndUserAction):
    lookup_method = "getMyHolds"

    async def fetch(self, patron: Dict[str, Any]) -> Any:
        return await self.ils.get_my_holds(patron)

    def summarize(self, data: Any) -> Dict[str, int]:
        return count_request_statuses(data or [])


class GetUserILLRequests(AbstractIlsAndUserAction):
    lookup_method = "getMyILLRequests"

    async def fetch(self, patron: Dict[str, Any]) -> Any:
        return await self.ils.get_my_ill_requests(patron)

    def summarize(self, data: Any) -> Dict[str, int]:
        return count_request_statuses(data or [])


class GetUserStorageRetrievalRequests(AbstractIlsAndUserAction):
    lookup_method = "getMyStorageRetrievalRequests"

    async def fetch(self, patron: Dict[str, Any]) -> Any:
        return await self.ils.get_my_storage_retrieval_requests(patron)

    def summarize(self, data: Any) -> Dict[str, int]:
        return count_request_statuses(data or [])


class GetUserTransactions(AbstractIlsAndUserAction):
    """Loans counted by due status: ok, due soon (warn) and overdue."""

    lookup_method = "getMyTransactions"

    async def fetch(self, patron: Dict[str, Any]) -> Any:
        return await self.ils.get_my_transactions(patron)

    def summarize(self, data: Any) -> Dict[str, int]:
        counts = {"ok": 0, "warn": 0, "overdue": 0}
        for item in (data or {}).get("records", []):
            due_status = item.get("dueStatus")
            if due_status == "due":
                counts["warn"] += 1
            elif due_status == "overdue":
                counts["overdue"] += 1
            else:
                counts["ok"] += 1
        return counts
