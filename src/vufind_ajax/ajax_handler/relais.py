"""Relais D2D interlibrary loan handlers."""

import logging
from typing import Any, Dict, Optional

from vufind_ajax.ajax_handler.base import AbstractBase, ResponseTuple
from vufind_ajax.ajax_handler.params import Params
from vufind_ajax.exception.api_exceptions import RelaisError
from vufind_ajax.infrastructure.i18n.translator import Translator
from vufind_ajax.infrastructure.persistence.postgresql.models import User
from vufind_ajax.infrastructure.relais import RelaisClient

logger = logging.getLogger(__name__)


class AbstractRelaisAction(AbstractBase):
    """Authenticate the user's library card with Relais, then call Relais."""

    def __init__(
        self,
        relais: Optional[RelaisClient],
        user: Optional[User],
        translator: Optional[Translator] = None,
    ):
        self.relais = relais
        self.user = user
        self.translator = translator

    async def relais_call(self, aid: str, oclc: str, params: Params) -> Any:
        raise NotImplementedError

    def format_result(self, result: Any) -> ResponseTuple:
        return self.format_response({"result": result})

    async def handle_request(self, params: Params) -> ResponseTuple:
        if self.user is None:
            return self.need_auth_response()
        if self.relais is None:
            return self.format_response(
                self.translate("Relais is not configured"), self.STATUS_HTTP_ERROR
            )
        oclc = params.from_query("oclcNumber")
        if not oclc:
            return self.format_response(
                "Missing parameter 'oclcNumber'", self.STATUS_HTTP_BAD_REQUEST
            )

        try:
            aid = await self.relais.authenticate(self.user.cat_username)
            result = await self.relais_call(aid, oclc, params)
        except RelaisError as e:
            logger.error(f"Relais call failed: {e.message}", exc_info=True)
            return self.format_response(
                self.translate("An error has occurred"), self.STATUS_HTTP_ERROR
            )
        return self.format_result(result)


class RelaisAvailability(AbstractRelaisAction):
    """Whether Relais can supply an item: result is "ok" or "no"."""

    async def relais_call(self, aid: str, oclc: str, params: Params) -> Any:
        return await self.relais.search(oclc, aid)

    def format_result(self, result: Dict[str, Any]) -> ResponseTuple:
        available = "ok" if result.get("Available") else "no"
        return self.format_response({"result": available})


class RelaisInfo(AbstractRelaisAction):
    """Raw Relais availability details for an item."""

    async def relais_call(self, aid: str, oclc: str, params: Params) -> Any:
        return await self.relais.search(oclc, aid)


class RelaisOrder(AbstractRelaisAction):
    """Place a Relais request, picked up at the user's home library."""

    async def relais_call(self, aid: str, oclc: str, params: Params) -> Any:
        return await self.relais.place_request(
            oclc,
            aid,
            self.user.home_library,
            params.from_query("notes", ""),
        )

    def format_result(self, result: Dict[str, Any]) -> ResponseTuple:
        problem = (result or {}).get("Problem")
        if problem:
            message = problem.get("Message") if isinstance(problem, dict) else problem
            logger.warning(f"Relais order rejected: {message}")
            return self.format_response({"result": message}, self.STATUS_HTTP_ERROR)
        return self.format_response({"result": result})
