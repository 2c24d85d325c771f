"""Health, session keep-alive and ILS availability handlers."""

import logging
from pathlib import Path
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from vufind_ajax.ajax_handler.base import AbstractBase, ResponseTuple
from vufind_ajax.ajax_handler.params import Params
from vufind_ajax.exception.api_exceptions import ILSError, SearchBackendError
from vufind_ajax.infrastructure.ils import IlsConnection
from vufind_ajax.infrastructure.persistence.postgresql.client import PostgreSQLClient
from vufind_ajax.infrastructure.rendering.renderer import TemplateRenderer
from vufind_ajax.infrastructure.search import SolrClient
from vufind_ajax.repository.session_store_repository import (
    CatalogSession,
    SessionStoreRepository,
)
from vufind_ajax.service.session_settings import SessionSettings

logger = logging.getLogger(__name__)

ILS_OFFLINE = "ils-offline"


class SystemStatus(AbstractBase):
    """Load balancer health probe.

    Answers 503 while the health check file exists, 500 when the search
    index or the database fails, otherwise an empty string. The probe's own
    session is destroyed so frequent checks leave nothing behind.
    """

    def __init__(
        self,
        session_settings: SessionSettings,
        solr: SolrClient,
        postgres: PostgreSQLClient,
        session_store: Optional[SessionStoreRepository],
        session: Optional[CatalogSession],
        health_check_file: Optional[str] = None,
    ):
        self.session_settings = session_settings
        self.solr = solr
        self.postgres = postgres
        self.session_store = session_store
        self.session = session
        self.health_check_file = health_check_file

    async def handle_request(self, params: Params) -> ResponseTuple:
        if self.health_check_file and Path(self.health_check_file).exists():
            return self.format_response(
                "Health check file exists", self.STATUS_HTTP_UNAVAILABLE
            )

        try:
            await self.solr.ping()
        except SearchBackendError as e:
            return self.format_response(
                f"Search index error: {e.message}", self.STATUS_HTTP_ERROR
            )

        try:
            await self.postgres.ping()
        except (SQLAlchemyError, OSError) as e:
            return self.format_response(f"Database error: {e}", self.STATUS_HTTP_ERROR)

        self.disable_session_writes()
        if self.session_store is not None and self.session is not None:
            await self.session_store.destroy(self.session.session_id)
        return self.format_response("")


class KeepAlive(AbstractBase):
    """Refresh the session so it does not expire while a page is open."""

    def __init__(self, session: Optional[CatalogSession]):
        self.session = session

    async def handle_request(self, params: Params) -> ResponseTuple:
        if self.session is not None:
            self.session.touch()
        return self.format_response(True)


class GetIlsStatus(AbstractBase):
    """Offline notice when the ILS is unavailable, otherwise an empty string."""

    def __init__(
        self,
        session_settings: SessionSettings,
        ils: IlsConnection,
        renderer: TemplateRenderer,
    ):
        self.session_settings = session_settings
        self.ils = ils
        self.renderer = renderer

    async def offline(self) -> bool:
        try:
            return await self.ils.get_offline_mode() == ILS_OFFLINE
        except ILSError as e:
            logger.warning(f"ILS status check failed: {e.message}")
            return True

    async def handle_request(self, params: Params) -> ResponseTuple:
        self.disable_session_writes()
        if await self.offline():
            message = params.from_either("offlineModeMsg")
            html = await self.renderer.render(
                "Helpers/ils-offline", {"offlineModeMsg": message}
            )
            return self.format_response(html)
        return self.format_response("")
