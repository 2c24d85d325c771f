"""Per-request dependencies handed to handler factories."""

from dataclasses import dataclass
from typing import Optional

import httpx

from vufind_ajax.config.app_settings import AppSettings
from vufind_ajax.infrastructure.i18n.translator import Translator
from vufind_ajax.infrastructure.ils import IlsAuthenticator, IlsConnection
from vufind_ajax.infrastructure.persistence.postgresql.client import PostgreSQLClient
from vufind_ajax.infrastructure.persistence.postgresql.models import User
from vufind_ajax.infrastructure.relais import RelaisClient
from vufind_ajax.infrastructure.rendering import TemplateRenderer
from vufind_ajax.infrastructure.resolver import DoiLinkerPluginManager
from vufind_ajax.infrastructure.search import SolrClient
from vufind_ajax.repository.comments_repository import CommentsRepository
from vufind_ajax.repository.notifications_repository import NotificationsRepository
from vufind_ajax.repository.resource_repository import ResourceRepository
from vufind_ajax.repository.search_repository import SearchRepository
from vufind_ajax.repository.session_store_repository import (
    CatalogSession,
    SessionStoreRepository,
)
from vufind_ajax.repository.tags_repository import TagsRepository
from vufind_ajax.repository.user_list_repository import UserListRepository
from vufind_ajax.service.autocomplete import AutocompleteManager
from vufind_ajax.service.availability_status import AvailabilityStatusManager
from vufind_ajax.service.captcha import CaptchaVerifier
from vufind_ajax.service.hierarchical_facet_helper import HierarchicalFacetHelper
from vufind_ajax.service.hold_logic import HoldLogic
from vufind_ajax.service.record_loader import RecordLoader
from vufind_ajax.service.search_service import SearchService
from vufind_ajax.service.session_settings import SessionSettings


@dataclass
class HandlerContext:
    """Everything a handler factory may inject.

    Application-wide services come from app.state; session, session_settings,
    user and ils_authenticator are specific to the current request. Fields a
    deployment does not configure stay None and the handlers relying on them
    answer with an error.
    """

    settings: AppSettings
    translator: Translator
    renderer: TemplateRenderer
    session_settings: SessionSettings
    ils: Optional[IlsConnection] = None
    ils_authenticator: Optional[IlsAuthenticator] = None
    solr: Optional[SolrClient] = None
    search_service: Optional[SearchService] = None
    record_loader: Optional[RecordLoader] = None
    availability_manager: Optional[AvailabilityStatusManager] = None
    hold_logic: Optional[HoldLogic] = None
    facet_helper: Optional[HierarchicalFacetHelper] = None
    autocomplete: Optional[AutocompleteManager] = None
    captcha: Optional[CaptchaVerifier] = None
    doi_linkers: Optional[DoiLinkerPluginManager] = None
    relais: Optional[RelaisClient] = None
    http_client: Optional[httpx.AsyncClient] = None
    postgres: Optional[PostgreSQLClient] = None
    resource_repo: Optional[ResourceRepository] = None
    comments_repo: Optional[CommentsRepository] = None
    tags_repo: Optional[TagsRepository] = None
    user_list_repo: Optional[UserListRepository] = None
    search_repo: Optional[SearchRepository] = None
    notifications_repo: Optional[NotificationsRepository] = None
    session_store: Optional[SessionStoreRepository] = None
    session: Optional[CatalogSession] = None
    user: Optional[User] = None
    client_ip: Optional[str] = None
