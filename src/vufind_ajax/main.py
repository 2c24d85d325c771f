"""VuFind AJAX FastAPI application.

This module initializes and configures the catalog AJAX service with
middleware, routers, and lifecycle management.
"""

# ruff: noqa: E402
# load_dotenv() must run before any vufind_ajax imports that read env

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Optional

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

from vufind_ajax.ajax_handler.plugin_manager import AjaxHandlerPluginManager
from vufind_ajax.config.app_settings import AppSettings, get_settings
from vufind_ajax.controller import ajax_controller, health_controller
from vufind_ajax.infrastructure.i18n import Translator
from vufind_ajax.infrastructure.ils import IlsConnection
from vufind_ajax.infrastructure.persistence.postgresql.client import PostgreSQLClient
from vufind_ajax.infrastructure.persistence.redis.client import RedisClient
from vufind_ajax.infrastructure.relais import RelaisClient
from vufind_ajax.infrastructure.rendering import TemplateRenderer
from vufind_ajax.infrastructure.resolver import build_doi_linker_manager
from vufind_ajax.infrastructure.search import SolrClient
from vufind_ajax.middleware import (
    ErrorHandlerMiddleware,
    RateLimitMiddleware,
    SessionMiddleware,
)
from vufind_ajax.repository.comments_repository import CommentsRepository
from vufind_ajax.repository.notifications_repository import NotificationsRepository
from vufind_ajax.repository.resource_repository import ResourceRepository
from vufind_ajax.repository.search_repository import SearchRepository
from vufind_ajax.repository.session_store_repository import SessionStoreRepository
from vufind_ajax.repository.tags_repository import TagsRepository
from vufind_ajax.repository.user_list_repository import UserListRepository
from vufind_ajax.repository.user_repository import UserRepository
from vufind_ajax.service.autocomplete import AutocompleteManager
from vufind_ajax.service.availability_status import AvailabilityStatusManager
from vufind_ajax.service.captcha import CaptchaVerifier
from vufind_ajax.service.hierarchical_facet_helper import HierarchicalFacetHelper
from vufind_ajax.service.hold_logic import HoldLogic
from vufind_ajax.service.record_loader import RecordLoader
from vufind_ajax.service.search_service import SearchService

app_settings = get_settings()

logging.basicConfig(
    level=getattr(logging, app_settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def initialize_database_clients(
    app_settings: AppSettings,
) -> tuple[PostgreSQLClient, RedisClient]:
    """Initialize and connect the database clients."""
    postgres_client = PostgreSQLClient(app_settings.postgres_url)
    await postgres_client.connect()

    redis_client = RedisClient(app_settings.redis_url, app_settings.redis_default_db)
    await redis_client.connect()

    logger.info("Database connections established")
    return postgres_client, redis_client


def create_postgresql_repositories(
    postgres_client: PostgreSQLClient, app_settings: AppSettings
) -> dict[str, Any]:
    """Create all PostgreSQL repositories."""
    return {
        "user_repo": UserRepository(postgres_client),
        "resource_repo": ResourceRepository(postgres_client),
        "comments_repo": CommentsRepository(postgres_client),
        "tags_repo": TagsRepository(
            postgres_client, case_sensitive=app_settings.social.case_sensitive_tags
        ),
        "user_list_repo": UserListRepository(postgres_client),
        "search_repo": SearchRepository(postgres_client),
        "notifications_repo": NotificationsRepository(postgres_client),
    }


def create_relais_client(
    app_settings: AppSettings, http_client: httpx.AsyncClient
) -> Optional[RelaisClient]:
    """Create the Relais client if an API key is configured."""
    if not app_settings.relais.enabled:
        logger.info("Relais disabled (VUFIND_RELAIS__API_KEY not set)")
        return None
    return RelaisClient(http_client, app_settings.relais)


def create_catalog_services(
    app_settings: AppSettings, http_client: httpx.AsyncClient
) -> dict[str, Any]:
    """Create the ILS, search and resolver services shared by all requests."""
    availability_manager = AvailabilityStatusManager()
    solr = SolrClient(http_client, app_settings.solr_url, app_settings.solr_core)
    search_service = SearchService(solr, app_settings.facets.side)

    return {
        "availability_manager": availability_manager,
        "ils": IlsConnection(http_client, app_settings.ils_url, availability_manager),
        "solr": solr,
        "search_service": search_service,
        "record_loader": RecordLoader(solr),
        "hold_logic": HoldLogic(app_settings.holds.hide_holdings),
        "facet_helper": HierarchicalFacetHelper(),
        "autocomplete": AutocompleteManager(
            search_service,
            app_settings.autocomplete.types,
            app_settings.autocomplete.default_handler,
        ),
        "captcha": CaptchaVerifier(
            http_client,
            app_settings.captcha.recaptcha_secret,
            app_settings.captcha.recaptcha_verify_url,
            app_settings.captcha.enabled_forms,
        ),
        "doi_linkers": build_doi_linker_manager(
            http_client, app_settings.doi.unpaywall_email
        ),
        "relais": create_relais_client(app_settings, http_client),
    }


async def disconnect_clients(
    postgres_client: PostgreSQLClient,
    redis_client: RedisClient,
    http_client: httpx.AsyncClient,
) -> None:
    """Disconnect all clients."""
    await http_client.aclose()
    await postgres_client.disconnect()
    await redis_client.disconnect()
    logger.info("Connections closed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("=== VuFind AJAX Startup ===")

    app.state.app_settings = app_settings

    if app_settings.is_production():
        for problem in app_settings.validate_production_config():
            logger.warning(f"Configuration problem: {problem}")

    postgres_client, redis_client = await initialize_database_clients(app_settings)
    app.state.postgres = postgres_client
    app.state.redis_client = redis_client

    http_client = httpx.AsyncClient(timeout=app_settings.http_timeout_seconds)
    app.state.http_client = http_client

    for name, repository in create_postgresql_repositories(
        postgres_client, app_settings
    ).items():
        setattr(app.state, name, repository)

    app.state.session_store = SessionStoreRepository(
        redis=redis_client.get_client(),
        default_ttl_seconds=app_settings.session_ttl_seconds,
    )

    for name, service in create_catalog_services(app_settings, http_client).items():
        setattr(app.state, name, service)

    translator = Translator(app_settings.languages_dir, app_settings.default_language)
    app.state.translator = translator
    app.state.renderer = TemplateRenderer(
        app_settings.templates_dir, translator, app_settings.server_url
    )

    app.state.ajax_handlers = AjaxHandlerPluginManager()
    logger.info(
        f"Registered {len(app.state.ajax_handlers.factories)} AJAX handlers"
    )

    logger.info("=== VuFind AJAX Ready ===")

    yield

    logger.info("=== VuFind AJAX Shutdown ===")
    await disconnect_clients(postgres_client, redis_client, http_client)
    logger.info("=== VuFind AJAX Stopped ===")


async def get_redis_client_for_rate_limiting():
    """Get Redis client for rate limiting middleware."""
    if not hasattr(app.state, "redis_client"):
        return None
    return app.state.redis_client.get_client()


def configure_cors_middleware(application: FastAPI, allowed_origins: list[str]) -> None:
    """Configure CORS middleware with specified origins."""
    application.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )


def configure_rate_limiting_middleware(
    application: FastAPI, app_settings: AppSettings
) -> None:
    """Configure rate limiting middleware."""
    application.add_middleware(
        RateLimitMiddleware,
        redis_client=get_redis_client_for_rate_limiting,
        window_seconds=app_settings.rate_limit_window_seconds,
        max_requests=app_settings.rate_limit_max_requests,
        enabled=app_settings.rate_limit_enabled,
    )


def configure_session_middleware(
    application: FastAPI, app_settings: AppSettings
) -> None:
    """Configure catalog session middleware.

    The session store is resolved lazily from app.state during each request.
    """
    application.add_middleware(
        SessionMiddleware,
        cookie_name=app_settings.session_cookie_name,
        secure_cookie=app_settings.is_production(),
    )


def configure_error_handlers_middleware(
    application: FastAPI, app_settings: AppSettings
) -> None:
    """Set up error handling for the application."""
    application.state.debug = app_settings.debug
    application.state.environment = app_settings.environment

    application.add_middleware(ErrorHandlerMiddleware)

    logger.info(
        "Error handling middleware configured",
        extra={
            "debug": application.state.debug,
            "environment": application.state.environment,
        },
    )


def register_api_routers(application: FastAPI) -> None:
    """Register all API route controllers."""
    application.include_router(health_controller.router)
    application.include_router(ajax_controller.router)


app = FastAPI(
    title="VuFind AJAX",
    description="""
# Catalog AJAX service

Single dispatch endpoint used by catalog pages for item status, search
fragments, comments, tags, lists, patron account summaries, link resolvers
and interlibrary loan lookups.

## Usage

```
GET|POST /AJAX/JSON?method=getItemStatuses&id[]=123
```

Every answer is `{"data": ..., "status": "OK" | "ERROR" | "NEED_AUTH"}`.
""",
    version="1.0.0",
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "health",
            "description": "Health check for database and Redis connectivity.",
        },
        {
            "name": "ajax",
            "description": "AJAX handler dispatch. The `method` parameter selects "
            "the handler.",
        },
    ],
    openapi_url="/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
)

cors_origins = app_settings.cors_origins if app_settings.cors_origins else ["*"]
configure_cors_middleware(app, cors_origins)
configure_rate_limiting_middleware(app, app_settings)
configure_session_middleware(app, app_settings)
configure_error_handlers_middleware(app, app_settings)

register_api_routers(app)

logger.info("VuFind AJAX application configured")

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "vufind_ajax.main:app",
        host=app_settings.api_host,
        port=app_settings.api_port,
        reload=app_settings.debug,
    )
