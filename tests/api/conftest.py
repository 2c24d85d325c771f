"""Shared fixtures for API (controller) tests.

Builds a minimal FastAPI test application with the services injected via
app.state, the session and error middlewares installed and both routers
mounted. Redis and PostgreSQL are mocked; sessions go through the real
SessionStoreRepository on top of the mocked Redis client.

Key exports:
    - mock_redis / mock_postgres / mock_user_repo
    - app: FastAPI instance with routers, middlewares and mocks
    - client: synchronous TestClient for app
"""

import sys
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from tests.conftest import (  # noqa: E402
    make_comments_repo,
    make_ils,
    make_record_loader,
    make_renderer,
    make_resource_repo,
    make_user,
)


def _make_test_app(
    mock_redis: MagicMock,
    mock_postgres: MagicMock,
    mock_user_repo: MagicMock,
) -> FastAPI:
    """Build a FastAPI app wired the way the lifespan wires the real one.

    Args:
        mock_redis: Mocked redis.asyncio client (sessions and health ping).
        mock_postgres: Mocked PostgreSQLClient.
        mock_user_repo: Mocked UserRepository.

    Returns:
        Configured FastAPI test application.
    """
    from vufind_ajax.ajax_handler.plugin_manager import AjaxHandlerPluginManager
    from vufind_ajax.config.app_settings import AppSettings
    from vufind_ajax.controller import ajax_controller, health_controller
    from vufind_ajax.infrastructure.i18n import Translator
    from vufind_ajax.middleware import ErrorHandlerMiddleware, SessionMiddleware
    from vufind_ajax.repository.session_store_repository import (
        SessionStoreRepository,
    )
    from vufind_ajax.service.availability_status import AvailabilityStatusManager
    from vufind_ajax.service.hold_logic import HoldLogic

    settings = AppSettings()

    _app = FastAPI()
    _app.state.app_settings = settings
    _app.state.debug = False
    _app.state.environment = "production"
    _app.state.translator = Translator(settings.languages_dir, "en")
    _app.state.renderer = make_renderer()
    _app.state.ajax_handlers = AjaxHandlerPluginManager()

    _app.state.postgres = mock_postgres
    _app.state.redis_client = mock_redis
    _app.state.user_repo = mock_user_repo
    _app.state.session_store = SessionStoreRepository(mock_redis, 600)

    _app.state.ils = make_ils()
    _app.state.hold_logic = HoldLogic()
    _app.state.availability_manager = AvailabilityStatusManager()
    _app.state.record_loader = make_record_loader()
    _app.state.resource_repo = make_resource_repo()
    _app.state.comments_repo = make_comments_repo()

    _app.add_middleware(SessionMiddleware)
    _app.add_middleware(ErrorHandlerMiddleware)

    _app.include_router(health_controller.router)
    _app.include_router(ajax_controller.router)

    return _app


# ---------------------------------------------------------------------------
# Fixtures: infrastructure
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_redis() -> MagicMock:
    """Mock redis.asyncio client with the calls sessions and /health use."""
    redis = MagicMock()
    redis.get = AsyncMock(return_value=None)
    redis.setex = AsyncMock(return_value=True)
    redis.expire = AsyncMock(return_value=1)
    redis.exists = AsyncMock(return_value=0)
    redis.delete = AsyncMock(return_value=1)
    redis.ping = AsyncMock(return_value=True)
    return redis


@pytest.fixture
def mock_postgres() -> MagicMock:
    """Mock PostgreSQLClient with an awaitable ping."""
    postgres = MagicMock()
    postgres.ping = AsyncMock(return_value=None)
    return postgres


@pytest.fixture
def mock_user_repo() -> MagicMock:
    """Mock UserRepository resolving every id to the test user."""
    repo = MagicMock()
    repo.get_by_id = AsyncMock(return_value=make_user())
    return repo


# ---------------------------------------------------------------------------
# Fixtures: apps and clients
# ---------------------------------------------------------------------------


@pytest.fixture
def app(
    mock_redis: MagicMock, mock_postgres: MagicMock, mock_user_repo: MagicMock
) -> FastAPI:
    """FastAPI test app with routers, middlewares and mocks."""
    return _make_test_app(mock_redis, mock_postgres, mock_user_repo)


@pytest.fixture
def client(app: FastAPI) -> Any:
    """Synchronous TestClient for the test app."""
    return TestClient(app)
