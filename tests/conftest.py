"""Root-level pytest configuration and shared fixtures.

Adds the src/ directory to sys.path so vufind_ajax can be imported without
installation. Provides mock factories for the services and repositories the
AJAX handlers depend on.

Key exports:
    - Mock factory functions (make_user, make_ils, make_renderer, etc.)
    - Pytest fixtures for the commonly used mocks
"""

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


# ---------------------------------------------------------------------------
# Users, records and resources
# ---------------------------------------------------------------------------


def make_user(
    user_id: int = 7,
    username: str = "reader",
    cat_username: Optional[str] = "patron1",
    cat_password: Optional[str] = "secret",
    home_library: Optional[str] = "MAIN",
) -> MagicMock:
    """Build a mock User ORM object.

    Args:
        user_id: Primary key.
        username: Login name.
        cat_username: Stored ILS username, None for users without a card.
        cat_password: Stored ILS password.
        home_library: Pickup library code.

    Returns:
        MagicMock with the User attributes handlers read.
    """
    user = MagicMock()
    user.id = user_id
    user.username = username
    user.cat_username = cat_username
    user.cat_password = cat_password
    user.home_library = home_library
    return user


def make_record(
    record_id: str = "rec1",
    title: str = "A Title",
    source: str = "Solr",
    fields: Optional[Dict[str, Any]] = None,
) -> Any:
    """Build a real Record so properties like cover_url behave normally."""
    from vufind_ajax.service.record_loader import Record

    data = {"id": record_id, "title": title}
    data.update(fields or {})
    return Record(id=record_id, source=source, fields=data)


def make_record_loader(record: Any = None, batch: Optional[List[Any]] = None):
    loader = MagicMock()
    loader.load = AsyncMock(return_value=record or make_record())
    loader.load_batch = AsyncMock(return_value=batch or [])
    return loader


def make_resource(resource_id: int = 11) -> MagicMock:
    resource = MagicMock()
    resource.id = resource_id
    return resource


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


def make_resource_repo(resource: Optional[MagicMock] = None) -> MagicMock:
    repo = MagicMock()
    default = resource or make_resource()
    repo.find = AsyncMock(return_value=default)
    repo.find_or_create = AsyncMock(return_value=default)
    repo.add_or_update_rating = AsyncMock(return_value=None)
    return repo


def make_comments_repo() -> MagicMock:
    """Build a mock CommentsRepository.

    Returns:
        MagicMock whose add() answers comment id 99 and whose lookups are empty.
    """
    repo = MagicMock()
    repo.add = AsyncMock(return_value=99)
    repo.get_by_id = AsyncMock(return_value=None)
    repo.get_for_resource = AsyncMock(return_value=[])
    repo.delete_if_owner = AsyncMock(return_value=True)
    repo.mark_inappropriate = AsyncMock(return_value=None)
    repo.get_inappropriate_comment_ids = AsyncMock(return_value=[])
    return repo


def make_tags_repo(tags: Optional[List[Dict[str, Any]]] = None) -> MagicMock:
    repo = MagicMock()
    repo.add_tag = AsyncMock(return_value=None)
    repo.delete_tag = AsyncMock(return_value=None)
    repo.get_for_resource = AsyncMock(return_value=tags or [])
    return repo


def make_user_list(
    list_id: int = 3,
    user_id: int = 7,
    title: str = "Reading",
    description: Optional[str] = None,
    public: bool = False,
) -> MagicMock:
    user_list = MagicMock()
    user_list.id = list_id
    user_list.user_id = user_id
    user_list.title = title
    user_list.description = description
    user_list.public = public
    return user_list


def make_user_list_repo(user_list: Optional[MagicMock] = None) -> MagicMock:
    """Build a mock UserListRepository around a single list owned by user 7."""
    repo = MagicMock()
    default = user_list or make_user_list()
    repo.get_by_id = AsyncMock(return_value=default)
    repo.create = AsyncMock(return_value=default)
    repo.update = AsyncMock(return_value=default)
    repo.get_lists_for_user = AsyncMock(return_value=[default])
    repo.save_resource = AsyncMock(return_value=None)
    repo.get_user_resource = AsyncMock(return_value=MagicMock(id=5))
    repo.update_notes = AsyncMock(return_value=None)
    repo.get_saved_data = AsyncMock(return_value=[])
    return repo


def make_search_repo() -> MagicMock:
    repo = MagicMock()
    repo.save = AsyncMock(return_value=1)
    return repo


def make_notifications_repo(updated: bool = True) -> MagicMock:
    repo = MagicMock()
    repo.set_visibility = AsyncMock(return_value=updated)
    return repo


# ---------------------------------------------------------------------------
# Catalog services
# ---------------------------------------------------------------------------


def make_ils(
    statuses: Optional[List[List[Dict[str, Any]]]] = None,
    capability: bool = True,
) -> MagicMock:
    """Build a mock IlsConnection.

    Args:
        statuses: get_statuses() answer.
        capability: check_capability() answer.

    Returns:
        MagicMock with every ILS call as an AsyncMock.
    """
    ils = MagicMock()
    ils.check_capability = AsyncMock(return_value=capability)
    ils.get_statuses = AsyncMock(return_value=statuses or [])
    ils.get_holdings_text_field_names = AsyncMock(return_value=["notes"])
    ils.get_offline_mode = AsyncMock(return_value=None)
    ils.patron_login = AsyncMock(return_value={"id": "P1", "cat_username": "patron1"})
    ils.get_my_fines = AsyncMock(return_value=[])
    ils.get_my_holds = AsyncMock(return_value=[])
    ils.get_my_transactions = AsyncMock(return_value={"records": []})
    ils.get_my_ill_requests = AsyncMock(return_value=[])
    ils.get_my_storage_retrieval_requests = AsyncMock(return_value=[])
    ils.check_request_is_valid = AsyncMock(return_value=True)
    ils.check_ill_request_is_valid = AsyncMock(return_value=True)
    ils.check_storage_retrieval_request_is_valid = AsyncMock(return_value=True)
    ils.get_ill_pickup_locations = AsyncMock(return_value=[])
    ils.get_pickup_locations = AsyncMock(return_value=[])
    ils.get_default_pickup_location = AsyncMock(return_value=None)
    ils.change_pickup_location = AsyncMock(return_value={"success": True})
    return ils


def make_ils_authenticator(patron: Optional[Dict[str, Any]] = None) -> MagicMock:
    authenticator = MagicMock()
    authenticator.stored_catalog_login = AsyncMock(return_value=patron)
    return authenticator


def make_renderer() -> MagicMock:
    """Build a mock TemplateRenderer.

    render() answers "<template-name>" so tests can tell which template was
    used; url() fills the id into the route name.
    """
    renderer = MagicMock()

    async def _render(template: str, context: Optional[Dict[str, Any]] = None) -> str:
        return f"<{template}>"

    renderer.render = AsyncMock(side_effect=_render)
    renderer.url = MagicMock(
        side_effect=lambda route, params=None, query=None: (
            f"/{route}/{(params or {}).get('id', '')}"
        )
    )
    renderer.server_url = MagicMock(
        side_effect=lambda route, params=None: f"https://catalog.example.org/{route}"
    )
    renderer.icon = MagicMock(side_effect=lambda name, css_class="": f"[{name}]")
    renderer.localized_number = MagicMock(
        side_effect=lambda value, decimals=0: f"{value:,.{decimals}f}"
    )
    return renderer


def make_session(session_id: str = "01HSESSION", data: Optional[dict] = None):
    """Build a real CatalogSession."""
    from vufind_ajax.repository.session_store_repository import CatalogSession

    return CatalogSession(session_id=session_id, data=dict(data or {}))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def user() -> MagicMock:
    """Logged-in user with stored catalog credentials."""
    return make_user()


@pytest.fixture
def renderer() -> MagicMock:
    return make_renderer()


@pytest.fixture
def session_settings():
    from vufind_ajax.service.session_settings import SessionSettings

    return SessionSettings()


@pytest.fixture
def translator(tmp_path: Path):
    """Translator reading a small English language file."""
    from vufind_ajax.infrastructure.i18n.translator import Translator

    (tmp_path / "en.ini").write_text(
        '"on_reserve" = "On Reserve"\n'
        '"location_MAIN" = "Main Library"\n'
        '"Multiple Locations" = "Multiple Locations"\n'
        '"stats_key" = "Showing %%start%% - %%end%% of %%total%% for %%lookfor%%"\n'
        "; comment line\n"
        "plain_key = Plain value\n",
        encoding="utf-8",
    )
    return Translator(tmp_path, "en")
