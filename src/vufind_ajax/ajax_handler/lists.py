"""Favorites list handlers.

addToList, editList and editListResource take their arguments from a nested
form field:

    params[listId]=3&params[ids][]=Solr|123

listId may be NEW to create a list first.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from vufind_ajax.ajax_handler.base import AbstractBase, ResponseTuple
from vufind_ajax.ajax_handler.params import Params
from vufind_ajax.constants import DEFAULT_SEARCH_BACKEND
from vufind_ajax.infrastructure.i18n.translator import Translator
from vufind_ajax.infrastructure.persistence.postgresql.models import User, UserList
from vufind_ajax.infrastructure.rendering.renderer import TemplateRenderer
from vufind_ajax.repository.resource_repository import ResourceRepository
from vufind_ajax.repository.user_list_repository import UserListRepository
from vufind_ajax.service.record_loader import RecordLoader
from vufind_ajax.service.session_settings import SessionSettings

logger = logging.getLogger(__name__)

NEW_LIST = "NEW"


def split_record_key(key: str) -> Tuple[str, str]:
    """Split "source|id" into (source, id); a bare id uses the default source."""
    source, sep, record_id = key.partition("|")
    if not sep:
        return DEFAULT_SEARCH_BACKEND, key
    return source, record_id


def _as_list(value: Any) -> Optional[List[Any]]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        return list(value.values())
    return None


def _as_bool(value: Any) -> bool:
    return str(value).lower() in ("1", "true", "on", "yes")


def format_list(user_list: UserList) -> Dict[str, Any]:
    return {
        "id": user_list.id,
        "title": user_list.title,
        "description": user_list.description or "",
        "public": bool(user_list.public),
    }


class ListHandler(AbstractBase):
    """Common checks for handlers that change a user's lists."""

    def __init__(
        self,
        user_list_repo: UserListRepository,
        user: Optional[User],
        enabled: bool = True,
        translator: Optional[Translator] = None,
    ):
        self.user_list_repo = user_list_repo
        self.user = user
        self.enabled = enabled
        self.translator = translator

    def precheck(self) -> Optional[ResponseTuple]:
        """Error response when lists are off or nobody is logged in."""
        if not self.enabled:
            return self.format_response(
                self.translate("Lists disabled"), self.STATUS_HTTP_BAD_REQUEST
            )
        if self.user is None:
            return self.need_auth_response()
        return None

    def missing_parameter(self, name: str) -> ResponseTuple:
        return self.format_response(
            f"Missing parameter '{name}'", self.STATUS_HTTP_BAD_REQUEST
        )

    def forbidden(self) -> ResponseTuple:
        return self.format_response(
            self.translate("Invalid list id"), self.STATUS_HTTP_FORBIDDEN
        )

    async def owned_list(self, list_id: Any) -> Optional[UserList]:
        """The list with list_id if it belongs to the current user."""
        try:
            user_list = await self.user_list_repo.get_by_id(int(list_id))
        except (TypeError, ValueError):
            return None
        if user_list is None or user_list.user_id != self.user.id:
            return None
        return user_list

    @staticmethod
    def nested_params(params: Params) -> Mapping[str, Any]:
        value = params.from_post("params", params.from_query("params", {}))
        return value if isinstance(value, dict) else {}


class GetSaveStatuses(AbstractBase):
    """Lists each requested record is saved on."""

    def __init__(
        self,
        session_settings: SessionSettings,
        user_list_repo: UserListRepository,
        renderer: TemplateRenderer,
        user: Optional[User],
        translator: Optional[Translator] = None,
    ):
        self.session_settings = session_settings
        self.user_list_repo = user_list_repo
        self.renderer = renderer
        self.user = user
        self.translator = translator

    def format_list_data(self, data: List[Tuple[int, str]]) -> List[Dict[str, str]]:
        return [
            {
                "list_url": self.renderer.url("myresearch-mylist", {"id": list_id}),
                "list_title": title,
            }
            for list_id, title in data
        ]

    async def handle_request(self, params: Params) -> ResponseTuple:
        self.disable_session_writes()
        if self.user is None:
            return self.need_auth_response()

        ids = params.from_post("id", params.from_query("id", []))
        sources = params.from_post("source", params.from_query("source", []))
        if not isinstance(ids, list) or not isinstance(sources, list):
            return self.format_response(
                self.translate("Argument must be array."),
                self.STATUS_HTTP_BAD_REQUEST,
            )

        statuses: Dict[str, List[Dict[str, str]]] = {}
        for index, record_id in enumerate(ids):
            source = sources[index] if index < len(sources) else DEFAULT_SEARCH_BACKEND
            selector = f"{source}|{record_id}"
            if selector in statuses:
                continue
            data = await self.user_list_repo.get_saved_data(
                self.user.id, record_id, source
            )
            statuses[selector] = self.format_list_data(data)
        return self.format_response({"statuses": statuses})


class AddToList(ListHandler):
    """Save records to one of the user's lists."""

    def __init__(
        self,
        user_list_repo: UserListRepository,
        resource_repo: ResourceRepository,
        record_loader: RecordLoader,
        user: Optional[User],
        enabled: bool = True,
        translator: Optional[Translator] = None,
    ):
        super().__init__(user_list_repo, user, enabled, translator)
        self.resource_repo = resource_repo
        self.record_loader = record_loader

    async def handle_request(self, params: Params) -> ResponseTuple:
        error = self.precheck()
        if error is not None:
            return error

        request = self.nested_params(params)
        list_id = request.get("listId")
        keys = _as_list(request.get("ids"))
        if not list_id:
            return self.missing_parameter("listId")
        if not keys:
            return self.missing_parameter("ids")

        if list_id == NEW_LIST:
            title = request.get("title") or self.translate("My Favorites")
            user_list = await self.user_list_repo.create(self.user.id, title)
        else:
            user_list = await self.owned_list(list_id)
            if user_list is None:
                return self.forbidden()

        ids_by_source: Dict[str, List[str]] = {}
        for key in keys:
            source, record_id = split_record_key(str(key))
            ids_by_source.setdefault(source, []).append(record_id)
        records = []
        for source, record_ids in ids_by_source.items():
            records.extend(await self.record_loader.load_batch(record_ids, source))

        for record in records:
            resource = await self.resource_repo.find_or_create(
                record.id, record.source, record.title
            )
            await self.user_list_repo.save_resource(
                self.user.id, resource.id, user_list.id
            )
        logger.info(
            f"User {self.user.id} saved {len(records)} records to list {user_list.id}"
        )
        return self.format_response({"listId": user_list.id})


class EditList(ListHandler):
    """Create a list or change its title, description or visibility."""

    async def handle_request(self, params: Params) -> ResponseTuple:
        error = self.precheck()
        if error is not None:
            return error

        request = self.nested_params(params)
        list_id = request.get("id")
        if not list_id:
            return self.missing_parameter("id")
        title = request.get("title")
        if title is not None and not str(title).strip():
            return self.format_response(
                self.translate("list_edit_name_required"),
                self.STATUS_HTTP_BAD_REQUEST,
            )
        public = _as_bool(request["public"]) if "public" in request else None

        if list_id == NEW_LIST:
            if title is None:
                return self.missing_parameter("title")
            user_list = await self.user_list_repo.create(
                self.user.id, title, request.get("desc"), bool(public)
            )
        else:
            if await self.owned_list(list_id) is None:
                return self.forbidden()
            user_list = await self.user_list_repo.update(
                int(list_id), title, request.get("desc"), public
            )
        return self.format_response(format_list(user_list))


class EditListResource(ListHandler):
    """Change the notes of a record saved on a list."""

    async def handle_request(self, params: Params) -> ResponseTuple:
        error = self.precheck()
        if error is not None:
            return error

        request = self.nested_params(params)
        for name in ("listId", "id", "notes"):
            if name not in request:
                return self.missing_parameter(name)

        user_list = await self.owned_list(request["listId"])
        if user_list is None:
            return self.forbidden()

        entry = await self.user_list_repo.get_user_resource(
            self.user.id,
            request["id"],
            request.get("source", DEFAULT_SEARCH_BACKEND),
            user_list.id,
        )
        if entry is None:
            return self.format_response(
                self.translate("Record not found on list"), self.STATUS_HTTP_NOT_FOUND
            )
        await self.user_list_repo.update_notes(entry.id, request["notes"])
        return self.format_response(True)


class GetMyLists(ListHandler):
    """Rendered navigation of the user's lists."""

    def __init__(
        self,
        user_list_repo: UserListRepository,
        renderer: TemplateRenderer,
        user: Optional[User],
        enabled: bool = True,
        translator: Optional[Translator] = None,
    ):
        super().__init__(user_list_repo, user, enabled, translator)
        self.renderer = renderer

    async def handle_request(self, params: Params) -> ResponseTuple:
        error = self.precheck()
        if error is not None:
            return error

        lists = await self.user_list_repo.get_lists_for_user(self.user.id)
        active = params.from_either("active")
        html = await self.renderer.render(
            "ajax/my-lists", {"lists": lists, "activeId": active}
        )
        return self.format_response({"html": html})
