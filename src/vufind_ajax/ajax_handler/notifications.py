"""Notification page and broadcast handlers."""

import logging
from typing import Any, Optional

from vufind_ajax.ajax_handler.base import AbstractBase, ResponseTuple
from vufind_ajax.ajax_handler.params import Params
from vufind_ajax.constants import SESSION_CLOSED_BROADCASTS
from vufind_ajax.infrastructure.i18n.translator import Translator
from vufind_ajax.infrastructure.persistence.postgresql.models import User
from vufind_ajax.repository.notifications_repository import (
    NOTIFICATION_MODELS,
    NotificationsRepository,
)
from vufind_ajax.repository.session_store_repository import CatalogSession

logger = logging.getLogger(__name__)


def _as_flag(value: Any) -> bool:
    return str(value).lower() in ("1", "true", "on", "yes")


class NotificationsVisibility(AbstractBase):
    """Show or hide a page or broadcast.

    Form fields: type (page or broadcast), id, and at least one of
    visibility and visibility_global.
    """

    def __init__(
        self,
        notifications_repo: NotificationsRepository,
        user: Optional[User],
        enabled: bool = True,
        translator: Optional[Translator] = None,
    ):
        self.notifications_repo = notifications_repo
        self.user = user
        self.enabled = enabled
        self.translator = translator

    async def handle_request(self, params: Params) -> ResponseTuple:
        if not self.enabled:
            return self.format_response(
                self.translate("Notifications disabled"), self.STATUS_HTTP_BAD_REQUEST
            )
        if self.user is None:
            return self.need_auth_response()

        kind = params.from_either("type")
        notification_id = params.from_either("id")
        changes = {
            field: params.from_either(field)
            for field in ("visibility", "visibility_global")
            if params.from_either(field) is not None
        }
        if kind not in NOTIFICATION_MODELS or not notification_id:
            return self.format_response(
                "Missing parameter 'type' or 'id'", self.STATUS_HTTP_BAD_REQUEST
            )
        if not changes:
            return self.format_response(
                "Missing parameter 'visibility'", self.STATUS_HTTP_BAD_REQUEST
            )

        try:
            notification_id = int(notification_id)
        except ValueError:
            return self.format_response(
                f"Invalid id: {notification_id}", self.STATUS_HTTP_BAD_REQUEST
            )

        for field, value in changes.items():
            updated = await self.notifications_repo.set_visibility(
                kind, notification_id, field, _as_flag(value)
            )
            if not updated:
                return self.format_response(
                    self.translate("Notification not found"),
                    self.STATUS_HTTP_NOT_FOUND,
                )
        logger.info(f"User {self.user.id} changed {kind} {notification_id}: {changes}")
        return self.format_response(True)


class CloseBroadcast(AbstractBase):
    """Remember in the session that the visitor dismissed a broadcast."""

    def __init__(self, session: Optional[CatalogSession]):
        self.session = session

    async def handle_request(self, params: Params) -> ResponseTuple:
        broadcast_id = params.from_either("id")
        if not broadcast_id:
            return self.format_response(
                "Missing parameter 'id'", self.STATUS_HTTP_BAD_REQUEST
            )
        if self.session is not None:
            self.session.append_unique(SESSION_CLOSED_BROADCASTS, str(broadcast_id))
        return self.format_response(True)
