from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Type, Union

from sqlalchemy import update

if TYPE_CHECKING:
    from vufind_ajax.infrastructure.persistence.postgresql.client import (
        PostgreSQLClient,
    )

from vufind_ajax.infrastructure.persistence.postgresql.models import (
    NotificationsBroadcast,
    NotificationsPage,
)

NOTIFICATION_MODELS = {
    "page": NotificationsPage,
    "broadcast": NotificationsBroadcast,
}

VISIBILITY_FIELDS = ("visibility", "visibility_global")


class NotificationsRepository:
    """Repository for notification pages and broadcasts.

    Attributes:
        client: PostgreSQL client for database access
    """

    def __init__(self, client: PostgreSQLClient):
        self.client = client

    @staticmethod
    def _model(kind: str) -> Type[Union[NotificationsPage, NotificationsBroadcast]]:
        try:
            return NOTIFICATION_MODELS[kind]
        except KeyError:
            raise ValueError(f"Unknown notification type: {kind}")

    async def get(
        self, kind: str, notification_id: int
    ) -> Optional[Union[NotificationsPage, NotificationsBroadcast]]:
        model = self._model(kind)
        async with self.client.session() as session:
            return await session.get(model, notification_id)

    async def set_visibility(
        self, kind: str, notification_id: int, field: str, value: bool
    ) -> bool:
        """Update one visibility flag of a page or broadcast.

        Args:
            kind: "page" or "broadcast"
            notification_id: Row id
            field: "visibility" or "visibility_global"
            value: New flag value

        Returns:
            True if a row was updated

        Raises:
            ValueError: For an unknown kind or field
        """
        if field not in VISIBILITY_FIELDS:
            raise ValueError(f"Unknown visibility field: {field}")

        model = self._model(kind)
        async with self.client.session() as session:
            result = await session.execute(
                update(model)
                .where(model.id == notification_id)
                .values({field: value})
            )
            return result.rowcount > 0
