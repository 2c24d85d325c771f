from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from sqlalchemy import select

if TYPE_CHECKING:
    from vufind_ajax.infrastructure.persistence.postgresql.client import (
        PostgreSQLClient,
    )

from vufind_ajax.infrastructure.persistence.postgresql.models import User


class UserRepository:
    """Repository for catalog user lookups.

    Attributes:
        client: PostgreSQL client for database access
    """

    def __init__(self, client: PostgreSQLClient):
        self.client = client

    async def get_by_id(self, user_id: int) -> Optional[User]:
        """Retrieve user by ID.

        Args:
            user_id: User identifier

        Returns:
            User instance or None
        """
        async with self.client.session() as session:
            result = await session.execute(select(User).where(User.id == user_id))
            return result.scalar_one_or_none()

    async def get_by_username(self, username: str) -> Optional[User]:
        async with self.client.session() as session:
            result = await session.execute(
                select(User).where(User.username == username)
            )
            return result.scalar_one_or_none()

    async def save_catalog_credentials(
        self, user_id: int, cat_username: str, cat_password: str
    ) -> None:
        """Store ILS credentials after a successful patron login."""
        async with self.client.session() as session:
            user = await session.get(User, user_id)
            if user is None:
                return
            user.cat_username = cat_username
            user.cat_password = cat_password

    async def clear_catalog_credentials(self, user_id: int) -> None:
        async with self.client.session() as session:
            user = await session.get(User, user_id)
            if user is None:
                return
            user.cat_username = None
            user.cat_password = None
