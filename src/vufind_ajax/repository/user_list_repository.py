from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select

if TYPE_CHECKING:
    from vufind_ajax.infrastructure.persistence.postgresql.client import (
        PostgreSQLClient,
    )

from vufind_ajax.infrastructure.persistence.postgresql.models import (
    Resource,
    UserList,
    UserResource,
)


class UserListRepository:
    """Repository for user lists and saved resources.

    Attributes:
        client: PostgreSQL client for database access
    """

    def __init__(self, client: PostgreSQLClient):
        self.client = client

    async def get_by_id(self, list_id: int) -> Optional[UserList]:
        async with self.client.session() as session:
            return await session.get(UserList, list_id)

    async def create(
        self,
        user_id: int,
        title: str,
        description: Optional[str] = None,
        public: bool = False,
    ) -> UserList:
        """Create a new list owned by user_id."""
        async with self.client.session() as session:
            user_list = UserList(
                user_id=user_id,
                title=title,
                description=description,
                public=public,
            )
            session.add(user_list)
            await session.flush()
            return user_list

    async def update(
        self,
        list_id: int,
        title: Optional[str] = None,
        description: Optional[str] = None,
        public: Optional[bool] = None,
    ) -> Optional[UserList]:
        """Update list fields that are not None.

        Returns:
            Updated UserList or None if it does not exist
        """
        async with self.client.session() as session:
            user_list = await session.get(UserList, list_id)
            if user_list is None:
                return None
            if title is not None:
                user_list.title = title
            if description is not None:
                user_list.description = description
            if public is not None:
                user_list.public = public
            return user_list

    async def get_lists_for_user(self, user_id: int) -> List[Dict[str, Any]]:
        """Lists owned by a user with their entry counts, newest first."""
        async with self.client.session() as session:
            result = await session.execute(
                select(UserList, func.count(UserResource.id))
                .outerjoin(UserResource, UserResource.list_id == UserList.id)
                .where(UserList.user_id == user_id)
                .group_by(UserList.id)
                .order_by(UserList.created.desc())
            )
            return [
                {
                    "id": user_list.id,
                    "title": user_list.title,
                    "description": user_list.description,
                    "public": user_list.public,
                    "count": count,
                }
                for user_list, count in result.all()
            ]

    async def save_resource(
        self,
        user_id: int,
        resource_id: int,
        list_id: int,
        notes: Optional[str] = None,
    ) -> UserResource:
        """Put a resource on a list.

        An existing entry keeps its notes unless new ones are given.
        """
        async with self.client.session() as session:
            result = await session.execute(
                select(UserResource).where(
                    UserResource.user_id == user_id,
                    UserResource.resource_id == resource_id,
                    UserResource.list_id == list_id,
                )
            )
            entry = result.scalar_one_or_none()
            if entry is None:
                entry = UserResource(
                    user_id=user_id,
                    resource_id=resource_id,
                    list_id=list_id,
                    notes=notes,
                )
                session.add(entry)
                await session.flush()
            elif notes is not None:
                entry.notes = notes
            return entry

    async def get_user_resource(
        self, user_id: int, record_id: str, source: str, list_id: int
    ) -> Optional[UserResource]:
        async with self.client.session() as session:
            result = await session.execute(
                select(UserResource)
                .join(Resource, Resource.id == UserResource.resource_id)
                .where(
                    UserResource.user_id == user_id,
                    UserResource.list_id == list_id,
                    Resource.record_id == record_id,
                    Resource.source == source,
                )
            )
            return result.scalar_one_or_none()

    async def update_notes(self, user_resource_id: int, notes: str) -> None:
        async with self.client.session() as session:
            entry = await session.get(UserResource, user_resource_id)
            if entry is not None:
                entry.notes = notes

    async def get_saved_data(
        self, user_id: int, record_id: str, source: str = "Solr"
    ) -> List[Tuple[int, str]]:
        """Lists on which the user saved a record.

        Returns:
            List of (list_id, list_title) tuples
        """
        async with self.client.session() as session:
            result = await session.execute(
                select(UserList.id, UserList.title)
                .join(UserResource, UserResource.list_id == UserList.id)
                .join(Resource, Resource.id == UserResource.resource_id)
                .where(
                    UserResource.user_id == user_id,
                    Resource.record_id == record_id,
                    Resource.source == source,
                )
                .order_by(UserList.title)
            )
            return [(row[0], row[1]) for row in result.all()]
