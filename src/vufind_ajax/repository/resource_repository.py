from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from sqlalchemy import select

if TYPE_CHECKING:
    from vufind_ajax.infrastructure.persistence.postgresql.client import (
        PostgreSQLClient,
    )

from vufind_ajax.infrastructure.persistence.postgresql.models import (
    Rating,
    Resource,
    utc_now,
)


class ResourceRepository:
    """Repository for resources (records referenced by user content).

    Attributes:
        client: PostgreSQL client for database access
    """

    def __init__(self, client: PostgreSQLClient):
        self.client = client

    async def find(self, record_id: str, source: str = "Solr") -> Optional[Resource]:
        async with self.client.session() as session:
            result = await session.execute(
                select(Resource).where(
                    Resource.record_id == record_id,
                    Resource.source == source,
                )
            )
            return result.scalar_one_or_none()

    async def find_or_create(
        self, record_id: str, source: str = "Solr", title: str = ""
    ) -> Resource:
        """Retrieve a resource row, creating it on first use.

        Args:
            record_id: Record identifier in the search backend
            source: Search backend name
            title: Title stored when the row is created

        Returns:
            Resource instance
        """
        async with self.client.session() as session:
            result = await session.execute(
                select(Resource).where(
                    Resource.record_id == record_id,
                    Resource.source == source,
                )
            )
            resource = result.scalar_one_or_none()
            if resource is None:
                resource = Resource(record_id=record_id, source=source, title=title)
                session.add(resource)
                await session.flush()
            return resource

    async def add_or_update_rating(
        self, resource_id: int, user_id: int, rating: int
    ) -> Rating:
        """Store a user's rating for a resource, replacing any previous one."""
        async with self.client.session() as session:
            result = await session.execute(
                select(Rating).where(
                    Rating.resource_id == resource_id,
                    Rating.user_id == user_id,
                )
            )
            existing = result.scalar_one_or_none()
            if existing is not None:
                existing.rating = rating
                existing.created = utc_now()
                return existing

            row = Rating(resource_id=resource_id, user_id=user_id, rating=rating)
            session.add(row)
            await session.flush()
            return row
