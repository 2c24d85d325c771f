from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import delete, select

if TYPE_CHECKING:
    from vufind_ajax.infrastructure.persistence.postgresql.client import (
        PostgreSQLClient,
    )

from vufind_ajax.infrastructure.persistence.postgresql.models import (
    Resource,
    ResourceTag,
    Tag,
)


class TagsRepository:
    """Repository for tags and resource/tag links.

    Attributes:
        client: PostgreSQL client for database access
        case_sensitive: Whether tags differing only by case are distinct
    """

    def __init__(self, client: PostgreSQLClient, case_sensitive: bool = False):
        self.client = client
        self.case_sensitive = case_sensitive

    def _normalize(self, tag: str) -> str:
        tag = tag.strip()
        return tag if self.case_sensitive else tag.lower()

    async def add_tag(
        self,
        resource_id: int,
        tag: str,
        user_id: int,
        list_id: Optional[int] = None,
    ) -> None:
        """Apply a tag to a resource for a user, creating the tag if needed.

        Applying the same tag twice is a no-op.
        """
        text = self._normalize(tag)
        if not text:
            return

        async with self.client.session() as session:
            result = await session.execute(select(Tag).where(Tag.tag == text))
            tag_row = result.scalar_one_or_none()
            if tag_row is None:
                tag_row = Tag(tag=text)
                session.add(tag_row)
                await session.flush()

            existing = await session.execute(
                select(ResourceTag.id).where(
                    ResourceTag.resource_id == resource_id,
                    ResourceTag.tag_id == tag_row.id,
                    ResourceTag.user_id == user_id,
                    ResourceTag.list_id == list_id
                    if list_id is not None
                    else ResourceTag.list_id.is_(None),
                )
            )
            if existing.first() is None:
                session.add(
                    ResourceTag(
                        resource_id=resource_id,
                        tag_id=tag_row.id,
                        user_id=user_id,
                        list_id=list_id,
                    )
                )

    async def delete_tag(self, resource_id: int, tag: str, user_id: int) -> None:
        text = self._normalize(tag)
        async with self.client.session() as session:
            tag_ids = select(Tag.id).where(Tag.tag == text).scalar_subquery()
            await session.execute(
                delete(ResourceTag).where(
                    ResourceTag.resource_id == resource_id,
                    ResourceTag.user_id == user_id,
                    ResourceTag.tag_id == tag_ids,
                )
            )

    async def get_for_resource(
        self, record_id: str, source: str = "Solr", user_id: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Summarize the tags on a record.

        Args:
            record_id: Record identifier
            source: Search backend name
            user_id: Current user, used to compute is_me

        Returns:
            List of {"tag", "cnt", "is_me"} dicts sorted by tag text
        """
        async with self.client.session() as session:
            result = await session.execute(
                select(Tag.tag, ResourceTag.user_id)
                .join(ResourceTag, ResourceTag.tag_id == Tag.id)
                .join(Resource, Resource.id == ResourceTag.resource_id)
                .where(Resource.record_id == record_id, Resource.source == source)
            )
            rows = result.all()

        summary: Dict[str, Dict[str, Any]] = {}
        for tag_text, tagger_id in rows:
            entry = summary.setdefault(
                tag_text, {"tag": tag_text, "cnt": 0, "is_me": False}
            )
            entry["cnt"] += 1
            if user_id is not None and tagger_id == user_id:
                entry["is_me"] = True
        return [summary[key] for key in sorted(summary)]
