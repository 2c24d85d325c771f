from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Tuple

from sqlalchemy import delete, select

if TYPE_CHECKING:
    from vufind_ajax.infrastructure.persistence.postgresql.client import (
        PostgreSQLClient,
    )

from vufind_ajax.infrastructure.persistence.postgresql.models import (
    Comment,
    CommentInappropriate,
    Resource,
    User,
)


class CommentsRepository:
    """Repository for record comments and inappropriate-comment reports.

    Attributes:
        client: PostgreSQL client for database access
    """

    def __init__(self, client: PostgreSQLClient):
        self.client = client

    async def add(self, user_id: int, resource_id: int, text: str) -> int:
        """Create a comment.

        Args:
            user_id: Author
            resource_id: Commented resource
            text: Comment body

        Returns:
            New comment id
        """
        async with self.client.session() as session:
            comment = Comment(user_id=user_id, resource_id=resource_id, comment=text)
            session.add(comment)
            await session.flush()
            return comment.id

    async def get_by_id(self, comment_id: int) -> Optional[Comment]:
        async with self.client.session() as session:
            return await session.get(Comment, comment_id)

    async def get_for_resource(
        self, record_id: str, source: str = "Solr"
    ) -> List[Tuple[Comment, Optional[str]]]:
        """List comments on a record, oldest first, with the author's username.

        Returns:
            List of (Comment, username) tuples
        """
        async with self.client.session() as session:
            result = await session.execute(
                select(Comment, User.username)
                .join(Resource, Resource.id == Comment.resource_id)
                .outerjoin(User, User.id == Comment.user_id)
                .where(Resource.record_id == record_id, Resource.source == source)
                .order_by(Comment.created.asc())
            )
            return [(row[0], row[1]) for row in result.all()]

    async def delete_if_owner(self, comment_id: int, user_id: int) -> bool:
        """Delete a comment only if it belongs to the given user.

        Returns:
            True if a comment was deleted
        """
        async with self.client.session() as session:
            result = await session.execute(
                delete(Comment).where(
                    Comment.id == comment_id,
                    Comment.user_id == user_id,
                )
            )
            return result.rowcount > 0

    async def mark_inappropriate(
        self, user_id: Optional[int], comment_id: int, reason: str
    ) -> None:
        async with self.client.session() as session:
            session.add(
                CommentInappropriate(
                    user_id=user_id, comment_id=comment_id, reason=reason
                )
            )

    async def get_inappropriate_comment_ids(self, user_id: int) -> List[int]:
        """Comment ids the user has already reported."""
        async with self.client.session() as session:
            result = await session.execute(
                select(CommentInappropriate.comment_id).where(
                    CommentInappropriate.user_id == user_id
                )
            )
            return list(result.scalars().all())
