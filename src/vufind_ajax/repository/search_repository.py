from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from vufind_ajax.infrastructure.persistence.postgresql.client import (
        PostgreSQLClient,
    )

from vufind_ajax.infrastructure.persistence.postgresql.models import Search


class SearchRepository:
    """Repository for search history.

    Attributes:
        client: PostgreSQL client for database access
    """

    def __init__(self, client: PostgreSQLClient):
        self.client = client

    async def save(
        self,
        session_id: Optional[str],
        user_id: Optional[int],
        backend: str,
        query: Dict[str, Any],
    ) -> int:
        """Append a search to the history of a session.

        Args:
            session_id: Browser session the search belongs to
            user_id: Logged-in user, if any
            backend: Search backend name
            query: Minified request parameters needed to replay the search

        Returns:
            New search id
        """
        async with self.client.session() as session:
            row = Search(
                session_id=session_id,
                user_id=user_id,
                backend=backend,
                query=query,
            )
            session.add(row)
            await session.flush()
            return row.id
