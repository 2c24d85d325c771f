"""PostgreSQL async client using SQLAlchemy.

Owns the engine for the catalog database (users, resources, comments, tags,
lists, search history, notifications) and hands out unit-of-work sessions.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)


class PostgreSQLClient:
    """Catalog database client.

    Attributes:
        url: Database connection URL
        engine: SQLAlchemy async engine
        sessionmaker: Session factory
    """

    def __init__(self, url: str, pool_size: int = 10, echo: bool = False):
        self.url = url
        self.pool_size = pool_size
        self.echo = echo
        self.engine: Optional[AsyncEngine] = None
        self.sessionmaker: Optional[async_sessionmaker] = None

    async def connect(self) -> None:
        """Create engine and session factory."""
        if self.engine is not None:
            return

        self.engine = create_async_engine(
            self.url,
            echo=self.echo,
            pool_pre_ping=True,
            pool_size=self.pool_size,
            max_overflow=self.pool_size // 2,
            pool_recycle=1800,
        )
        self.sessionmaker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def disconnect(self) -> None:
        """Dispose of engine and close all connections."""
        if self.engine is None:
            return

        await self.engine.dispose()
        self.engine = None
        self.sessionmaker = None

    async def ping(self) -> None:
        """Run a trivial query; raises if the database is unreachable."""
        async with self.session() as session:
            await session.execute(text("SELECT 1"))

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Open a session that commits on success and rolls back on error.

        Example:
            async with client.session() as session:
                result = await session.execute(select(User))
        """
        if self.sessionmaker is None:
            raise RuntimeError("Client not connected. Call connect() first.")

        session = self.sessionmaker()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
