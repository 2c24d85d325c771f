"""Redis async client management.

Backs the session store and the rate limiter.
"""

from typing import Optional

from redis.asyncio import Redis


class RedisClient:
    """Redis connection holder.

    Attributes:
        url: Redis connection URL
        default_db: Database number used for sessions and rate limiting
        client: Redis async client, None until connected
    """

    def __init__(self, url: str, default_db: int = 0):
        self.url = url
        self.default_db = default_db
        self.client: Optional[Redis] = None

    async def connect(self) -> None:
        """Create Redis client connection."""
        if self.client is None:
            self.client = Redis.from_url(
                self.url,
                db=self.default_db,
                decode_responses=True,
                encoding="utf-8",
            )

    async def disconnect(self) -> None:
        """Close Redis client connection."""
        if self.client is not None:
            await self.client.aclose()
            self.client = None

    async def ping(self) -> bool:
        return bool(await self.get_client().ping())

    def get_client(self) -> Redis:
        """Get the underlying Redis client.

        Raises:
            RuntimeError: If connect() has not been called
        """
        if self.client is None:
            raise RuntimeError("Client not connected. Call connect() first.")

        return self.client
