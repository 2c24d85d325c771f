"""Redis layer for sessions and rate limiting."""

from .client import RedisClient

__all__ = ["RedisClient"]
