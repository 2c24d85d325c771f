"""Rate limiting middleware using Redis sliding window algorithm.

Requests are counted per session (or client address for requests without a
session) and per AJAX method, so a page firing many different lookups is not
throttled by one busy method.
"""

import logging
import time
from typing import Optional

from fastapi import HTTPException, Request, status
from starlette.middleware.base import BaseHTTPMiddleware

from vufind_ajax.constants import (
    DEFAULT_RATE_LIMIT_MAX_REQUESTS,
    DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
)

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rate limiting middleware using Redis sliding window.

    Attributes:
        redis_client: Async Redis client or a coroutine function returning one
        window_seconds: Time window for rate limit
        max_requests: Maximum requests per window
        enabled: Whether rate limiting is active
        exempt_paths: Paths exempt from rate limiting
    """

    def __init__(
        self,
        app,
        redis_client,
        window_seconds: int = DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
        max_requests: int = DEFAULT_RATE_LIMIT_MAX_REQUESTS,
        enabled: bool = True,
        exempt_paths: Optional[list] = None,
    ):
        super().__init__(app)
        self.redis_client = redis_client
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.enabled = enabled
        self.exempt_paths = exempt_paths or [
            "/health",
            "/docs",
            "/redoc",
            "/openapi.json",
        ]

    async def _get_redis(self):
        """Resolve the Redis client, supporting lazy factory callables."""
        if callable(self.redis_client):
            return await self.redis_client()
        return self.redis_client

    async def dispatch(self, request: Request, call_next):
        """Process request and enforce rate limits.

        Raises:
            HTTPException: If rate limit exceeded (429)
        """
        if not self.enabled or self._is_exempt_path(request.url.path):
            return await call_next(request)

        redis = await self._get_redis()
        if redis is None:
            return await call_next(request)

        key = self._build_rate_limit_key(
            self._client_key(request), await self._ajax_method(request)
        )

        if await self._is_rate_limited(key, redis):
            logger.warning(f"Rate limit exceeded for {key}")
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Rate limit exceeded. Please try again later.",
                headers={"Retry-After": str(self.window_seconds)},
            )

        await self._track_request(key, redis)
        return await call_next(request)

    def _is_exempt_path(self, path: str) -> bool:
        return any(path.startswith(exempt) for exempt in self.exempt_paths)

    @staticmethod
    def _client_key(request: Request) -> str:
        """Session id when available, else the client address."""
        session = getattr(request.state, "session", None)
        if session is not None and not session.is_new:
            return f"session:{session.session_id}"
        host = request.client.host if request.client else "unknown"
        return f"ip:{host}"

    @staticmethod
    async def _ajax_method(request: Request) -> str:
        """AJAX method of the request; a posted form value wins over the query."""
        method = None
        content_type = request.headers.get("content-type", "")
        if request.method == "POST" and "form" in content_type:
            # Cache the body so the endpoint can parse the form again
            await request.body()
            form = await request.form()
            method = form.get("method")
        return str(method or request.query_params.get("method", ""))

    @staticmethod
    def _build_rate_limit_key(client_key: str, method: str) -> str:
        return f"ratelimit:{client_key}:{method or '-'}"

    async def _is_rate_limited(self, key: str, redis) -> bool:
        """Drop entries older than the window, then compare the count."""
        window_start = time.time() - self.window_seconds
        await redis.zremrangebyscore(key, 0, window_start)
        request_count = await redis.zcard(key)
        return request_count >= self.max_requests

    async def _track_request(self, key: str, redis) -> None:
        now = time.time()
        await redis.zadd(key, {f"{now}:{id(self)}": now})
        await redis.expire(key, self.window_seconds * 2)
