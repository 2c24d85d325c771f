"""Redis-backed store for ULID-keyed catalog sessions.

Each browser session is a JSON document in Redis keyed by a ULID that travels
in the session cookie. The document holds the logged-in user id and a small
namespaced data container used by handlers (closed broadcasts, anonymous
inappropriate-comment reports).

Redis key layout:
  session:{session_id}   → JSON session payload, TTL
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ulid import ULID

from vufind_ajax.constants import DEFAULT_SESSION_TTL_SECONDS, SESSION_KEY_PREFIX

logger = logging.getLogger(__name__)


def _session_key(session_id: str) -> str:
    return f"{SESSION_KEY_PREFIX}:{session_id}"


@dataclass
class CatalogSession:
    """In-memory representation of a Redis session entry.

    Attributes:
        session_id: ULID used as Redis key and cookie value
        user_id: Logged-in user id, None for anonymous sessions
        data: Namespaced values stored by handlers
        created_at: Session creation time (ISO format)
        last_access: Last time the session was touched (ISO format)
        is_new: True when the session was created during this request
        dirty: True when data changed and must be persisted
    """

    session_id: str
    user_id: Optional[int] = None
    data: Dict[str, Any] = field(default_factory=dict)
    created_at: str = ""
    last_access: str = ""
    is_new: bool = False
    dirty: bool = False

    def get(self, namespace: str, default: Any = None) -> Any:
        return self.data.get(namespace, default)

    def set(self, namespace: str, value: Any) -> None:
        self.data[namespace] = value
        self.dirty = True

    def append_unique(self, namespace: str, value: Any) -> None:
        """Add value to the list stored under namespace unless already there."""
        values = list(self.data.get(namespace, []))
        if value not in values:
            values.append(value)
            self.set(namespace, values)

    def touch(self) -> None:
        self.last_access = datetime.now(timezone.utc).isoformat()
        self.dirty = True

    def to_payload(self) -> str:
        return json.dumps(
            {
                "session_id": self.session_id,
                "user_id": self.user_id,
                "data": self.data,
                "created_at": self.created_at,
                "last_access": self.last_access,
            }
        )


class SessionStoreRepository:
    """CRUD operations for Redis-backed catalog sessions.

    Attributes:
        redis: Redis async client
        default_ttl_seconds: Session lifetime in seconds
    """

    def __init__(self, redis, default_ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS):
        self.redis = redis
        self.default_ttl_seconds = default_ttl_seconds

    @staticmethod
    def generate_session_id() -> str:
        """Generate a new ULID string for use as session id."""
        return str(ULID())

    def new_session(self) -> CatalogSession:
        """Build a fresh anonymous session (not yet persisted)."""
        now = datetime.now(timezone.utc).isoformat()
        return CatalogSession(
            session_id=self.generate_session_id(),
            created_at=now,
            last_access=now,
            is_new=True,
            dirty=True,
        )

    async def load(self, session_id: str) -> Optional[CatalogSession]:
        """Retrieve a session by id.

        Args:
            session_id: ULID string from the session cookie

        Returns:
            CatalogSession or None if not found / expired
        """
        raw = await self.redis.get(_session_key(session_id))
        if raw is None:
            return None

        data = json.loads(raw)
        return CatalogSession(
            session_id=data["session_id"],
            user_id=data.get("user_id"),
            data=data.get("data", {}),
            created_at=data.get("created_at", ""),
            last_access=data.get("last_access", ""),
        )

    async def save(
        self, session: CatalogSession, ttl_seconds: Optional[int] = None
    ) -> None:
        """Persist session payload and reset its TTL."""
        ttl = ttl_seconds or self.default_ttl_seconds
        await self.redis.setex(
            _session_key(session.session_id), ttl, session.to_payload()
        )
        session.dirty = False
        logger.debug(f"Session saved: id={session.session_id} ttl={ttl}s")

    async def touch(self, session_id: str, ttl_seconds: Optional[int] = None) -> bool:
        """Extend the TTL of an existing session.

        Returns:
            True if the session exists
        """
        ttl = ttl_seconds or self.default_ttl_seconds
        return bool(await self.redis.expire(_session_key(session_id), ttl))

    async def exists(self, session_id: str) -> bool:
        return bool(await self.redis.exists(_session_key(session_id)))

    async def destroy(self, session_id: str) -> None:
        """Remove a session."""
        await self.redis.delete(_session_key(session_id))
        logger.debug(f"Session destroyed: id={session_id}")
