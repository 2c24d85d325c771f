"""Catalog session middleware.

Reads the session cookie, loads the Redis session (or starts a new one) and
resolves the logged-in user. The session, its SessionSettings and the user
are attached to request.state for the AJAX controller.

After the response a changed session is written back unless a handler
disabled session writes for this request, so slow parallel AJAX calls cannot
overwrite changes made by faster ones. Unchanged sessions only get their TTL
refreshed.
"""

import logging
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from vufind_ajax.constants import DEFAULT_SESSION_COOKIE_NAME
from vufind_ajax.service.session_settings import SessionSettings

logger = logging.getLogger(__name__)


class SessionMiddleware(BaseHTTPMiddleware):
    """Attach the catalog session to each request.

    The session store and user repository are resolved lazily from app.state
    so the middleware can be registered before the lifespan starts.

    Attributes:
        cookie_name: Name of the session cookie
        secure_cookie: Whether the cookie is restricted to HTTPS
        exempt_paths: Paths served without a session
    """

    def __init__(
        self,
        app,
        cookie_name: str = DEFAULT_SESSION_COOKIE_NAME,
        secure_cookie: bool = False,
        exempt_paths: Optional[list] = None,
    ):
        super().__init__(app)
        self.cookie_name = cookie_name
        self.secure_cookie = secure_cookie
        self.exempt_paths = exempt_paths or [
            "/health",
            "/docs",
            "/redoc",
            "/openapi.json",
        ]

    async def dispatch(self, request: Request, call_next):
        session_settings = SessionSettings()
        request.state.session_settings = session_settings
        request.state.session = None
        request.state.user = None

        session_store = getattr(request.app.state, "session_store", None)
        if session_store is None or self._is_exempt_path(request.url.path):
            return await call_next(request)

        session_id = request.cookies.get(self.cookie_name)
        session = await session_store.load(session_id) if session_id else None
        if session is None:
            session = session_store.new_session()
        request.state.session = session

        user_repo = getattr(request.app.state, "user_repo", None)
        if session.user_id is not None and user_repo is not None:
            request.state.user = await user_repo.get_by_id(session.user_id)
            if request.state.user is None:
                logger.warning(
                    f"Session {session.session_id} refers to missing user "
                    f"{session.user_id}"
                )

        response = await call_next(request)

        if session_settings.writes_disabled:
            logger.debug(f"Session writes disabled for {session.session_id}")
            return response

        if not session.dirty:
            await session_store.touch(session.session_id)
            return response

        await session_store.save(session)
        if session.is_new:
            response.set_cookie(
                self.cookie_name,
                session.session_id,
                max_age=session_store.default_ttl_seconds,
                httponly=True,
                secure=self.secure_cookie,
                samesite="lax",
            )
        return response

    def _is_exempt_path(self, path: str) -> bool:
        return any(path.startswith(exempt) for exempt in self.exempt_paths)


def get_session(request: Request):
    """Get the CatalogSession attached to this request, if any."""
    return getattr(request.state, "session", None)


def get_session_settings(request: Request) -> SessionSettings:
    """Get the SessionSettings of this request, creating one if missing."""
    settings = getattr(request.state, "session_settings", None)
    if settings is None:
        settings = SessionSettings()
        request.state.session_settings = settings
    return settings
