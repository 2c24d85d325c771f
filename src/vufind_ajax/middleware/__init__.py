"""Middleware components.

This package provides middleware for catalog sessions, rate limiting,
and error handling.
"""

from vufind_ajax.middleware.error_handler_middleware import ErrorHandlerMiddleware
from vufind_ajax.middleware.rate_limiting_middleware import RateLimitMiddleware
from vufind_ajax.middleware.session_middleware import (
    SessionMiddleware,
    get_session,
    get_session_settings,
)

__all__ = [
    "ErrorHandlerMiddleware",
    "RateLimitMiddleware",
    "SessionMiddleware",
    "get_session",
    "get_session_settings",
]
