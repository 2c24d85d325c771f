"""Error handling middleware for the AJAX service.

Exceptions escaping a handler are turned into the AJAX error envelope
{"data": message, "status": "ERROR", "error": {...}} so browser code never
receives an HTML error page.
"""

import logging
import traceback
import uuid

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.datastructures import MutableHeaders
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Receive, Scope, Send

from vufind_ajax.constants import GENERIC_ERROR_MESSAGE
from vufind_ajax.controller.schemas.responses import ErrorDetail, error_response
from vufind_ajax.exception.api_exceptions import VuFindException

logger = logging.getLogger(__name__)

HTTP_STATUS_CODES = {
    400: "BAD_REQUEST",
    401: "NEED_AUTH",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    422: "UNPROCESSABLE_ENTITY",
    429: "TOO_MANY_REQUESTS",
    500: "INTERNAL_SERVER_ERROR",
    503: "SERVICE_UNAVAILABLE",
}


class ErrorHandlerMiddleware:
    """Pure ASGI middleware to catch and format all exceptions."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive=receive)
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        response_started = False

        async def send_with_request_id(message: dict) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
                headers = MutableHeaders(scope=message)
                headers.append("X-Request-ID", request_id)
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        except Exception as exc:
            if response_started:
                raise
            response = await self.handle_exception(request, exc, request_id)
            await response(scope, receive, send)

    async def handle_exception(
        self, request: Request, exc: Exception, request_id: str
    ) -> JSONResponse:
        """Handle exception and return the AJAX error envelope.

        Args:
            request: Request that caused the exception
            exc: Exception that was raised
            request_id: Request ID for tracing

        Returns:
            JSONResponse with formatted error
        """
        debug_mode = getattr(request.app.state, "debug", False)
        environment = getattr(request.app.state, "environment", "production")
        show_stack_trace = debug_mode or environment == "development"

        path = request.url.path
        method = request.method

        logger.error(
            f"Error processing request: {method} {path}",
            extra={
                "request_id": request_id,
                "path": path,
                "method": method,
                "exception_type": type(exc).__name__,
            },
            exc_info=True,
        )

        stack_trace = traceback.format_exc() if show_stack_trace else None

        if isinstance(exc, VuFindException):
            content = error_response(
                code=exc.code,
                message=exc.message,
                field=exc.field,
                details=exc.details,
                request_id=request_id,
                path=path,
                method=method,
                stack_trace=stack_trace,
            )
            status_code = exc.status_code

        elif isinstance(exc, RequestValidationError):
            errors = [
                ErrorDetail(
                    code="VALIDATION_ERROR",
                    message=error["msg"],
                    field=" -> ".join(str(loc) for loc in error["loc"]),
                    details={"type": error["type"]},
                )
                for error in exc.errors()
            ]
            content = error_response(
                code="VALIDATION_ERROR",
                message="Request validation failed",
                errors=errors,
                request_id=request_id,
                path=path,
                method=method,
                stack_trace=stack_trace,
            )
            status_code = status.HTTP_400_BAD_REQUEST

        elif isinstance(exc, StarletteHTTPException):
            content = error_response(
                code=HTTP_STATUS_CODES.get(exc.status_code, "HTTP_ERROR"),
                message=str(exc.detail),
                details={"status_code": exc.status_code},
                request_id=request_id,
                path=path,
                method=method,
                stack_trace=stack_trace,
            )
            status_code = exc.status_code

        else:
            content = error_response(
                code="INTERNAL_ERROR",
                message=str(exc) if show_stack_trace else GENERIC_ERROR_MESSAGE,
                details=(
                    {"exception_type": type(exc).__name__} if show_stack_trace else None
                ),
                request_id=request_id,
                path=path,
                method=method,
                stack_trace=stack_trace,
            )
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

        headers = {"X-Request-ID": request_id}
        if isinstance(exc, StarletteHTTPException) and exc.headers:
            headers.update(exc.headers)
        return JSONResponse(status_code=status_code, content=content, headers=headers)
