"""Custom exceptions for the VuFind AJAX service.

All custom exceptions should inherit from VuFindException for consistent error handling.
"""

from typing import Any, Dict, Optional


class VuFindException(Exception):
    """Base exception for all VuFind AJAX errors."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Initialize VuFind exception.

        Args:
            message: Human-readable error message
            code: Error code for programmatic handling
            status_code: HTTP status code
            field: Parameter name if the request was invalid
            details: Additional error context
        """
        self.message = message
        self.code = code
        self.status_code = status_code
        self.field = field
        self.details = details or {}
        super().__init__(message)


# Request Errors (400, 405)
class BadRequestError(VuFindException):
    """Missing or invalid request parameter."""

    def __init__(self, message: str = "Bad request", **kwargs):
        super().__init__(
            message=message,
            code=kwargs.pop("code", "BAD_REQUEST"),
            status_code=400,
            **kwargs,
        )


class MissingParameterError(BadRequestError):
    """Required request parameter is missing."""

    def __init__(self, field: str, **kwargs):
        super().__init__(
            message=f"Missing parameter '{field}'",
            code="MISSING_PARAMETER",
            field=field,
            **kwargs,
        )


class UnknownAjaxMethodError(BadRequestError):
    """The requested AJAX method has no registered handler."""

    def __init__(self, method: str, **kwargs):
        super().__init__(
            message=f"Invalid Method: {method}",
            code="UNKNOWN_METHOD",
            field="method",
            details={"method": method},
            **kwargs,
        )


class MethodNotAllowedError(VuFindException):
    """Operation not supported by the configured backend."""

    def __init__(self, message: str = "Method not allowed", **kwargs):
        super().__init__(
            message=message,
            code=kwargs.pop("code", "METHOD_NOT_ALLOWED"),
            status_code=405,
            **kwargs,
        )


# Authentication & Authorization Errors (401, 403)
class AuthenticationRequiredError(VuFindException):
    """No logged-in user or patron for an operation that requires one."""

    def __init__(self, message: str = "You must be logged in first", **kwargs):
        super().__init__(
            message=message,
            code=kwargs.pop("code", "NEED_AUTH"),
            status_code=401,
            **kwargs,
        )


class ForbiddenError(VuFindException):
    """Feature disabled, captcha failed, or resource owned by someone else."""

    def __init__(self, message: str = "Forbidden", **kwargs):
        super().__init__(
            message=message,
            code=kwargs.pop("code", "FORBIDDEN"),
            status_code=403,
            **kwargs,
        )


# Resource Errors (404)
class RecordMissingError(VuFindException):
    """Requested record does not exist in the search backend."""

    def __init__(self, record_id: str, source: str = "Solr", **kwargs):
        super().__init__(
            message=f"Record {source}:{record_id} does not exist.",
            code="RECORD_MISSING",
            status_code=404,
            details={"record_id": record_id, "source": source},
            **kwargs,
        )


# Server Errors (500, 503)
class ServerError(VuFindException):
    """Generic server-side failure."""

    def __init__(self, message: str = "An error has occurred", **kwargs):
        super().__init__(
            message=message,
            code=kwargs.pop("code", "SERVER_ERROR"),
            status_code=500,
            **kwargs,
        )


class ServiceUnavailableError(VuFindException):
    """Node is marked unavailable."""

    def __init__(self, message: str = "Service unavailable", **kwargs):
        super().__init__(
            message=message,
            code=kwargs.pop("code", "SERVICE_UNAVAILABLE"),
            status_code=503,
            **kwargs,
        )


class ConfigurationError(ServerError):
    """Invalid or incomplete configuration."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message=message, code="CONFIGURATION_ERROR", **kwargs)


# Collaborator Errors (500)
class ILSError(ServerError):
    """ILS gateway call failed."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message=message, code="ILS_ERROR", **kwargs)


class SearchBackendError(ServerError):
    """Search backend call failed."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message=message, code="SEARCH_BACKEND_ERROR", **kwargs)


class ResolverError(ServerError):
    """Link resolver (DOI or OpenURL) call failed."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message=message, code="RESOLVER_ERROR", **kwargs)


class RelaisError(ServerError):
    """Relais interlibrary loan call failed."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message=message, code="RELAIS_ERROR", **kwargs)
