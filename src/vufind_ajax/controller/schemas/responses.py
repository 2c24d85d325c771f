"""Response schemas for the AJAX endpoint.

Every /AJAX/JSON answer, successful or not, uses the same envelope so the
browser code can branch on `status` alone.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from vufind_ajax.constants import STATUS_ERROR


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ErrorDetail(BaseModel):
    """Detailed error information."""

    code: str = Field(..., description="Error code for programmatic handling")
    message: str = Field(..., description="Human-readable error message")
    field: Optional[str] = Field(None, description="Parameter name if invalid")
    details: Optional[Dict[str, Any]] = Field(
        None, description="Additional error context"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "code": "UNKNOWN_METHOD",
                "message": "Invalid Method: getFoo",
                "field": "method",
                "details": {"method": "getFoo"},
            }
        }


class AjaxResponse(BaseModel):
    """AJAX envelope returned by handlers."""

    data: Any = Field(None, description="Handler payload")
    status: str = Field(..., description="OK, ERROR or NEED_AUTH")

    class Config:
        json_schema_extra = {
            "examples": [
                {"data": {"statuses": []}, "status": "OK"},
                {"data": "You must be logged in first", "status": "NEED_AUTH"},
            ]
        }


class AjaxErrorResponse(AjaxResponse):
    """AJAX envelope for failures that escaped a handler."""

    status: str = Field(STATUS_ERROR, description="Always ERROR")
    error: ErrorDetail = Field(..., description="Error details")
    errors: Optional[List[ErrorDetail]] = Field(
        None, description="Multiple errors (e.g., validation)"
    )
    timestamp: datetime = Field(
        default_factory=_utc_now, description="Error timestamp (UTC)"
    )
    request_id: Optional[str] = Field(None, description="Request ID for tracing")
    path: Optional[str] = Field(None, description="Path that caused the error")
    method: Optional[str] = Field(None, description="HTTP method")
    stack_trace: Optional[str] = Field(
        None, description="Stack trace (development only)"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "data": "Invalid Method: getFoo",
                "status": "ERROR",
                "error": {
                    "code": "UNKNOWN_METHOD",
                    "message": "Invalid Method: getFoo",
                },
                "timestamp": "2026-02-18T00:00:00Z",
                "request_id": "req_abc123",
                "path": "/AJAX/JSON",
                "method": "GET",
            }
        }


def ajax_response(data: Any, status: str) -> Dict[str, Any]:
    """Create the AJAX envelope for a handler payload."""
    return {"data": data, "status": status}


def error_response(
    code: str,
    message: str,
    field: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    errors: Optional[List[ErrorDetail]] = None,
    request_id: Optional[str] = None,
    path: Optional[str] = None,
    method: Optional[str] = None,
    stack_trace: Optional[str] = None,
) -> Dict[str, Any]:
    """Create an AJAX error envelope."""
    return AjaxErrorResponse(
        data=message,
        error=ErrorDetail(code=code, message=message, field=field, details=details),
        errors=errors,
        request_id=request_id,
        path=path,
        method=method,
        stack_trace=stack_trace,
    ).model_dump(mode="json", exclude_none=True)
