"""Basic health check endpoint.

This module provides a simple health check endpoint for monitoring
database and Redis connectivity.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response model.

    Attributes:
        status: Overall system status (healthy/unhealthy)
        postgres: PostgreSQL connection status
        redis: Redis connection status
        error: Error message if unhealthy
    """

    status: str = Field(..., description="Overall system status")
    postgres: Optional[str] = Field(None, description="PostgreSQL status")
    redis: Optional[str] = Field(None, description="Redis status")
    error: Optional[str] = Field(None, description="Error message if unhealthy")

    class Config:
        json_schema_extra = {
            "examples": [
                {"status": "healthy", "postgres": "connected", "redis": "connected"},
                {"status": "unhealthy", "error": "PostgreSQL connection failed"},
            ]
        }


@router.get("/", include_in_schema=False)
async def root_redirect() -> RedirectResponse:
    """Redirect root path to /health."""
    return RedirectResponse(url="/health")


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="System Health Check",
    description="Verifies PostgreSQL and Redis connectivity.",
    responses={503: {"description": "System is unhealthy"}},
)
async def health_check(request: Request):
    """Report database and Redis connectivity.

    Answers 503 with the error message when either check fails.
    """
    try:
        await request.app.state.postgres.ping()
        await request.app.state.redis_client.ping()
    except Exception as e:
        logger.error(f"Health check failed: {e}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=HealthResponse(status="unhealthy", error=str(e)).model_dump(
                exclude_none=True
            ),
        )

    return HealthResponse(status="healthy", postgres="connected", redis="connected")
