"""Health check endpoints."""

import logging

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.orm import Session

from formloom_api import __version__
from formloom_api.config.env import get_openai_api_key
from formloom_api.db.session import get_db

router = APIRouter()
logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    services: dict[str, str]


def check_database(db: Session) -> str:
    """Check database connectivity.

    Returns:
        str: "up" if healthy, error message otherwise
    """
    try:
        db.execute(text("SELECT 1"))
        return "up"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return f"down: {str(e)[:50]}"


def check_ai_provider() -> str:
    """Report whether the AI provider is configured (no outbound call)."""
    return "configured" if get_openai_api_key() else "not_configured"


@router.get("/health", response_model=HealthResponse)
async def health_check(db: Session = Depends(get_db)) -> HealthResponse:
    """
    Health check endpoint.

    Returns service status and dependency health.
    Always returns 200 OK (use /readyz for dependency checks).
    """
    return HealthResponse(
        status="healthy",
        version=__version__,
        services={
            "api": "up",
            "database": check_database(db),
            "ai": check_ai_provider(),
        },
    )


@router.get("/readyz", response_model=HealthResponse)
async def readiness_check(response: Response, db: Session = Depends(get_db)) -> HealthResponse:
    """
    Readiness check endpoint.

    Returns 503 if the database is down. A missing AI key does not make the
    service unready; only AI endpoints fail.
    """
    services = {
        "api": "up",
        "database": check_database(db),
        "ai": check_ai_provider(),
    }

    if services["database"] != "up":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(status="not_ready", version=__version__, services=services)

    return HealthResponse(status="ready", version=__version__, services=services)
