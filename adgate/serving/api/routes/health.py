"""
Health Check Endpoints

Provides health and readiness checks for orchestration systems.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from adgate.config import get_settings
from adgate.database.connection import SessionProvider, check_database_health, get_session_provider

settings = get_settings()
router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    environment: str
    timestamp: datetime
    checks: Dict[str, Any]


@router.get("/health", response_model=HealthResponse)
async def health_check(
    session_provider: SessionProvider = Depends(get_session_provider),
) -> HealthResponse:
    """Application status plus database connectivity."""
    db_health = await check_database_health(session_provider)
    overall_status = "healthy" if db_health.get("status") == "healthy" else "degraded"

    return HealthResponse(
        status=overall_status,
        version=settings.version,
        environment=settings.app_env,
        timestamp=datetime.now(timezone.utc),
        checks={"database": db_health},
    )


@router.get("/health/live")
async def liveness_check() -> Dict[str, str]:
    """Returns 200 while the process is running."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(
    response: Response,
    session_provider: SessionProvider = Depends(get_session_provider),
) -> Dict[str, str]:
    """Returns 503 until the database answers."""
    db_health = await check_database_health(session_provider)
    if db_health.get("status") != "healthy":
        response.status_code = 503
        return {"status": "not_ready", "reason": "database_unavailable"}
    return {"status": "ready"}
