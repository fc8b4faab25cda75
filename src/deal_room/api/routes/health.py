"""Health check endpoint.

Verifies database connectivity and returns structured status.
Used by Docker healthchecks, load balancers, and monitoring systems.
"""

from __future__ import annotations

from fastapi import APIRouter

from deal_room.config import get_settings
from deal_room.infrastructure.database.engine import ping_db
from deal_room.logging_config import get_logger
from deal_room.schemas.deal import HealthResponse

router = APIRouter(tags=["Health"])
logger = get_logger(__name__)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns the health status of the application and its database.",
)
async def health_check() -> HealthResponse:
    """Check database connectivity."""
    try:
        await ping_db()
        db_status = "healthy"
    except Exception as exc:
        db_status = f"unhealthy: {exc}"
        logger.error("health.db_check_failed", error=str(exc))

    return HealthResponse(
        status="ok" if db_status == "healthy" else "degraded",
        version="0.1.0",
        environment=get_settings().app_env,
        database=db_status,
    )
