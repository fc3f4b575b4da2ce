"""Health check endpoint, used by the platform healthcheck and monitoring."""

from __future__ import annotations

from fastapi import APIRouter
from sqlalchemy import text

from pitchdeck.api.v1.deps import AppSettings
from pitchdeck.core.logging import get_logger
from pitchdeck.models.database import get_session_factory
from pitchdeck.schemas.schemas import HealthResponse

router = APIRouter(tags=["health"])
logger = get_logger(__name__)


@router.get("/healthz/", response_model=HealthResponse)
async def health_check(settings: AppSettings) -> HealthResponse:
    database = "connected"
    try:
        async with get_session_factory()() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("health_db_unreachable", error=str(e))
        database = "unreachable"

    return HealthResponse(
        status="healthy" if database == "connected" else "degraded",
        environment=settings.app_env,
        database=database,
    )
