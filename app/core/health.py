"""Health endpoints.

``/health`` is liveness: it never touches the database and reports the
signal cache size plus which upstreams have credentials. Missing holiday or
weather keys are not fatal (the service degrades to static holidays and no
weather) but a missing completion key disables ``/forecast/ai``, so any
missing key reports ``degraded``.

``/health/ready`` adds a database ping; a failed ping is ``unhealthy``.
"""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.core.logging import get_logger
from app.features.signals.cache import get_signal_cache

logger = get_logger(__name__)

router = APIRouter(tags=["health"])

HealthStatus = Literal["ok", "degraded", "unhealthy"]


class UpstreamStatus(BaseModel):
    """Whether each upstream has credentials configured."""

    holidays: bool
    weather: bool
    completion: bool

    @classmethod
    def from_settings(cls, settings: Settings) -> "UpstreamStatus":
        return cls(
            holidays=bool(settings.holiday_api_key),
            weather=bool(settings.weather_api_key),
            completion=bool(settings.llm_api_key),
        )

    @property
    def all_configured(self) -> bool:
        return self.holidays and self.weather and self.completion


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: HealthStatus
    cache_entries: int
    upstreams: UpstreamStatus
    database: Literal["connected", "disconnected"] | None = None


def _base_status(upstreams: UpstreamStatus) -> HealthStatus:
    return "ok" if upstreams.all_configured else "degraded"


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Liveness with cache size and upstream configuration."""
    upstreams = UpstreamStatus.from_settings(get_settings())
    return HealthResponse(
        status=_base_status(upstreams),
        cache_entries=len(get_signal_cache()),
        upstreams=upstreams,
    )


@router.get("/health/ready", response_model=HealthResponse)
async def readiness_check(db: Annotated[AsyncSession, Depends(get_db)]) -> HealthResponse:
    """Readiness: liveness plus a database ping.

    Args:
        db: Database session dependency.

    Returns:
        Health status with database state.
    """
    upstreams = UpstreamStatus.from_settings(get_settings())
    cache_entries = len(get_signal_cache())

    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.error(
            "health.database_disconnected",
            error=str(e),
            error_type=type(e).__name__,
        )
        return HealthResponse(
            status="unhealthy",
            cache_entries=cache_entries,
            upstreams=upstreams,
            database="disconnected",
        )

    return HealthResponse(
        status=_base_status(upstreams),
        cache_entries=cache_entries,
        upstreams=upstreams,
        database="connected",
    )
