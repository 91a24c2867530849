"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import Settings, get_settings
from app.core.database import dispose_engine
from app.core.exceptions import register_exception_handlers
from app.core.health import router as health_router
from app.core.logging import configure_logging, get_logger
from app.core.middleware import RequestIdMiddleware
from app.features.demand.llm import get_llm_bridge
from app.features.demand.routes import router as forecast_router
from app.features.signals.cache import get_signal_cache
from app.features.signals.service import get_signal_service

logger = get_logger(__name__)

DEV_ORIGINS = ["http://localhost:5173", "http://127.0.0.1:5173"]


def _warn_missing_credentials(settings: Settings) -> None:
    missing = [
        name
        for name, value in (
            ("HOLIDAY_API_KEY", settings.holiday_api_key),
            ("WEATHER_API_KEY", settings.weather_api_key),
            ("LLM_API_KEY", settings.llm_api_key),
        )
        if not value
    ]
    if missing:
        logger.warning("app.credentials_missing", missing=missing)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Start the cache sweeper; on shutdown close upstream clients and the pool.

    Args:
        _app: FastAPI application instance (unused, required by lifespan protocol).

    Yields:
        None after startup.
    """
    settings = get_settings()

    configure_logging()
    _warn_missing_credentials(settings)
    cache = get_signal_cache()
    cache.start_sweeper(settings.cache_sweep_interval_seconds)
    logger.info(
        "app.startup_completed",
        app_name=settings.app_name,
        app_env=settings.app_env,
        horizon_days=settings.forecast_horizon_days,
        holiday_region=settings.holiday_region,
    )

    yield

    await cache.stop_sweeper()
    await get_signal_service().close()
    await get_llm_bridge().close()
    await dispose_engine()
    logger.info("app.shutdown_completed")


def create_app() -> FastAPI:
    """Build the application: middleware, problem-details handlers, routers."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Demand forecasting context and smoothing engine",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # First added = innermost
    app.add_middleware(
        CORSMiddleware,
        allow_origins=DEV_ORIGINS if settings.is_development else [],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "X-Request-ID", "X-User-ID"],
        expose_headers=["X-Request-ID", "X-Response-Time-Ms"],
    )
    app.add_middleware(RequestIdMiddleware)

    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(forecast_router)

    return app


app = create_app()
