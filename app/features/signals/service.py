"""Signal fetch service: cache-first holiday and weather retrieval.

Order of operations for every fetch:
1. Look up the deterministic cache key; a hit is returned unchanged.
2. On a miss, call the provider under a timeout.
3. On success, write back with the provider's TTL.
4. On any provider failure (missing key, network, non-2xx, timeout, bad
   payload, or an unexpected exception from a provider), log ``signals.upstream_degraded`` and return the static
   fallback. Fallbacks are never cached, so a recovered provider is used on
   the next request.

Signal failure is never fatal to a forecast request.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date as date_type
from datetime import timedelta

import structlog

from app.core.config import get_settings
from app.features.signals.cache import TTLCache, get_signal_cache
from app.features.signals.providers import (
    CalendarificHolidayProvider,
    HolidayProvider,
    MeteosourceWeatherProvider,
    WeatherProvider,
    static_holidays,
)
from app.features.signals.schemas import HolidayRecord, WeatherRecord

logger = structlog.get_logger()


def holiday_cache_key(region: str, years: Sequence[int]) -> str:
    """Cache key for a region and year range, e.g. ``holidays_BD_2025_2026``."""
    return "_".join(["holidays", region.upper(), *(str(y) for y in years)])


def weather_cache_key(place_id: str, day: date_type) -> str:
    """Cache key for a place and day, e.g. ``weather_dhaka_2025-11-06``."""
    return f"weather_{place_id}_{day.isoformat()}"


def _root_cause(error: BaseException) -> BaseException:
    """First leaf exception of a TaskGroup failure, or the error itself."""
    while isinstance(error, BaseExceptionGroup) and error.exceptions:
        error = error.exceptions[0]
    return error


@dataclass(frozen=True)
class SignalBundle:
    """Holiday and weather signals fetched together for one request.

    Attributes:
        holidays: Every holiday in the requested year range.
        weather: Daily weather for the forecast horizon.
    """

    holidays: list[HolidayRecord]
    weather: list[WeatherRecord]


class SignalService:
    """Cache-first access to holiday and weather providers."""

    def __init__(
        self,
        cache: TTLCache | None = None,
        holiday_provider: HolidayProvider | None = None,
        weather_provider: WeatherProvider | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            cache: Cache to consult (defaults to the process-wide cache).
            holiday_provider: Holiday backend (defaults to Calendarific).
            weather_provider: Weather backend (defaults to Meteosource).
        """
        self.settings = get_settings()
        self.cache = cache if cache is not None else get_signal_cache()
        self.holiday_provider = holiday_provider or CalendarificHolidayProvider()
        self.weather_provider = weather_provider or MeteosourceWeatherProvider()

    async def _fetch_years(self, region: str, years: Sequence[int]) -> list[HolidayRecord]:
        # A failing year cancels the others still in flight
        async with asyncio.TaskGroup() as tg:
            tasks = [tg.create_task(self.holiday_provider.fetch_year(region, y)) for y in years]
        return [h for task in tasks for h in task.result()]

    async def fetch_holidays(self, region: str, years: Sequence[int]) -> list[HolidayRecord]:
        """Return holidays for ``region`` across ``years``.

        Args:
            region: ISO country code.
            years: Years to fetch (one upstream call per year, issued concurrently).

        Returns:
            Holiday records; the static table for the region on upstream failure.
        """
        key = holiday_cache_key(region, years)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("signals.cache_hit", key=key)
            return list(cached)

        try:
            holidays = await asyncio.wait_for(
                self._fetch_years(region, years),
                timeout=self.settings.signal_timeout_seconds,
            )
        except Exception as e:
            cause = _root_cause(e)
            fallback = [h for y in years for h in static_holidays(region, y)]
            logger.warning(
                "signals.upstream_degraded",
                signal="holidays",
                region=region,
                years=list(years),
                error=str(cause) or type(cause).__name__,
                error_type=type(cause).__name__,
                fallback_count=len(fallback),
            )
            return fallback

        self.cache.set(key, holidays, self.settings.holiday_cache_ttl_minutes)
        logger.info(
            "signals.holidays_fetched",
            region=region,
            years=list(years),
            count=len(holidays),
        )
        return list(holidays)

    async def fetch_weather(
        self,
        place_id: str,
        start: date_type,
        end: date_type,
    ) -> list[WeatherRecord]:
        """Return daily weather for ``place_id`` from ``start`` to ``end`` inclusive.

        Args:
            place_id: Provider place identifier.
            start: First day.
            end: Last day.

        Returns:
            Weather records; empty on upstream failure.
        """
        key = weather_cache_key(place_id, start)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("signals.cache_hit", key=key)
            return list(cached)

        try:
            weather = await asyncio.wait_for(
                self.weather_provider.fetch_daily(place_id, start, end),
                timeout=self.settings.signal_timeout_seconds,
            )
        except Exception as e:
            logger.warning(
                "signals.upstream_degraded",
                signal="weather",
                place_id=place_id,
                error=str(e) or type(e).__name__,
                error_type=type(e).__name__,
            )
            return []

        if weather:
            self.cache.set(key, weather, self.settings.weather_cache_ttl_minutes)
        logger.info("signals.weather_fetched", place_id=place_id, days=len(weather))
        return list(weather)

    async def fetch_signals(
        self,
        today: date_type,
        place_id: str,
        region: str | None = None,
        horizon_days: int | None = None,
    ) -> SignalBundle:
        """Fetch holidays (this year and next) and weather concurrently.

        Both fetches complete, successfully or via fallback, before returning.

        Args:
            today: Request date.
            place_id: Weather place identifier.
            region: Holiday region (defaults to settings).
            horizon_days: Weather horizon (defaults to settings).

        Returns:
            SignalBundle with both signal lists.
        """
        region = region or self.settings.holiday_region
        horizon = horizon_days or self.settings.forecast_horizon_days
        end = today + timedelta(days=horizon - 1)

        holidays, weather = await asyncio.gather(
            self.fetch_holidays(region, (today.year, today.year + 1)),
            self.fetch_weather(place_id, today, end),
        )
        return SignalBundle(holidays=holidays, weather=weather)

    async def close(self) -> None:
        """Close provider HTTP clients."""
        await self.holiday_provider.close()
        await self.weather_provider.close()


# Singleton instance for dependency injection
_signal_service: SignalService | None = None


def get_signal_service() -> SignalService:
    """Get singleton signal service instance.

    Returns:
        SignalService bound to the process-wide cache.
    """
    global _signal_service
    if _signal_service is None:
        _signal_service = SignalService()
        logger.info("signals.service_initialized")
    return _signal_service


def reset_signal_service() -> None:
    """Reset the singleton signal service. Useful for testing."""
    global _signal_service
    _signal_service = None
