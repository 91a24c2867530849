"""Upstream signal providers: holiday calendar and weather.

Providers only talk HTTP and map payloads into records. They raise
``SignalProviderError`` on any failure; caching and the static-fallback
policy live in ``SignalService``.

Backends:
- Calendarific (holidays, keyed by country + year)
- Meteosource free tier (daily weather, keyed by place_id)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date as date_type
from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from app.core.config import get_settings
from app.features.signals.schemas import HolidayRecord, WeatherRecord

logger = structlog.get_logger()


class SignalProviderError(Exception):
    """Error fetching or decoding an upstream signal."""

    pass


# Well-known annual holidays used when the calendar provider is unavailable.
# (month, day, name, is_public)
STATIC_HOLIDAYS: dict[str, list[tuple[int, int, str, bool]]] = {
    "BD": [
        (2, 21, "International Mother Language Day", True),
        (3, 17, "Mujib's Birthday", True),
        (3, 26, "Independence Day", True),
        (4, 14, "Bengali New Year (Pohela Boishakh)", True),
        (5, 1, "May Day", True),
        (8, 15, "National Mourning Day", True),
        (12, 16, "Victory Day", True),
        (12, 25, "Christmas Day", False),
    ],
}


def static_holidays(region: str, year: int) -> list[HolidayRecord]:
    """Return the built-in holiday table for ``region`` in ``year``.

    Args:
        region: ISO country code.
        year: Calendar year.

    Returns:
        Holiday records, empty for regions without a table.
    """
    return [
        HolidayRecord(date=date_type(year, month, day), name=name, is_public=is_public)
        for month, day, name, is_public in STATIC_HOLIDAYS.get(region.upper(), [])
    ]


def _client(base_url: str, timeout_seconds: float) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=httpx.Timeout(timeout_seconds, connect=min(timeout_seconds, 5.0)),
        headers={"Accept-Encoding": "gzip"},
    )


class HolidayProvider(ABC):
    """Source of holiday records for one region and year."""

    @abstractmethod
    async def fetch_year(self, region: str, year: int) -> list[HolidayRecord]:
        """Fetch holidays for ``region`` in ``year``.

        Raises:
            SignalProviderError: If the upstream call fails.
        """
        ...

    async def close(self) -> None:  # noqa: B027
        """Release network resources, if any."""


class WeatherProvider(ABC):
    """Source of daily weather records for one place."""

    @abstractmethod
    async def fetch_daily(
        self,
        place_id: str,
        start: date_type,
        end: date_type,
    ) -> list[WeatherRecord]:
        """Fetch daily weather for ``place_id`` between ``start`` and ``end`` inclusive.

        Raises:
            SignalProviderError: If the upstream call fails.
        """
        ...

    async def close(self) -> None:  # noqa: B027
        """Release network resources, if any."""


class CalendarificHolidayProvider(HolidayProvider):
    """Holiday provider backed by the Calendarific v2 API."""

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        """Initialize the provider.

        Args:
            client: Optional preconfigured HTTP client (tests inject a mock transport).
        """
        self.settings = get_settings()
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = _client(
                self.settings.holiday_api_base_url, self.settings.signal_timeout_seconds
            )
        return self._client

    async def fetch_year(self, region: str, year: int) -> list[HolidayRecord]:
        """Fetch holidays for one country and year."""
        if not self.settings.holiday_api_key:
            raise SignalProviderError("Holiday API key not configured. Set HOLIDAY_API_KEY.")

        try:
            response = await self._get_client().get(
                "/holidays",
                params={
                    "api_key": self.settings.holiday_api_key,
                    "country": region,
                    "year": year,
                },
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise SignalProviderError(
                f"Calendarific returned HTTP {e.response.status_code}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise SignalProviderError(f"Calendarific request failed: {e}") from e

        return self._parse(payload)

    @staticmethod
    def _parse(payload: Any) -> list[HolidayRecord]:
        response = payload.get("response") if isinstance(payload, dict) else None
        holidays = response.get("holidays") if isinstance(response, dict) else None
        if not isinstance(holidays, list):
            return []

        records: list[HolidayRecord] = []
        for raw in holidays:
            try:
                iso = str(raw["date"]["iso"])[:10]
                types = raw.get("type") or []
                records.append(
                    HolidayRecord(
                        date=date_type.fromisoformat(iso),
                        name=raw["name"],
                        is_public="National holiday" in types,
                        type=raw.get("primary_type") or "Holiday",
                        description=raw.get("description") or "",
                    )
                )
            except (AttributeError, KeyError, TypeError, ValueError, ValidationError) as e:
                raise SignalProviderError(f"Malformed Calendarific holiday: {e}") from e
        return records

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class MeteosourceWeatherProvider(WeatherProvider):
    """Weather provider backed by the Meteosource free ``point`` endpoint."""

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        """Initialize the provider.

        Args:
            client: Optional preconfigured HTTP client (tests inject a mock transport).
        """
        self.settings = get_settings()
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = _client(
                self.settings.weather_api_base_url, self.settings.signal_timeout_seconds
            )
        return self._client

    async def fetch_daily(
        self,
        place_id: str,
        start: date_type,
        end: date_type,
    ) -> list[WeatherRecord]:
        """Fetch daily summaries, falling back to today's current conditions."""
        if not self.settings.weather_api_key:
            raise SignalProviderError("Weather API key not configured. Set WEATHER_API_KEY.")

        try:
            response = await self._get_client().get(
                "/point",
                params={
                    "place_id": place_id,
                    "sections": "daily",
                    "timezone": "UTC",
                    "language": "en",
                    "units": "metric",
                    "key": self.settings.weather_api_key,
                },
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise SignalProviderError(
                f"Meteosource returned HTTP {e.response.status_code}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise SignalProviderError(f"Meteosource request failed: {e}") from e

        return self._parse(payload, start, end)

    @staticmethod
    def _parse(payload: Any, start: date_type, end: date_type) -> list[WeatherRecord]:
        try:
            daily = payload.get("daily") or {}
            days = daily.get("data")
            records: list[WeatherRecord] = []
            if isinstance(days, list):
                for day in days:
                    day_date = date_type.fromisoformat(str(day["day"])[:10])
                    if start <= day_date <= end:
                        summary = day.get("summary") or day.get("weather") or ""
                        records.append(WeatherRecord(date=day_date, summary=summary))

            # Only the current one-shot conditions are available on some plans
            if not records:
                current = (payload.get("current") or {}).get("weather")
                if current:
                    records.append(WeatherRecord(date=start, summary=str(current)))
        except (AttributeError, KeyError, TypeError, ValueError, ValidationError) as e:
            raise SignalProviderError(f"Malformed Meteosource payload: {e}") from e
        return records

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
