"""Test fixtures for signals module."""

from datetime import UTC, date, datetime, timedelta

import httpx
import pytest

from app.features.signals.cache import TTLCache, reset_signal_cache
from app.features.signals.providers import HolidayProvider, SignalProviderError, WeatherProvider
from app.features.signals.schemas import HolidayRecord, WeatherRecord
from app.features.signals.service import reset_signal_service

# =============================================================================
# Singletons
# =============================================================================


@pytest.fixture(autouse=True)
def reset_singletons():
    """Give every test a fresh signal cache and signal service."""
    reset_signal_cache()
    reset_signal_service()
    yield
    reset_signal_cache()
    reset_signal_service()


# =============================================================================
# Clock
# =============================================================================


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    """Clock fixed at 2025-11-06 09:00 UTC."""
    return FakeClock(datetime(2025, 11, 6, 9, 0, tzinfo=UTC))


@pytest.fixture
def cache(clock: FakeClock) -> TTLCache:
    """Unbounded cache driven by the fake clock."""
    return TTLCache(clock=clock)


# =============================================================================
# Logging
# =============================================================================


class RecordingLogger:
    """Stand-in structlog logger that records (level, event) pairs."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str]] = []

    def _record(self, level: str):
        def log(event: str, **kwargs) -> None:
            self.events.append((level, event))

        return log

    def __getattr__(self, level: str):
        return self._record(level)


@pytest.fixture
def recorded_logs(monkeypatch) -> RecordingLogger:
    """Route cache and signal service log calls into one recorder."""
    recorder = RecordingLogger()
    monkeypatch.setattr("app.features.signals.cache.logger", recorder)
    monkeypatch.setattr("app.features.signals.service.logger", recorder)
    return recorder


# =============================================================================
# Stub Providers
# =============================================================================


class StubHolidayProvider(HolidayProvider):
    """Holiday provider returning canned records, or failing on demand."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls: list[tuple[str, int]] = []

    async def fetch_year(self, region: str, year: int) -> list[HolidayRecord]:
        self.calls.append((region, year))
        if self.error is not None:
            raise self.error
        return [
            HolidayRecord(date=date(year, 11, 12), name="Festival Eve", is_public=True),
            HolidayRecord(date=date(year, 11, 13), name="Festival Day", is_public=True),
        ]


class StubWeatherProvider(WeatherProvider):
    """Weather provider returning one record per day, or failing on demand."""

    def __init__(self, error: Exception | None = None, empty: bool = False) -> None:
        self.error = error
        self.empty = empty
        self.calls: list[tuple[str, date, date]] = []

    async def fetch_daily(self, place_id: str, start: date, end: date) -> list[WeatherRecord]:
        self.calls.append((place_id, start, end))
        if self.error is not None:
            raise self.error
        if self.empty:
            return []
        days = (end - start).days + 1
        return [
            WeatherRecord(date=start + timedelta(days=i), summary="Sunny") for i in range(days)
        ]


@pytest.fixture
def holiday_provider() -> StubHolidayProvider:
    """Working holiday provider."""
    return StubHolidayProvider()


@pytest.fixture
def weather_provider() -> StubWeatherProvider:
    """Working weather provider."""
    return StubWeatherProvider()


@pytest.fixture
def empty_weather_provider() -> StubWeatherProvider:
    """Weather provider that answers with no data."""
    return StubWeatherProvider(empty=True)


@pytest.fixture
def failing_holiday_provider() -> StubHolidayProvider:
    """Holiday provider that always fails."""
    return StubHolidayProvider(error=SignalProviderError("HTTP 429"))


@pytest.fixture
def failing_weather_provider() -> StubWeatherProvider:
    """Weather provider that always fails."""
    return StubWeatherProvider(error=SignalProviderError("HTTP 503"))


# =============================================================================
# Upstream Payloads
# =============================================================================


@pytest.fixture
def calendarific_payload() -> dict:
    """Calendarific /holidays response with one national and one observance."""
    return {
        "meta": {"code": 200},
        "response": {
            "holidays": [
                {
                    "name": "Victory Day",
                    "description": "Victory Day is a national holiday in Bangladesh",
                    "date": {"iso": "2025-12-16"},
                    "type": ["National holiday"],
                    "primary_type": "National holiday",
                },
                {
                    "name": "Christmas Eve",
                    "description": "",
                    "date": {"iso": "2025-12-24T00:00:00+06:00"},
                    "type": ["Observance"],
                    "primary_type": "Observance",
                },
            ]
        },
    }


@pytest.fixture
def meteosource_payload() -> dict:
    """Meteosource /point response with three daily entries."""
    return {
        "lat": "23.7104N",
        "lon": "90.40744E",
        "current": {"summary": "Mostly cloudy", "weather": "mostly_cloudy"},
        "daily": {
            "data": [
                {"day": "2025-11-06", "weather": "sunny", "summary": "Sunny, light breeze"},
                {"day": "2025-11-07", "weather": "rain_shower", "summary": None},
                {"day": "2025-11-20", "weather": "cloudy", "summary": "Cloudy"},
            ]
        },
    }


@pytest.fixture
def mock_client():
    """Factory for HTTP clients routed through an in-process handler."""

    def _make(handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.MockTransport(handler),
            base_url="https://upstream.test",
        )

    return _make
