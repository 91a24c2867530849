"""External demand signals: holiday calendar and weather.

Exports:
    Cache:
        - TTLCache, CacheEntry, get_signal_cache, reset_signal_cache

    Schemas:
        - HolidayRecord, WeatherRecord, Location

    Providers:
        - HolidayProvider, WeatherProvider, SignalProviderError
        - CalendarificHolidayProvider, MeteosourceWeatherProvider
        - static_holidays

    Service:
        - SignalService, SignalBundle, get_signal_service
"""

from app.features.signals.cache import (
    CacheEntry,
    TTLCache,
    get_signal_cache,
    reset_signal_cache,
)
from app.features.signals.providers import (
    CalendarificHolidayProvider,
    HolidayProvider,
    MeteosourceWeatherProvider,
    SignalProviderError,
    WeatherProvider,
    static_holidays,
)
from app.features.signals.schemas import HolidayRecord, Location, WeatherRecord
from app.features.signals.service import (
    SignalBundle,
    SignalService,
    get_signal_service,
    reset_signal_service,
)

__all__ = [
    "CacheEntry",
    "CalendarificHolidayProvider",
    "HolidayProvider",
    "HolidayRecord",
    "Location",
    "MeteosourceWeatherProvider",
    "SignalBundle",
    "SignalProviderError",
    "SignalService",
    "TTLCache",
    "WeatherProvider",
    "WeatherRecord",
    "get_signal_cache",
    "get_signal_service",
    "reset_signal_cache",
    "reset_signal_service",
    "static_holidays",
]
