"""Window fusion: restrict signals to the forecast horizon.

The window is half-open, ``[start, start + horizon_days)``, anchored at the
request day's midnight. A holiday exactly ``horizon_days`` after today is
therefore outside the window but still listed as upcoming.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Protocol, TypeVar


class Dated(Protocol):
    """Anything carrying a calendar ``date``."""

    @property
    def date(self) -> date: ...


T = TypeVar("T", bound=Dated)


@dataclass(frozen=True)
class ForecastWindow:
    """Half-open day range ``[start, end)``.

    Attributes:
        start: First day inside the window.
        end: First day after the window.
    """

    start: date
    end: date

    @property
    def horizon_days(self) -> int:
        """Number of days covered by the window."""
        return (self.end - self.start).days

    def contains(self, day: date) -> bool:
        """Check whether ``day`` falls inside the window."""
        return self.start <= day < self.end


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def forecast_window(today: date | datetime, horizon_days: int = 7) -> ForecastWindow:
    """Build the forecast window starting at ``today``.

    Args:
        today: Request day (a datetime is truncated to its date).
        horizon_days: Window length in days.

    Returns:
        ForecastWindow covering ``horizon_days`` days.

    Raises:
        ValueError: If horizon_days < 1.
    """
    if horizon_days < 1:
        raise ValueError(f"horizon_days must be >= 1, got {horizon_days}")
    start = _as_date(today)
    return ForecastWindow(start=start, end=start + timedelta(days=horizon_days))


def filter_in_window(records: Iterable[T], window: ForecastWindow) -> list[T]:
    """Keep records dated inside ``window``, ordered by date.

    Args:
        records: Dated records.
        window: Forecast window.

    Returns:
        Matching records sorted ascending by date.
    """
    return sorted((r for r in records if window.contains(r.date)), key=lambda r: r.date)


def upcoming(records: Iterable[T], today: date | datetime, limit: int = 10) -> list[T]:
    """Return the next ``limit`` records dated on or after ``today``.

    Args:
        records: Dated records.
        today: Reference day.
        limit: Maximum number of records.

    Returns:
        Records sorted ascending by date, truncated to ``limit``.
    """
    start = _as_date(today)
    return sorted((r for r in records if r.date >= start), key=lambda r: r.date)[:limit]


def window_weather(records: Iterable[T], window: ForecastWindow) -> list[T]:
    """Weather inside ``window``, at most one entry per horizon day."""
    return filter_in_window(records, window)[: window.horizon_days]
