"""Pydantic schemas for external calendar and weather signals.

Records are immutable once built; they are shared between the cache, the
window fusion step, and API responses.
"""

from __future__ import annotations

from datetime import date as date_type

from pydantic import AliasChoices, ConfigDict, Field

from app.core.schemas import CamelModel


class HolidayRecord(CamelModel):
    """A single calendar holiday.

    Attributes:
        date: Calendar date of the holiday.
        name: Holiday name.
        is_public: Whether it is a national/public holiday.
        type: Provider's primary classification.
        description: Provider description, empty when unknown.
    """

    model_config = ConfigDict(frozen=True)

    date: date_type = Field(..., description="Holiday date (YYYY-MM-DD)")
    name: str = Field(..., min_length=1, description="Holiday name")
    is_public: bool = Field(default=False, description="National/public holiday flag")
    type: str = Field(default="Holiday", description="Primary holiday type")
    description: str = Field(default="", description="Provider description")


class WeatherRecord(CamelModel):
    """Daily weather summary for one location.

    Attributes:
        date: Forecast day.
        summary: Human-readable conditions.
    """

    model_config = ConfigDict(frozen=True)

    date: date_type = Field(..., description="Forecast day (YYYY-MM-DD)")
    summary: str = Field(
        default="",
        validation_alias=AliasChoices("summary", "weather"),
        description="Conditions summary",
    )


class Location(CamelModel):
    """Location the weather signal was requested for."""

    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)
    place_id: str = Field(..., min_length=1)
