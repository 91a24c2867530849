"""Pydantic schemas for the forecast API and the completion payload."""

from __future__ import annotations

from datetime import date as date_type
from typing import Any, Literal

from pydantic import ConfigDict, Field, field_validator

from app.core.schemas import CamelModel
from app.features.signals.schemas import HolidayRecord, Location, WeatherRecord

DemandLevel = Literal["high", "medium", "low"]


# =============================================================================
# Shared
# =============================================================================


class TenantRef(CamelModel):
    """Tenant the response belongs to."""

    id: str
    name: str


# =============================================================================
# Baseline forecast
# =============================================================================


class ProductForecast(CamelModel):
    """Smoothed next-period forecast for one product.

    Attributes:
        product_id: Product identifier.
        product_name: Display name (falls back to the id).
        demand_forecast_units: Next-month unit forecast.
        confidence_score: Heuristic confidence in [0.5, 0.95].
    """

    product_id: str
    product_name: str
    demand_forecast_units: int = Field(..., ge=0)
    confidence_score: float = Field(..., ge=0.5, le=0.95)


class BaselineForecastResponse(CamelModel):
    """Response for the baseline forecast endpoint."""

    tenant: TenantRef
    forecast: list[ProductForecast] = Field(
        default_factory=list,
        description="Products sorted descending by forecast units",
    )


# =============================================================================
# Signals context
# =============================================================================


class ForecastContextResponse(CamelModel):
    """Holiday and weather context for the forecast horizon.

    Attributes:
        window: Horizon length in days.
        holidays: Next upcoming holidays (display list).
        holidays_in_window: Holidays inside ``[today, today + window)``.
        weather: Daily weather inside the window.
        location: Location the weather was requested for.
    """

    window: int
    holidays: list[HolidayRecord]
    holidays_in_window: list[HolidayRecord]
    weather: list[WeatherRecord]
    location: Location


class HolidaysResponse(CamelModel):
    """Upcoming holidays from the request day onwards."""

    current_date: date_type
    holidays: list[HolidayRecord]


# =============================================================================
# Year-over-year
# =============================================================================


class HistoricalItem(CamelModel):
    """Units sold for one product in the year-ago window."""

    product_id: str
    product_name: str
    units_sold_last_year: int = Field(..., ge=0)
    selling_price: float = Field(default=0.0, ge=0)


class DateRange(CamelModel):
    """Inclusive year-ago window."""

    start: date_type
    end: date_type
    center_date: date_type


class HistoricalResponse(CamelModel):
    """Response for the year-over-year endpoint."""

    tenant: TenantRef
    date_range: DateRange
    historical_trending: list[HistoricalItem] = Field(default_factory=list)
    message: str | None = None


# =============================================================================
# Completion payload
# =============================================================================


class HeadsUpItem(CamelModel):
    """One product the completion service flagged for the coming window.

    ``product_id`` is coerced to a string and ``demand_level`` is matched
    case-insensitively; every key is required.
    """

    product_id: str
    product_name: str
    demand_level: DemandLevel
    anomaly: bool
    rationale: str

    @field_validator("product_id", mode="before")
    @classmethod
    def coerce_product_id(cls, v: Any) -> Any:
        """Accept numeric product ids."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("demand_level", mode="before")
    @classmethod
    def normalize_demand_level(cls, v: Any) -> Any:
        """Match demand levels case-insensitively."""
        if isinstance(v, str):
            return v.strip().lower()
        return v


class HeadsUpInsights(CamelModel):
    """Full structured answer from the completion service."""

    model_config = ConfigDict(extra="ignore")

    heads_up: list[HeadsUpItem]
    window: str = "7"
    notes: list[str] = Field(default_factory=list)

    @field_validator("window", mode="before")
    @classmethod
    def coerce_window(cls, v: Any) -> Any:
        """Accept an integer window."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


# =============================================================================
# AI heads-up
# =============================================================================


class HeadsUpRequest(CamelModel):
    """Signals supplied by the caller for the AI heads-up.

    Holidays and weather are usually the output of the context endpoint;
    historical trending is usually the output of the historical endpoint.
    """

    holidays: list[HolidayRecord] = Field(default_factory=list)
    weather: list[WeatherRecord] = Field(default_factory=list)
    historical_trending: list[HistoricalItem] = Field(default_factory=list)


class HeadsUpResponse(CamelModel):
    """Response for the AI heads-up endpoint."""

    window: str
    insights: HeadsUpInsights
