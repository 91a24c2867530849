"""Forecast API routes.

Every endpoint is tenant-scoped: the tenant id is a path parameter and the
caller must own it (``get_authorized_tenant``) before anything is computed.
"""

from __future__ import annotations

from datetime import date
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import DatabaseError, InvalidDateInputError
from app.features.data_platform.models import Business
from app.features.demand.deps import get_authorized_tenant, get_sales_repository
from app.features.demand.repository import SalesRepository
from app.features.demand.schemas import (
    BaselineForecastResponse,
    ForecastContextResponse,
    HeadsUpRequest,
    HeadsUpResponse,
    HistoricalResponse,
    HolidaysResponse,
)
from app.features.demand.service import DemandService

logger = structlog.get_logger()

router = APIRouter(prefix="/forecast", tags=["forecast"])

MIN_YEAR = 1900
MAX_YEAR = 2200


def get_demand_service() -> DemandService:
    """Get demand service instance."""
    return DemandService()


def parse_iso_date(value: str | None, field: str) -> date | None:
    """Parse an optional ``YYYY-MM-DD`` query value.

    Raises:
        InvalidDateInputError: If the value is not a calendar date.
    """
    if value is None:
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError as e:
        raise InvalidDateInputError(
            f"'{field}' must be an ISO date (YYYY-MM-DD), got {value!r}",
            details={"field": field, "value": value},
        ) from e


def parse_year(value: str | None) -> int | None:
    """Parse an optional year query value.

    Raises:
        InvalidDateInputError: If the value is not an integer in range.
    """
    if value is None:
        return None
    try:
        year = int(value.strip())
    except ValueError as e:
        raise InvalidDateInputError(
            f"'year' must be an integer, got {value!r}",
            details={"field": "year", "value": value},
        ) from e
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise InvalidDateInputError(
            f"'year' must be between {MIN_YEAR} and {MAX_YEAR}, got {year}",
            details={"field": "year", "value": value},
        )
    return year


@router.get(
    "/context/{tenant_id}",
    response_model=ForecastContextResponse,
    summary="Holiday and weather context",
    description="""
Holiday and weather signals for the forecast horizon starting today.

- `holidays`: the next upcoming holidays (display list)
- `holidays_in_window`: holidays inside `[today, today + window)`
- `weather`: daily weather inside the window

Signals are served from cache when fresh. Upstream failures degrade to the
static holiday table and an empty weather list; they never fail the request.
""",
)
async def get_context(
    business: Annotated[Business, Depends(get_authorized_tenant)],
    service: Annotated[DemandService, Depends(get_demand_service)],
    lat: Annotated[float | None, Query(ge=-90, le=90)] = None,
    lon: Annotated[float | None, Query(ge=-180, le=180)] = None,
    place_id: Annotated[str | None, Query(min_length=1, max_length=100)] = None,
) -> ForecastContextResponse:
    """Return holiday and weather context for the tenant's forecast window.

    Args:
        business: Authorized tenant.
        service: Demand service.
        lat: Latitude (defaults to settings).
        lon: Longitude (defaults to settings).
        place_id: Weather place identifier (defaults to settings).

    Returns:
        Forecast context.
    """
    return await service.get_context(lat=lat, lon=lon, place_id=place_id)


@router.get(
    "/generate/{tenant_id}",
    response_model=BaselineForecastResponse,
    summary="Baseline demand forecast",
    description="""
Next-month unit forecast per product by exponential smoothing over monthly
series. Units are estimated as `line_total / selling_price` (1 when the price
is unknown). Results are sorted descending by forecast units.
""",
)
async def generate_forecast(
    business: Annotated[Business, Depends(get_authorized_tenant)],
    repository: Annotated[SalesRepository, Depends(get_sales_repository)],
    service: Annotated[DemandService, Depends(get_demand_service)],
) -> BaselineForecastResponse:
    """Generate the baseline forecast.

    Args:
        business: Authorized tenant.
        repository: Tenant-scoped reads.
        service: Demand service.

    Returns:
        Per-product forecasts.

    Raises:
        DatabaseError: If a database read fails.
    """
    try:
        return await service.generate_baseline(repository, business)
    except SQLAlchemyError as e:
        logger.error("demand.forecast_failed", error=str(e), error_type=type(e).__name__)
        raise DatabaseError("Failed to generate forecast", details={"error": str(e)}) from e


@router.get(
    "/historical/{tenant_id}",
    response_model=HistoricalResponse,
    summary="Year-over-year sales",
    description="""
Products sold within ±7 days of the same calendar day last year. An empty
window returns an empty list with an explanatory `message`.
""",
)
async def get_historical(
    business: Annotated[Business, Depends(get_authorized_tenant)],
    repository: Annotated[SalesRepository, Depends(get_sales_repository)],
    service: Annotated[DemandService, Depends(get_demand_service)],
    today: Annotated[str | None, Query(description="Reference day (YYYY-MM-DD)")] = None,
) -> HistoricalResponse:
    """Return last year's sales around the reference day.

    Args:
        business: Authorized tenant.
        repository: Tenant-scoped reads.
        service: Demand service.
        today: Optional reference day override.

    Returns:
        Year-over-year trending.

    Raises:
        InvalidDateInputError: If ``today`` is not an ISO date.
        DatabaseError: If a database read fails.
    """
    reference = parse_iso_date(today, "today")
    try:
        return await service.get_historical(repository, business, reference)
    except SQLAlchemyError as e:
        logger.error("demand.historical_failed", error=str(e), error_type=type(e).__name__)
        raise DatabaseError(
            "Failed to fetch historical data", details={"error": str(e)}
        ) from e


@router.post(
    "/ai/{tenant_id}",
    response_model=HeadsUpResponse,
    summary="AI demand heads-up",
    description="""
Ask the completion service which products are likely to see high demand in
the forecast window. Holidays outside the window are dropped before the
prompt is built.

**Errors:**
- `COMPLETION_SERVICE_ERROR` (502): the service could not be reached
- `COMPLETION_PARSE_FAILURE` (502): the answer was not valid insights JSON;
  the raw text is returned in `raw`
""",
)
async def generate_heads_up(
    request: HeadsUpRequest,
    business: Annotated[Business, Depends(get_authorized_tenant)],
    repository: Annotated[SalesRepository, Depends(get_sales_repository)],
    service: Annotated[DemandService, Depends(get_demand_service)],
) -> HeadsUpResponse:
    """Generate AI heads-up insights.

    Args:
        request: Caller-supplied signals.
        business: Authorized tenant.
        repository: Tenant-scoped reads.
        service: Demand service.

    Returns:
        Validated insights.

    Raises:
        CompletionServiceError: If the completion call fails.
        CompletionParseError: If the answer cannot be parsed.
        DatabaseError: If a database read fails.
    """
    try:
        return await service.generate_heads_up(repository, business, request)
    except SQLAlchemyError as e:
        logger.error("demand.heads_up_failed", error=str(e), error_type=type(e).__name__)
        raise DatabaseError("Failed to load sales data", details={"error": str(e)}) from e


@router.get(
    "/holidays/{tenant_id}",
    response_model=HolidaysResponse,
    summary="Upcoming holidays",
    description="""
Next holidays from today onwards, drawn from this year and next. With `year`,
the pair `year`, `year + 1` is fetched instead; a past `year` lists from
Jan 1 of that year rather than from today.
""",
)
async def get_holidays(
    business: Annotated[Business, Depends(get_authorized_tenant)],
    service: Annotated[DemandService, Depends(get_demand_service)],
    year: Annotated[str | None, Query(description="First year of the pair to fetch")] = None,
) -> HolidaysResponse:
    """Return upcoming holidays.

    Args:
        business: Authorized tenant.
        service: Demand service.
        year: Optional first year.

    Returns:
        Upcoming holidays.

    Raises:
        InvalidDateInputError: If ``year`` is not a valid year.
    """
    return await service.get_holidays(parse_year(year))
