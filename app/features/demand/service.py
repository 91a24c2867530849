"""Demand service: orchestration behind the forecast endpoints.

Flows:
- baseline: repository -> monthly aggregation -> exponential smoothing
- context: signal service (cache first) -> window fusion
- historical: year-over-year comparator
- heads-up: repository (catalogue, recent sellers) + caller signals ->
  window fusion -> LLM bridge

Routes resolve and authorize the tenant first; nothing here checks access.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, date, datetime, time, timedelta

import structlog

from app.core.config import get_settings
from app.features.data_platform.models import Business
from app.features.demand.llm import LLMBridge, get_llm_bridge
from app.features.demand.repository import SalesRepository
from app.features.demand.schemas import (
    BaselineForecastResponse,
    DateRange,
    ForecastContextResponse,
    HeadsUpRequest,
    HeadsUpResponse,
    HistoricalItem,
    HistoricalResponse,
    HolidaysResponse,
    ProductForecast,
    TenantRef,
)
from app.features.demand.series import (
    TrendItem,
    aggregate_monthly,
    aggregate_trending,
)
from app.features.demand.smoothing import smooth
from app.features.demand.window import filter_in_window, forecast_window, upcoming, window_weather
from app.features.demand.yoy import YearOverYearComparator
from app.features.signals.schemas import Location
from app.features.signals.service import SignalService, get_signal_service

logger = structlog.get_logger()


def utc_today() -> date:
    """Current UTC calendar day."""
    return datetime.now(UTC).date()


def _tenant_ref(business: Business) -> TenantRef:
    return TenantRef(id=str(business.id), name=business.name)


class DemandService:
    """Forecast orchestration for one request."""

    def __init__(
        self,
        signals: SignalService | None = None,
        bridge: LLMBridge | None = None,
        clock: Callable[[], date] = utc_today,
    ) -> None:
        """Initialize the service.

        Args:
            signals: Signal service (defaults to the process-wide instance).
            bridge: LLM bridge (defaults to the process-wide instance).
            clock: Source of "today".
        """
        self.settings = get_settings()
        self.signals = signals or get_signal_service()
        self._bridge = bridge
        self.clock = clock

    @property
    def bridge(self) -> LLMBridge:
        """LLM bridge, created on first use."""
        if self._bridge is None:
            self._bridge = get_llm_bridge()
        return self._bridge

    async def generate_baseline(
        self,
        repository: SalesRepository,
        business: Business,
    ) -> BaselineForecastResponse:
        """Forecast next-month units for every product the tenant has sold.

        Args:
            repository: Tenant-scoped reads.
            business: Authorized tenant.

        Returns:
            Per-product forecasts sorted descending by units; empty when the
            tenant has no orders or no line items.
        """
        tenant_id = str(business.id)
        tenant = _tenant_ref(business)

        orders = await repository.list_orders(tenant_id)
        if not orders:
            return BaselineForecastResponse(tenant=tenant)

        items = await repository.list_line_items(tenant_id, order_ids=list(orders))
        if not items:
            return BaselineForecastResponse(tenant=tenant)

        products = {p.product_id: p for p in await repository.list_products(tenant_id)}
        series_by_product = aggregate_monthly(
            orders, items, {pid: p.price for pid, p in products.items()}
        )

        forecast: list[ProductForecast] = []
        for product_id, series in series_by_product.items():
            result = smooth(series, self.settings.forecast_smoothing_alpha)
            info = products.get(product_id)
            forecast.append(
                ProductForecast(
                    product_id=product_id,
                    product_name=((info.name or "").strip() if info else "") or product_id,
                    demand_forecast_units=result.point_forecast,
                    confidence_score=result.confidence,
                )
            )
        forecast.sort(key=lambda f: f.demand_forecast_units, reverse=True)

        logger.info(
            "demand.forecast_generated",
            tenant_id=tenant_id,
            orders=len(orders),
            items=len(items),
            products=len(forecast),
        )
        return BaselineForecastResponse(tenant=tenant, forecast=forecast)

    async def get_context(
        self,
        lat: float | None = None,
        lon: float | None = None,
        place_id: str | None = None,
    ) -> ForecastContextResponse:
        """Holidays and weather for the forecast horizon starting today.

        Args:
            lat: Latitude (display only).
            lon: Longitude (display only).
            place_id: Weather place identifier.

        Returns:
            Upcoming holidays, holidays in the window, windowed weather.
        """
        today = self.clock()
        horizon = self.settings.forecast_horizon_days
        location = Location(
            lat=lat if lat is not None else self.settings.default_lat,
            lon=lon if lon is not None else self.settings.default_lon,
            place_id=place_id or self.settings.default_place_id,
        )

        bundle = await self.signals.fetch_signals(today, location.place_id, horizon_days=horizon)
        window = forecast_window(today, horizon)

        return ForecastContextResponse(
            window=horizon,
            holidays=upcoming(bundle.holidays, today, self.settings.forecast_upcoming_limit),
            holidays_in_window=filter_in_window(bundle.holidays, window),
            weather=window_weather(bundle.weather, window),
            location=location,
        )

    async def get_holidays(self, year: int | None = None) -> HolidaysResponse:
        """Upcoming holidays from today.

        A past ``year`` lists from Jan 1 of that year; otherwise the list
        starts today.

        Args:
            year: First year of the ``[year, year + 1]`` pair to fetch
                (defaults to the current year).

        Returns:
            Next holidays on or after the anchor day.
        """
        today = self.clock()
        first = year if year is not None else today.year
        anchor = date(first, 1, 1) if first < today.year else today
        holidays = await self.signals.fetch_holidays(
            self.settings.holiday_region, (first, first + 1)
        )
        return HolidaysResponse(
            current_date=today,
            holidays=upcoming(holidays, anchor, self.settings.forecast_upcoming_limit),
        )

    async def get_historical(
        self,
        repository: SalesRepository,
        business: Business,
        today: date | None = None,
    ) -> HistoricalResponse:
        """What sold around the same day last year.

        Args:
            repository: Tenant-scoped reads.
            business: Authorized tenant.
            today: Reference day (defaults to the clock).

        Returns:
            Year-ago trending with the searched date range.
        """
        comparator = YearOverYearComparator(
            repository, radius_days=self.settings.forecast_historical_radius_days
        )
        comparison = await comparator.compare(str(business.id), today or self.clock())

        return HistoricalResponse(
            tenant=_tenant_ref(business),
            date_range=DateRange(
                start=comparison.window.start,
                end=comparison.window.end,
                center_date=comparison.window.center,
            ),
            historical_trending=[
                HistoricalItem(
                    product_id=t.product_id,
                    product_name=t.product_name,
                    units_sold_last_year=int(t.units_estimate),
                    selling_price=t.selling_price,
                )
                for t in comparison.trending
            ],
            message=comparison.message,
        )

    async def recent_trending(
        self,
        repository: SalesRepository,
        tenant_id: str,
        today: date,
    ) -> list[TrendItem]:
        """Top sellers over the trending lookback ending today.

        Args:
            repository: Tenant-scoped reads.
            tenant_id: Tenant id.
            today: Reference day.

        Returns:
            Trend items, highest first, capped at ``forecast_trending_limit``.
        """
        since = datetime.combine(today, time.min) - timedelta(
            days=self.settings.forecast_trending_lookback_days
        )
        orders = await repository.list_orders(tenant_id, start=since)
        if not orders:
            return []
        items = await repository.list_line_items(tenant_id, order_ids=list(orders))
        if not items:
            return []
        products = await repository.list_products(
            tenant_id, product_ids=list(dict.fromkeys(i.product_id for i in items))
        )
        return aggregate_trending(
            items,
            {p.product_id: p for p in products},
            limit=self.settings.forecast_trending_limit,
        )

    async def generate_heads_up(
        self,
        repository: SalesRepository,
        business: Business,
        request: HeadsUpRequest,
    ) -> HeadsUpResponse:
        """Ask the completion service which products need attention.

        Args:
            repository: Tenant-scoped reads.
            business: Authorized tenant.
            request: Caller-supplied holidays, weather, historical trending.

        Returns:
            Validated insights.

        Raises:
            CompletionServiceError: If the completion call fails.
            CompletionParseError: If the answer cannot be parsed or validated.
        """
        tenant_id = str(business.id)
        today = self.clock()
        horizon = self.settings.forecast_horizon_days
        window = forecast_window(today, horizon)

        products = await repository.list_products(tenant_id)
        trending = await self.recent_trending(repository, tenant_id, today)
        historical = [
            TrendItem(
                product_id=h.product_id,
                product_name=h.product_name,
                units_estimate=h.units_sold_last_year,
                selling_price=h.selling_price,
            )
            for h in request.historical_trending
        ]
        holidays = filter_in_window(request.holidays, window)
        weather = window_weather(request.weather, window)

        logger.info(
            "demand.heads_up_requested",
            tenant_id=tenant_id,
            holidays_received=len(request.holidays),
            holidays_in_window=len(holidays),
            window_start=window.start.isoformat(),
            window_end=window.end.isoformat(),
        )

        insights = await self.bridge.generate(
            products, trending, historical, holidays, weather, horizon
        )
        return HeadsUpResponse(window=str(horizon), insights=insights)
