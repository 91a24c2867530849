"""Year-over-year comparator.

Looks at what sold around the same calendar day one year earlier. The window
is centred on ``today`` minus one calendar year and extends
``radius_days`` either side, inclusive at both ends (00:00:00 on the first
day through 23:59:59.999999 on the last).

Units are estimated per item and rounded before summing; items for products
missing from the catalogue are skipped.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import TYPE_CHECKING

import structlog

from app.features.demand.series import TrendItem, aggregate_trending

if TYPE_CHECKING:
    from app.features.demand.repository import SalesRepository

logger = structlog.get_logger()

NO_ORDERS_MESSAGE = "No historical data found for this period"
NO_ITEMS_MESSAGE = "No order items found"
NO_PRODUCTS_MESSAGE = "No sales of catalogued products found for this period"


def one_year_earlier(day: date) -> date:
    """Subtract one calendar year; February 29 maps to February 28."""
    try:
        return day.replace(year=day.year - 1)
    except ValueError:
        return day.replace(year=day.year - 1, day=28)


@dataclass(frozen=True)
class HistoricalWindow:
    """Inclusive day range around the same day last year.

    Attributes:
        start: First day.
        center: ``today`` minus one calendar year.
        end: Last day.
    """

    start: date
    center: date
    end: date

    def bounds(self) -> tuple[datetime, datetime]:
        """Return ``(start 00:00:00, end 23:59:59.999999)`` as naive datetimes."""
        return datetime.combine(self.start, time.min), datetime.combine(self.end, time.max)


def historical_window(today: date | datetime, radius_days: int = 7) -> HistoricalWindow:
    """Build the year-ago window for ``today``.

    Args:
        today: Request day.
        radius_days: Days either side of the centre.

    Returns:
        HistoricalWindow spanning ``2 * radius_days + 1`` days.
    """
    if isinstance(today, datetime):
        today = today.date()
    center = one_year_earlier(today)
    radius = timedelta(days=radius_days)
    return HistoricalWindow(start=center - radius, center=center, end=center + radius)


@dataclass
class HistoricalComparison:
    """Result of a year-over-year lookup.

    Attributes:
        window: The window that was searched.
        trending: Products sold in the window, highest units first.
        message: Explanation when nothing was found.
    """

    window: HistoricalWindow
    trending: list[TrendItem] = field(default_factory=list)
    message: str | None = None


class YearOverYearComparator:
    """Aggregate last year's sales around the same calendar day."""

    def __init__(self, repository: SalesRepository, radius_days: int = 7) -> None:
        """Initialize the comparator.

        Args:
            repository: Tenant-scoped sales reads.
            radius_days: Days either side of the year-ago centre.
        """
        self.repository = repository
        self.radius_days = radius_days

    async def compare(self, tenant_id: str, today: date) -> HistoricalComparison:
        """Aggregate sales in the year-ago window.

        Args:
            tenant_id: Tenant to read.
            today: Request day.

        Returns:
            HistoricalComparison; empty trending with a message when no
            orders, items, or catalogued products exist in the window.
        """
        window = historical_window(today, self.radius_days)
        start, end = window.bounds()

        orders = await self.repository.list_orders(tenant_id, start=start, end=end)
        if not orders:
            logger.info(
                "demand.historical_empty",
                tenant_id=tenant_id,
                reason="no_orders",
                window_start=window.start.isoformat(),
                window_end=window.end.isoformat(),
            )
            return HistoricalComparison(window=window, message=NO_ORDERS_MESSAGE)

        items = await self.repository.list_line_items(tenant_id, order_ids=list(orders))
        if not items:
            logger.info("demand.historical_empty", tenant_id=tenant_id, reason="no_items")
            return HistoricalComparison(window=window, message=NO_ITEMS_MESSAGE)

        products = await self.repository.list_products(
            tenant_id, product_ids=list(dict.fromkeys(i.product_id for i in items))
        )
        trending = aggregate_trending(
            items,
            {p.product_id: p for p in products},
            round_per_item=True,
            skip_unknown_products=True,
        )
        if not trending:
            logger.info(
                "demand.historical_empty",
                tenant_id=tenant_id,
                reason="no_known_products",
                items=len(items),
            )
            return HistoricalComparison(window=window, message=NO_PRODUCTS_MESSAGE)

        logger.info(
            "demand.historical_compared",
            tenant_id=tenant_id,
            center=window.center.isoformat(),
            orders=len(orders),
            products=len(trending),
        )
        return HistoricalComparison(window=window, trending=trending)
