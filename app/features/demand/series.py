"""Series aggregation: raw line items into per-product demand.

Line items carry a monetary total but no quantity, so units are estimated as
``line_total / unit_price``. That heuristic sits behind ``UnitEstimator`` so a
true quantity source can replace it without touching the rest of the
pipeline. When the price is zero or unknown the estimate is exactly 1.

Two aggregations are provided:
- ``aggregate_monthly``: product -> month-bucketed series (baseline forecast)
- ``aggregate_trending``: product -> total units over a window (trending lists)
"""

from __future__ import annotations

import math
from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Protocol

Number = Decimal | float | int


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up (2.5 -> 3)."""
    return math.floor(value + 0.5)


@dataclass(frozen=True)
class SeriesPoint:
    """One period of demand for one product.

    Attributes:
        period_key: Calendar month as ``YYYY-MM``.
        value: Estimated units in the period (non-negative).
    """

    period_key: str
    value: float


@dataclass(frozen=True)
class LineItem:
    """A sales line item as read from storage.

    Attributes:
        order_id: Parent sales order.
        product_id: Product sold.
        line_total: Monetary total of the line (None treated as 0).
    """

    order_id: int
    product_id: str
    line_total: Number | None


@dataclass(frozen=True)
class ProductInfo:
    """Catalogue facts needed for estimation and display.

    Attributes:
        product_id: Product identifier.
        name: Display name, None when unknown.
        price: Unit selling price; 0 when unknown.
    """

    product_id: str
    name: str | None
    price: float


@dataclass(frozen=True)
class TrendItem:
    """Estimated units sold for one product over a window.

    Attributes:
        product_id: Product identifier.
        product_name: Display name (falls back to the id).
        units_estimate: Estimated units (non-negative).
        selling_price: Unit price used for the estimate.
    """

    product_id: str
    product_name: str
    units_estimate: float
    selling_price: float = 0.0


class UnitEstimator(Protocol):
    """Strategy turning a line item into a unit count."""

    def estimate(self, item: LineItem, unit_price: float) -> float:
        """Return the estimated units for ``item`` at ``unit_price``."""
        ...


class RevenueOverPriceEstimator:
    """Estimate units as ``line_total / unit_price``, or 1 without a price."""

    def estimate(self, item: LineItem, unit_price: float) -> float:
        """Estimate units for one line item.

        Args:
            item: Line item.
            unit_price: Selling price of the product.

        Returns:
            ``max(0, line_total / unit_price)`` when the price is positive, else 1.
        """
        if unit_price > 0:
            return max(0.0, float(item.line_total or 0) / unit_price)
        return 1.0


DEFAULT_ESTIMATOR: UnitEstimator = RevenueOverPriceEstimator()


def month_key(value: date | datetime | str | None) -> str | None:
    """Return the ``YYYY-MM`` bucket for a date-like value.

    Args:
        value: Date, datetime, ISO string, or None.

    Returns:
        Month key, or None if the value cannot be resolved to a date.
    """
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return None
    return f"{value.year:04d}-{value.month:02d}"


def aggregate_monthly(
    orders: Mapping[int, date | datetime | str | None],
    items: Iterable[LineItem],
    prices: Mapping[str, float],
    estimator: UnitEstimator = DEFAULT_ESTIMATOR,
) -> dict[str, list[SeriesPoint]]:
    """Bucket line items into monthly unit series per product.

    Items whose order has no resolvable date are dropped silently.

    Args:
        orders: Order id -> order date.
        items: Line items.
        prices: Product id -> unit price (missing means unknown).
        estimator: Unit estimation strategy.

    Returns:
        Product id -> series ordered ascending by month.
    """
    buckets: dict[str, dict[str, float]] = defaultdict(lambda: defaultdict(float))

    for item in items:
        key = month_key(orders.get(item.order_id))
        if key is None:
            continue
        units = estimator.estimate(item, prices.get(item.product_id, 0.0))
        buckets[item.product_id][key] += units

    return {
        product_id: [SeriesPoint(period_key=k, value=v) for k, v in sorted(monthly.items())]
        for product_id, monthly in buckets.items()
    }


def aggregate_trending(
    items: Iterable[LineItem],
    products: Mapping[str, ProductInfo],
    *,
    round_per_item: bool = False,
    skip_unknown_products: bool = False,
    limit: int | None = None,
    estimator: UnitEstimator = DEFAULT_ESTIMATOR,
) -> list[TrendItem]:
    """Total estimated units per product, highest first.

    Args:
        items: Line items inside the window of interest.
        products: Product id -> catalogue info.
        round_per_item: Round each item's estimate before summing (otherwise
            the per-product total is rounded).
        skip_unknown_products: Ignore items whose product is not in ``products``.
        limit: Keep only the top ``limit`` products.
        estimator: Unit estimation strategy.

    Returns:
        Trend items sorted descending by units; ties keep first-seen order.
    """
    totals: dict[str, float] = {}

    for item in items:
        info = products.get(item.product_id)
        if info is None and skip_unknown_products:
            continue
        price = info.price if info is not None else 0.0
        units = estimator.estimate(item, price)
        if round_per_item:
            units = round_half_up(units)
        totals[item.product_id] = totals.get(item.product_id, 0.0) + units

    trending = [
        TrendItem(
            product_id=product_id,
            product_name=_display_name(products.get(product_id), product_id),
            units_estimate=round_half_up(units),
            selling_price=products[product_id].price if product_id in products else 0.0,
        )
        for product_id, units in totals.items()
    ]
    trending.sort(key=lambda t: t.units_estimate, reverse=True)

    return trending[:limit] if limit is not None else trending


def _display_name(info: ProductInfo | None, product_id: str) -> str:
    if info is not None and info.name and info.name.strip():
        return info.name.strip()
    return product_id
