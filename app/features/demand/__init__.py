"""Demand forecasting core: aggregation, smoothing, fusion, LLM heads-up.

Exports:
    Computation:
        - aggregate_monthly, aggregate_trending, smooth
        - forecast_window, filter_in_window, upcoming, historical_window

    LLM:
        - LLMBridge, build_prompt, extract_json, validate_insights

    Service:
        - DemandService, SalesRepository
"""

from app.features.demand.llm import LLMBridge, build_prompt, extract_json, validate_insights
from app.features.demand.repository import SalesRepository
from app.features.demand.series import (
    LineItem,
    ProductInfo,
    RevenueOverPriceEstimator,
    SeriesPoint,
    TrendItem,
    UnitEstimator,
    aggregate_monthly,
    aggregate_trending,
)
from app.features.demand.service import DemandService
from app.features.demand.smoothing import ForecastResult, smooth
from app.features.demand.window import ForecastWindow, filter_in_window, forecast_window, upcoming
from app.features.demand.yoy import HistoricalWindow, YearOverYearComparator, historical_window

__all__ = [
    "DemandService",
    "ForecastResult",
    "ForecastWindow",
    "HistoricalWindow",
    "LLMBridge",
    "LineItem",
    "ProductInfo",
    "RevenueOverPriceEstimator",
    "SalesRepository",
    "SeriesPoint",
    "TrendItem",
    "UnitEstimator",
    "YearOverYearComparator",
    "aggregate_monthly",
    "aggregate_trending",
    "build_prompt",
    "extract_json",
    "filter_in_window",
    "forecast_window",
    "historical_window",
    "smooth",
    "upcoming",
    "validate_insights",
]
