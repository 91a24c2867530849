"""Simple exponential smoothing with a coefficient-of-variation confidence.

Formula:
    S[0] = y[0]
    S[t] = alpha * y[t] + (1 - alpha) * S[t-1]
    forecast = max(0, round(S[-1]))

Confidence:
    cv = std(y) / mean(y)     (variance divided by max(n - 1, 1); cv = 1 when mean = 0)
    confidence = clamp(0.95 - 0.35 * cv, 0.5, 0.95)

A deliberately simple, auditable heuristic: the same input always yields the
same forecast, and the confidence can be recomputed by hand.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np

from app.features.demand.series import SeriesPoint, round_half_up

MIN_CONFIDENCE = 0.5
MAX_CONFIDENCE = 0.95
CV_PENALTY = 0.35


@dataclass(frozen=True)
class ForecastResult:
    """Point forecast and confidence for one series.

    Attributes:
        point_forecast: Next-period units, non-negative integer.
        confidence: Heuristic confidence in [0.5, 0.95], two decimals.
    """

    point_forecast: int
    confidence: float


EMPTY_FORECAST = ForecastResult(point_forecast=0, confidence=MIN_CONFIDENCE)


def coefficient_of_variation(values: np.ndarray[Any, np.dtype[np.floating[Any]]]) -> float:
    """Return std/mean of ``values``, or 1.0 when the mean is zero.

    Args:
        values: Non-empty 1D array.

    Returns:
        Coefficient of variation.
    """
    n = len(values)
    mean = float(values.mean())
    if mean == 0:
        return 1.0
    variance = float(((values - mean) ** 2).sum()) / max(n - 1, 1)
    return float(np.sqrt(variance)) / mean


def smooth(series: Sequence[SeriesPoint], alpha: float = 0.3) -> ForecastResult:
    """Forecast the next period of ``series`` by exponential smoothing.

    Args:
        series: Points ordered ascending by period.
        alpha: Smoothing factor in (0, 1].

    Returns:
        ForecastResult; ``{0, 0.5}`` for an empty series.

    Raises:
        ValueError: If alpha is outside (0, 1].
    """
    if not 0.0 < alpha <= 1.0:
        raise ValueError(f"alpha must be in (0, 1], got {alpha}")
    if not series:
        return EMPTY_FORECAST

    values = np.array([p.value for p in series], dtype=np.float64)

    level = float(values[0])
    for value in values[1:]:
        level = alpha * float(value) + (1 - alpha) * level

    cv = coefficient_of_variation(values)
    confidence = float(np.clip(MAX_CONFIDENCE - CV_PENALTY * cv, MIN_CONFIDENCE, MAX_CONFIDENCE))

    return ForecastResult(
        point_forecast=max(0, round_half_up(level)),
        confidence=round(confidence, 2),
    )
