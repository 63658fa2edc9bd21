"""Least-squares revenue trend and short-range projection."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Literal

import numpy as np
import pandas as pd

from revenue_analysis.analyses.base import AnalysisContext, AnalysisResult, to_frame
from revenue_analysis.metrics import MonthlyMetric
from revenue_analysis.months import add_months, is_month_token, month_label

logger = logging.getLogger(__name__)

Confidence = Literal["high", "medium", "low"]


@dataclass(frozen=True)
class ForecastPoint:
    month: str
    label: str
    forecast_revenue: float
    confidence: Confidence


@dataclass(frozen=True)
class Forecast:
    """Fitted trend plus projected months; ``points`` is empty when unfit."""

    points: list[ForecastPoint] = field(default_factory=list)
    slope: float = 0.0
    intercept: float = 0.0
    r_squared: float = 0.0
    trend_percent: float = 0.0
    months_used: int = 0


def forecast_confidence(r_squared: float, step: int) -> Confidence:
    """Only the first projected month can be high; the first two medium."""
    if r_squared > 0.7 and step == 1:
        return "high"
    if r_squared > 0.5 and step <= 2:
        return "medium"
    return "low"


def fit_trend(values: Sequence[float]) -> tuple[float, float, float]:
    """Return ``(slope, intercept, r_squared)`` of *values* against 0..n-1.

    A zero slope denominator yields a flat line through the mean, and a
    series with no variance has R² of 1.
    """
    y = np.asarray(values, dtype=float)
    n = len(y)
    x = np.arange(n, dtype=float)
    denominator = n * np.sum(x * x) - np.sum(x) ** 2
    if denominator == 0:
        slope = 0.0
    else:
        slope = float((n * np.sum(x * y) - np.sum(x) * np.sum(y)) / denominator)
    intercept = float((np.sum(y) - slope * np.sum(x)) / n)

    ss_total = float(np.sum((y - y.mean()) ** 2))
    ss_residual = float(np.sum((y - (slope * x + intercept)) ** 2))
    r_squared = 1.0 if ss_total == 0 else 1 - ss_residual / ss_total
    return slope, intercept, r_squared


def forecast_revenue(
    metrics: Sequence[MonthlyMetric],
    window: int = 6,
    horizon: int = 3,
    min_months: int = 3,
) -> Forecast:
    """Project total revenue *horizon* months past the last metric.

    Fits the trailing *window* months of well-formed ``YYYY-MM`` metrics;
    fewer than *min_months* of them gives an empty Forecast.  Projections
    are floored at zero.
    """
    valid = [m for m in metrics if is_month_token(m.month)]
    if len(valid) < min_months:
        logger.debug("Forecast skipped: %d months available, %d needed", len(valid), min_months)
        return Forecast(months_used=len(valid))

    recent = valid[-window:]
    n = len(recent)
    slope, intercept, r_squared = fit_trend([m.total_revenue for m in recent])

    last_month = recent[-1].month
    points: list[ForecastPoint] = []
    for step in range(1, horizon + 1):
        month = add_months(last_month, step)
        points.append(
            ForecastPoint(
                month=month,
                label=month_label(month),
                forecast_revenue=max(0.0, slope * (n + step - 1) + intercept),
                confidence=forecast_confidence(r_squared, step),
            )
        )

    current = recent[-1].total_revenue
    average = sum(p.forecast_revenue for p in points) / len(points)
    trend = (average - current) / current * 100 if current > 0 else 0.0

    return Forecast(
        points=points,
        slope=slope,
        intercept=intercept,
        r_squared=r_squared,
        trend_percent=trend,
        months_used=n,
    )


def analyze_revenue_forecast(context: AnalysisContext) -> AnalysisResult:
    config = context.settings.forecast
    result = forecast_revenue(
        context.metrics,
        window=config.window,
        horizon=config.horizon,
        min_months=config.min_months,
    )
    if not result.points:
        df = pd.DataFrame(columns=list(ForecastPoint.__dataclass_fields__))
    else:
        df = to_frame(result.points)
        df["forecast_revenue"] = df["forecast_revenue"].round(2)
    return AnalysisResult.from_df(
        "revenue_forecast",
        "Revenue Forecast",
        df,
        sheet_name="Forecast",
        metadata={
            "months_used": result.months_used,
            "r_squared": round(result.r_squared, 4),
            "trend_percent": round(result.trend_percent, 2),
        },
    )
