"""Division helpers shared by the metrics calculator and analyses."""

from __future__ import annotations

import pandas as pd


def safe_percentage(numerator: float, denominator: float, decimals: int | None = 2) -> float:
    """Compute percentage with zero-division and NaN guard.

    Pass ``decimals=None`` to skip rounding when the value feeds further sums.
    """
    if denominator == 0 or pd.isna(denominator):
        return 0.0
    value = (numerator / denominator) * 100
    return value if decimals is None else round(value, decimals)


def safe_ratio(numerator: float, denominator: float, decimals: int | None = 2) -> float:
    """Compute ratio with zero-division and NaN guard."""
    if denominator == 0 or pd.isna(denominator):
        return 0.0
    value = numerator / denominator
    return value if decimals is None else round(value, decimals)
