"""Top merchants by revenue and revenue concentration risk."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal

import pandas as pd

from revenue_analysis.analyses.base import (
    AnalysisContext,
    AnalysisResult,
    available_months,
    merchant_revenue,
    to_frame,
)
from revenue_analysis.helpers import safe_percentage
from revenue_analysis.records import CanonicalRecord

RiskLevel = Literal["low", "medium", "high"]


@dataclass(frozen=True)
class TopMerchant:
    rank: int
    merchant_id: str
    merchant_name: str
    processor: str
    revenue: float
    percent_of_total: float


@dataclass(frozen=True)
class Concentration:
    month: str | None
    top_n: int
    concentration_percent: float
    risk_level: RiskLevel


def top_merchants(
    records: Iterable[CanonicalRecord],
    month: str | None = None,
    limit: int | None = 10,
) -> list[TopMerchant]:
    """Rank merchants of one month by summed revenue.

    *month* defaults to the latest month present.  ``percent_of_total`` is
    relative to the revenue of every merchant ranked that month, not to any
    wider total.  Equal revenues keep first-appearance order.
    """
    records = list(records)
    if month is None:
        months = available_months(records)
        if not months:
            return []
        month = months[-1]

    grouped = merchant_revenue(records, month)
    if grouped.empty:
        return []
    total = float(grouped["revenue"].sum())
    ranked = grouped.sort_values("revenue", ascending=False, kind="stable")
    if limit is not None:
        ranked = ranked.head(limit)

    return [
        TopMerchant(
            rank=rank,
            merchant_id=str(merchant_id),
            merchant_name=row.merchant_name,
            processor=row.processor,
            revenue=float(row.revenue),
            percent_of_total=safe_percentage(float(row.revenue), total, decimals=None),
        )
        for rank, (merchant_id, row) in enumerate(ranked.iterrows(), start=1)
    ]


def concentration_risk(
    percent: float, medium_threshold: float = 25.0, high_threshold: float = 40.0
) -> RiskLevel:
    """Below *medium_threshold* is low; above *high_threshold* is high."""
    if percent < medium_threshold:
        return "low"
    if percent <= high_threshold:
        return "medium"
    return "high"


def revenue_concentration(
    records: Iterable[CanonicalRecord],
    month: str | None = None,
    top_n: int = 10,
    medium_threshold: float = 25.0,
    high_threshold: float = 40.0,
) -> Concentration:
    """Share of a month's revenue held by its top *top_n* merchants."""
    records = list(records)
    if month is None:
        months = available_months(records)
        month = months[-1] if months else None
    leaders = top_merchants(records, month, limit=top_n) if month else []
    percent = sum(m.percent_of_total for m in leaders)
    return Concentration(
        month=month,
        top_n=top_n,
        concentration_percent=percent,
        risk_level=concentration_risk(percent, medium_threshold, high_threshold),
    )


TOP_MERCHANT_COLUMNS = [
    "rank",
    "merchant_id",
    "merchant_name",
    "processor",
    "revenue",
    "percent_of_total",
]


def analyze_top_merchants(context: AnalysisContext) -> AnalysisResult:
    month = context.current_month
    leaders = top_merchants(context.records, month, limit=context.settings.top_n)
    return AnalysisResult.from_df(
        "top_merchants",
        "Top Merchants by Revenue",
        to_frame(leaders, TOP_MERCHANT_COLUMNS),
        sheet_name="Top Merchants",
        metadata={"month": month},
    )


def analyze_revenue_concentration(context: AnalysisContext) -> AnalysisResult:
    settings = context.settings
    result = revenue_concentration(
        context.records,
        context.current_month,
        top_n=settings.concentration_top_n,
        medium_threshold=settings.concentration_medium_pct,
        high_threshold=settings.concentration_high_pct,
    )
    df = pd.DataFrame(
        [
            {
                "month": result.month,
                "top_n": result.top_n,
                "concentration_percent": round(result.concentration_percent, 2),
                "risk_level": result.risk_level,
            }
        ]
    )
    return AnalysisResult.from_df(
        "revenue_concentration",
        "Revenue Concentration",
        df,
        sheet_name="Concentration",
        metadata={"risk_level": result.risk_level},
    )
