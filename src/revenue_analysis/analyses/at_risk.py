"""Merchants with declining or churned revenue."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal

from revenue_analysis.analyses.base import (
    AnalysisContext,
    AnalysisResult,
    available_months,
    merchant_revenue,
    resolve_month_pair,
    to_frame,
)
from revenue_analysis.records import CanonicalRecord
from revenue_analysis.settings import AtRiskConfig

AtRiskLevel = Literal["critical", "high", "medium"]

RISK_PRIORITY: dict[str, int] = {"critical": 0, "high": 1, "medium": 2}


@dataclass(frozen=True)
class AtRiskMerchant:
    merchant_id: str
    merchant_name: str
    current_revenue: float
    previous_revenue: float
    decline_percent: float
    consecutive_declines: int
    risk_level: AtRiskLevel


def risk_level(
    decline_percent: float, consecutive_declines: int, thresholds: AtRiskConfig
) -> AtRiskLevel:
    """Tier a decline; *decline_percent* is negative for falling revenue."""
    repeated = consecutive_declines >= 2
    if decline_percent <= -thresholds.critical_decline_pct or (
        repeated and decline_percent <= -thresholds.critical_consecutive_decline_pct
    ):
        return "critical"
    if decline_percent <= -thresholds.high_decline_pct or repeated:
        return "high"
    return "medium"


def at_risk_merchants(
    records: Iterable[CanonicalRecord],
    current_month: str | None = None,
    limit: int | None = None,
    thresholds: AtRiskConfig | None = None,
) -> list[AtRiskMerchant]:
    """Flag merchants whose revenue fell against the previous data month.

    Merchants billed last month but missing this month count as a full
    churn (current revenue 0, -100%).  A merchant needs positive revenue in
    the previous month to be judged at all.  A second decline is counted when
    the previous month was itself below the month before it.
    """
    thresholds = thresholds or AtRiskConfig()
    records = list(records)
    months = available_months(records)
    index, month, previous_month = resolve_month_pair(months, current_month)
    if previous_month is None:
        return []
    two_months_ago = months[index - 2] if index >= 2 else None

    current = merchant_revenue(records, month)
    previous = merchant_revenue(records, previous_month)
    earlier = merchant_revenue(records, two_months_ago) if two_months_ago else None

    merchant_ids = list(current.index) + [m for m in previous.index if m not in current.index]
    flagged: list[AtRiskMerchant] = []
    for merchant_id in merchant_ids:
        if merchant_id not in previous.index:
            continue
        previous_revenue = float(previous.at[merchant_id, "revenue"])
        if previous_revenue <= 0:
            continue
        if merchant_id in current.index:
            current_revenue = float(current.at[merchant_id, "revenue"])
            name = current.at[merchant_id, "merchant_name"]
        else:
            current_revenue = 0.0
            name = previous.at[merchant_id, "merchant_name"]

        decline = (current_revenue - previous_revenue) / previous_revenue * 100
        if decline > -thresholds.min_decline_pct:
            continue

        consecutive = 1
        if earlier is not None and merchant_id in earlier.index:
            earlier_revenue = float(earlier.at[merchant_id, "revenue"])
            if earlier_revenue > 0 and previous_revenue < earlier_revenue:
                consecutive = 2

        flagged.append(
            AtRiskMerchant(
                merchant_id=str(merchant_id),
                merchant_name=name or "Unknown",
                current_revenue=current_revenue,
                previous_revenue=previous_revenue,
                decline_percent=decline,
                consecutive_declines=consecutive,
                risk_level=risk_level(decline, consecutive, thresholds),
            )
        )

    flagged.sort(key=lambda m: (RISK_PRIORITY[m.risk_level], m.decline_percent))
    return flagged[:limit] if limit is not None else flagged


def analyze_at_risk_merchants(context: AnalysisContext) -> AnalysisResult:
    config = context.settings.at_risk
    flagged = at_risk_merchants(
        context.history, context.current_month, limit=config.limit, thresholds=config
    )
    df = to_frame(flagged, list(AtRiskMerchant.__dataclass_fields__))
    if not df.empty:
        df["decline_percent"] = df["decline_percent"].round(2)
    return AnalysisResult.from_df(
        "at_risk_merchants",
        "At-Risk Merchants",
        df,
        sheet_name="At Risk",
        metadata={
            "critical": sum(m.risk_level == "critical" for m in flagged),
            "high": sum(m.risk_level == "high" for m in flagged),
        },
    )
