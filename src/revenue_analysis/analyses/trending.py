"""Largest month-over-month revenue gainers and losers."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import asdict, dataclass

from revenue_analysis.analyses.base import (
    AnalysisContext,
    AnalysisResult,
    available_months,
    merchant_revenue,
    resolve_month_pair,
    to_frame,
)
from revenue_analysis.records import CanonicalRecord


@dataclass(frozen=True)
class TrendingMerchant:
    merchant_id: str
    merchant_name: str
    current_revenue: float
    previous_revenue: float
    change: float
    change_percent: float


def trending_merchants(
    records: Iterable[CanonicalRecord],
    current_month: str | None = None,
    limit: int = 5,
) -> tuple[list[TrendingMerchant], list[TrendingMerchant]]:
    """Return ``(gainers, losers)`` ranked by percent change.

    Only merchants billed in both months with positive previous revenue are
    compared.
    """
    records = list(records)
    _, month, previous_month = resolve_month_pair(available_months(records), current_month)
    if previous_month is None:
        return [], []

    current = merchant_revenue(records, month)
    previous = merchant_revenue(records, previous_month)

    movers: list[TrendingMerchant] = []
    for merchant_id in current.index:
        if merchant_id not in previous.index:
            continue
        before = float(previous.at[merchant_id, "revenue"])
        if before <= 0:
            continue
        now = float(current.at[merchant_id, "revenue"])
        movers.append(
            TrendingMerchant(
                merchant_id=str(merchant_id),
                merchant_name=current.at[merchant_id, "merchant_name"],
                current_revenue=now,
                previous_revenue=before,
                change=now - before,
                change_percent=(now - before) / before * 100,
            )
        )

    gainers = sorted(
        (m for m in movers if m.change_percent > 0),
        key=lambda m: m.change_percent,
        reverse=True,
    )
    losers = sorted((m for m in movers if m.change_percent < 0), key=lambda m: m.change_percent)
    return gainers[:limit], losers[:limit]


def analyze_trending_merchants(context: AnalysisContext) -> AnalysisResult:
    gainers, losers = trending_merchants(
        context.history, context.current_month, limit=context.settings.trending_limit
    )
    columns = ["direction", *TrendingMerchant.__dataclass_fields__]
    rows = [{"direction": "Gainer", **asdict(m)} for m in gainers]
    rows += [{"direction": "Loser", **asdict(m)} for m in losers]
    df = to_frame(rows, columns)
    return AnalysisResult.from_df(
        "trending_merchants",
        "Trending Merchants",
        df,
        sheet_name="Trending",
        metadata={"gainers": len(gainers), "losers": len(losers)},
    )
