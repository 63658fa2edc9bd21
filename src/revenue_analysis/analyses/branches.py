"""Per-branch revenue leaderboard."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

import pandas as pd

from revenue_analysis.analyses.base import (
    AnalysisContext,
    AnalysisResult,
    available_months,
    resolve_month_pair,
    to_frame,
)
from revenue_analysis.helpers import safe_percentage, safe_ratio
from revenue_analysis.records import CanonicalRecord, records_to_frame


@dataclass(frozen=True)
class BranchPerformance:
    rank: int
    branch_id: str
    total_revenue: float
    account_count: int
    revenue_per_account: float
    retention_rate: float


def _branch_rows(df: pd.DataFrame, month: str | None) -> pd.DataFrame:
    if month is None or df.empty:
        return df.iloc[0:0]
    rows = df[df["month"] == month]
    return rows[rows["branch_id"].notna() & (rows["branch_id"].astype(str) != "")]


def branch_performance(
    records: Iterable[CanonicalRecord], current_month: str | None = None
) -> list[BranchPerformance]:
    """Revenue, accounts and retention per branch, ranked by revenue.

    Records without a branch are ignored.  Retention compares against the
    branch's merchants in the previous data month and is 100 when the branch
    had none.
    """
    records = list(records)
    _, month, previous_month = resolve_month_pair(available_months(records), current_month)
    if month is None:
        return []

    df = records_to_frame(records)
    current = _branch_rows(df, month)
    if current.empty:
        return []
    previous = _branch_rows(df, previous_month)
    previous_ids = {
        branch: set(group["merchant_id"]) for branch, group in previous.groupby("branch_id")
    }
    current_ids = {
        branch: set(group["merchant_id"]) for branch, group in current.groupby("branch_id")
    }
    summary = (
        current.groupby("branch_id", sort=False)
        .agg(total_revenue=("revenue", "sum"))
        .sort_values("total_revenue", ascending=False, kind="stable")
    )

    branches: list[BranchPerformance] = []
    for rank, (branch_id, row) in enumerate(summary.iterrows(), start=1):
        merchants = current_ids[branch_id]
        accounts = len(merchants)
        before = previous_ids.get(branch_id, set())
        retention = safe_percentage(len(merchants & before), len(before)) if before else 100.0
        branches.append(
            BranchPerformance(
                rank=rank,
                branch_id=str(branch_id),
                total_revenue=float(row.total_revenue),
                account_count=accounts,
                revenue_per_account=safe_ratio(row.total_revenue, accounts, decimals=None),
                retention_rate=retention,
            )
        )
    return branches


def analyze_branch_performance(context: AnalysisContext) -> AnalysisResult:
    branches = branch_performance(context.history, context.current_month)
    return AnalysisResult.from_df(
        "branch_performance",
        "Branch Performance",
        to_frame(branches, list(BranchPerformance.__dataclass_fields__)),
        sheet_name="Branches",
    )
