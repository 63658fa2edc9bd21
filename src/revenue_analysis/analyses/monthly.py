"""Monthly metric series and window roll-up as report tables."""

from __future__ import annotations

import pandas as pd

from revenue_analysis.analyses.base import AnalysisContext, AnalysisResult
from revenue_analysis.metrics import metrics_to_frame
from revenue_analysis.months import month_label
from revenue_analysis.window import summarize_window


def analyze_monthly_metrics(context: AnalysisContext) -> AnalysisResult:
    df = metrics_to_frame(context.metrics)
    if not df.empty:
        df.insert(1, "label", df["month"].map(month_label))
        df["revenue_per_account"] = df["revenue_per_account"].round(2)
    return AnalysisResult.from_df(
        "monthly_metrics",
        "Monthly Revenue Metrics",
        df,
        sheet_name="Monthly Metrics",
        metadata={"months": len(context.metrics)},
    )


def analyze_window_summary(context: AnalysisContext) -> AnalysisResult:
    summary = summarize_window(context.metrics)
    if summary is None:
        return AnalysisResult.from_df(
            "window_summary", "Period Summary", pd.DataFrame(), sheet_name="Summary"
        )
    rows = [
        ("Period", summary.label),
        ("Months", summary.months),
        ("Total Revenue", round(summary.total_revenue, 2)),
        ("Total Accounts", summary.total_accounts),
        ("Average Retention Rate", summary.average_retention_rate),
        ("Average Attrition Rate", summary.average_attrition_rate),
        ("New Accounts", summary.new_accounts),
        ("Lost Accounts", summary.lost_accounts),
    ]
    return AnalysisResult.from_df(
        "window_summary",
        "Period Summary",
        pd.DataFrame(rows, columns=["Metric", "Value"]),
        sheet_name="Summary",
        metadata={"label": summary.label},
    )
