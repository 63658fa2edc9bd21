"""Analysis registry and runner."""

from __future__ import annotations

import logging
from collections.abc import Callable

import pandas as pd

from revenue_analysis.analyses.at_risk import analyze_at_risk_merchants
from revenue_analysis.analyses.base import AnalysisContext, AnalysisResult
from revenue_analysis.analyses.branches import analyze_branch_performance
from revenue_analysis.analyses.cohort import analyze_merchant_changes
from revenue_analysis.analyses.comparison import analyze_processor_comparison
from revenue_analysis.analyses.concentration import (
    analyze_revenue_concentration,
    analyze_top_merchants,
)
from revenue_analysis.analyses.coverage import analyze_upload_coverage
from revenue_analysis.analyses.forecast import analyze_revenue_forecast
from revenue_analysis.analyses.monthly import analyze_monthly_metrics, analyze_window_summary
from revenue_analysis.analyses.trending import analyze_trending_merchants
from revenue_analysis.analyses.validation import analyze_validation_warnings
from revenue_analysis.exceptions import AnalysisError

logger = logging.getLogger(__name__)

AnalysisFunc = Callable[[AnalysisContext], AnalysisResult]

# Deterministic ordering; the report writes sheets in this order.
ANALYSIS_REGISTRY: list[tuple[str, AnalysisFunc]] = [
    ("window_summary", analyze_window_summary),
    ("monthly_metrics", analyze_monthly_metrics),
    ("processor_comparison", analyze_processor_comparison),
    ("upload_coverage", analyze_upload_coverage),
    ("top_merchants", analyze_top_merchants),
    ("revenue_concentration", analyze_revenue_concentration),
    ("merchant_changes", analyze_merchant_changes),
    ("at_risk_merchants", analyze_at_risk_merchants),
    ("trending_merchants", analyze_trending_merchants),
    ("branch_performance", analyze_branch_performance),
    ("revenue_forecast", analyze_revenue_forecast),
    # Needs leads metadata; skipped without a leads file
    ("validation_warnings", analyze_validation_warnings),
]

REQUIRES_METADATA = frozenset({"validation_warnings"})


def run_all_analyses(
    context: AnalysisContext,
    on_progress: Callable[[str], None] | None = None,
) -> list[AnalysisResult]:
    """Execute every registered analysis and return results.

    Failed analyses produce an AnalysisResult with error set (no crash).
    Each result is stored in ``context.completed_results`` under its name.
    """
    results: list[AnalysisResult] = []

    for name, func in ANALYSIS_REGISTRY:
        if name in REQUIRES_METADATA and not context.metadata:
            logger.debug("Skipping '%s': no leads metadata", name)
            continue
        if on_progress:
            on_progress(name)
        try:
            result = func(context)
        except Exception as e:
            error = AnalysisError(name, e)
            logger.warning("%s", error)
            result = AnalysisResult.from_df(name, name, pd.DataFrame(), error=str(error))
        results.append(result)
        context.completed_results[name] = result

    return results
