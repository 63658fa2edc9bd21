"""Leads cross-reference warnings as a report table."""

from __future__ import annotations

from revenue_analysis.analyses.base import AnalysisContext, AnalysisResult, to_frame
from revenue_analysis.leads import ValidationWarning, validation_warnings


def analyze_validation_warnings(context: AnalysisContext) -> AnalysisResult:
    warnings = validation_warnings(context.records, context.metadata)
    df = to_frame(warnings, list(ValidationWarning.__dataclass_fields__))
    return AnalysisResult.from_df(
        "validation_warnings",
        "Leads Validation Warnings",
        df,
        sheet_name="Validation",
        metadata={
            "branch_mismatch": sum(w.warning_type == "branch_mismatch" for w in warnings),
            "processor_mismatch": sum(w.warning_type == "processor_mismatch" for w in warnings),
        },
    )
