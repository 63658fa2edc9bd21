"""Pipeline orchestrator shared by CLI and run_client()."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from revenue_analysis.analyses import run_all_analyses
from revenue_analysis.analyses.base import AnalysisContext, AnalysisResult
from revenue_analysis.data_loader import load_file, load_leads
from revenue_analysis.exceptions import DataLoadError
from revenue_analysis.extractor import ExtractionResult
from revenue_analysis.leads import LeadsParseResult
from revenue_analysis.metrics import MonthlyMetric
from revenue_analysis.months import sort_months
from revenue_analysis.records import filter_scope
from revenue_analysis.settings import Settings
from revenue_analysis.store import RecordStore
from revenue_analysis.window import calculate_window_metrics, select_window

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Container for all pipeline outputs."""

    settings: Settings
    store: RecordStore
    extractions: dict[str, ExtractionResult] = field(default_factory=dict)
    leads: LeadsParseResult | None = None
    window: list[str] = field(default_factory=list)
    metrics: list[MonthlyMetric] = field(default_factory=list)
    analyses: list[AnalysisResult] = field(default_factory=list)

    @property
    def failed_files(self) -> list[str]:
        return [name for name, r in self.extractions.items() if not r.success]


def ingest_files(
    settings: Settings, store: RecordStore | None = None
) -> tuple[RecordStore, dict[str, ExtractionResult]]:
    """Extract every configured data file and upsert accepted records."""
    store = store if store is not None else RecordStore()
    extractions: dict[str, ExtractionResult] = {}
    for path in settings.data_files:
        try:
            result = load_file(path, settings.processor, settings.month)
        except DataLoadError as e:
            logger.warning("Could not read %s: %s", path.name, e)
            result = ExtractionResult(success=False, errors=[str(e)], source_name=path.name)
        extractions[path.name] = result
        for error in result.errors:
            logger.debug("%s: %s", path.name, error)
        if result.success:
            store.upsert(result.records)
        else:
            logger.warning("No records accepted from %s", path.name)
    return store, extractions


def run_pipeline(
    settings: Settings,
    on_progress: Callable[[int, int, str], None] | None = None,
) -> PipelineResult:
    """Execute the full analysis pipeline: ingest -> metrics -> analyze.

    Args:
        settings: Application configuration.
        on_progress: Optional callback(step, total, message) for UI progress.
    """
    # Step 1: Ingest processor reports
    if on_progress:
        on_progress(0, 3, "Loading data...")
    if not settings.data_files:
        raise DataLoadError("No data files configured")
    store, extractions = ingest_files(settings)
    if not len(store):
        raise DataLoadError("No valid records loaded from any data file")

    leads = None
    if settings.leads_file:
        leads = load_leads(settings.leads_file)
        for warning in leads.warnings:
            logger.info("Leads: %s", warning)
        if not leads.success:
            logger.warning("Leads file rejected: %s", "; ".join(leads.errors))

    # Step 2: Window and metrics
    if on_progress:
        on_progress(1, 3, "Computing metrics...")
    history = filter_scope(store.records(), settings.scope)
    window = select_window(
        sort_months(r.month for r in history),
        settings.date_range,
        settings.start_month,
        settings.end_month,
    )
    metrics = calculate_window_metrics(
        history, window, processor=settings.scope, all_time=settings.date_range == "all"
    )
    window_set = set(window)
    logger.info(
        "Scope %s: %d records, window %s",
        settings.scope,
        len(history),
        f"{window[0]}..{window[-1]}" if window else "empty",
    )

    # Step 3: Run analyses
    if on_progress:
        on_progress(2, 3, "Running analyses...")
    context = AnalysisContext(
        records=[r for r in history if r.month in window_set],
        history=history,
        metrics=metrics,
        settings=settings,
        window=window,
        metadata=leads.metadata if leads and leads.success else [],
    )
    analyses = run_all_analyses(context)
    successful = [a for a in analyses if a.error is None]
    failed = [a for a in analyses if a.error is not None]
    for a in failed:
        logger.warning("Skipped: %s (%s)", a.name, a.error)
    logger.info("%d/%d analyses completed", len(successful), len(analyses))

    return PipelineResult(
        settings=settings,
        store=store,
        extractions=extractions,
        leads=leads,
        window=window,
        metrics=metrics,
        analyses=analyses,
    )


def export_outputs(result: PipelineResult) -> list[Path]:
    """Export pipeline results to configured output formats.

    Returns list of generated file paths.
    """
    settings = result.settings
    settings.output_dir.mkdir(parents=True, exist_ok=True)

    generated: list[Path] = []
    date_str = datetime.now().strftime("%Y%m%d")
    client = (settings.client_name or "revenue").replace(" ", "_")

    if settings.outputs.excel:
        try:
            from revenue_analysis.exports.excel_report import write_excel_report

            path = settings.output_dir / f"{client}_Revenue_Analysis_{date_str}.xlsx"
            write_excel_report(result, path)
            generated.append(path)
            logger.info("Excel report: %s", path)
        except Exception as e:
            logger.error("Excel report failed: %s", e, exc_info=True)

    return generated
