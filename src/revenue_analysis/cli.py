"""Typer CLI for revenue_analysis."""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from revenue_analysis.data_loader import load_file
from revenue_analysis.exceptions import RevenueAnalysisError
from revenue_analysis.formatting import format_value
from revenue_analysis.months import parse_month
from revenue_analysis.pipeline import PipelineResult, export_outputs, run_pipeline
from revenue_analysis.processors import parse_processor
from revenue_analysis.settings import Settings

app = typer.Typer(help="Merchant revenue ingestion and retention metrics.")
console = Console()

METRIC_COLUMNS = (
    "month",
    "total_revenue",
    "total_accounts",
    "new_accounts",
    "lost_accounts",
    "retention_rate",
    "attrition_rate",
)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _metrics_table(result: PipelineResult) -> Table:
    table = Table(title=f"Monthly Metrics ({result.settings.scope})")
    for col in METRIC_COLUMNS:
        table.add_column(col.replace("_", " ").title(), justify="right")
    for metric in result.metrics:
        values = metric.to_dict()
        table.add_row(*(format_value(values[col], col) for col in METRIC_COLUMNS))
    return table


@app.command()
def analyze(
    data_files: list[Path] = typer.Argument(..., help="Processor report CSV/Excel files."),
    processor: str = typer.Option(None, "--processor", "-p", help="Processor of all files"),
    month: str = typer.Option(None, "--month", "-m", help="Month for rows without one"),
    scope: str = typer.Option(None, "--scope", help="Processor to analyze, or 'All'"),
    date_range: str = typer.Option(None, "--range", help="all, current, 3months, ..., custom"),
    start: str = typer.Option(None, "--start", help="First month of a custom range"),
    end: str = typer.Option(None, "--end", help="Last month of a custom range"),
    leads: Path = typer.Option(None, "--leads", help="Leads export for validation"),
    config: Path = typer.Option(None, "--config", "-c", help="Path to config.yaml"),
    output_dir: Path = typer.Option(None, "--output-dir", "-o", help="Output directory"),
    client_name: str = typer.Option(None, "--client-name", help="Client display name"),
    top_n: int = typer.Option(None, "--top-n", help="Number of top merchants"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Ingest reports, compute metrics and write the Excel report."""
    _setup_logging(verbose)

    overrides = {
        "data_files": data_files,
        "processor": processor,
        "month": month,
        "scope": scope,
        "date_range": date_range,
        "start_month": start,
        "end_month": end,
        "leads_file": leads,
        "output_dir": output_dir,
        "client_name": client_name,
        "top_n": top_n,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}

    def on_progress(step: int, total: int, msg: str) -> None:
        console.print(f"  [{step + 1}/{total}] {msg}")

    try:
        if config and config.exists():
            settings = Settings.from_yaml(config, **overrides)
        else:
            settings = Settings.from_args(**overrides)
        console.print(f"[bold]Revenue Analysis[/bold] -- {len(settings.data_files)} file(s)")
        result = run_pipeline(settings, on_progress=on_progress)
    except RevenueAnalysisError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    for name in result.failed_files:
        console.print(f"  [yellow]No records from {name}[/yellow]")
    console.print(_metrics_table(result))

    successful = sum(1 for a in result.analyses if a.error is None)
    console.print(f"  {successful}/{len(result.analyses)} analyses completed")

    files = export_outputs(result)
    for f in files:
        console.print(f"  Output: {f}")

    console.print("[bold green]Done.[/bold green]")


@app.command()
def validate(
    data_files: list[Path] = typer.Argument(..., help="Processor report CSV/Excel files."),
    processor: str = typer.Option(None, "--processor", "-p", help="Processor of all files"),
    month: str = typer.Option(None, "--month", "-m", help="Month for rows without one"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Parse files without analyzing; exit 1 if any file is rejected."""
    _setup_logging(verbose)

    try:
        resolved = parse_processor(processor) if processor else None
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1) from e
    declared = parse_month(month) if month else None
    if month and declared is None:
        console.print(f"[bold red]Error:[/bold red] Unrecognized month: {month!r}")
        raise typer.Exit(code=1)

    failures = 0
    for path in data_files:
        try:
            result = load_file(path, resolved, declared)
        except RevenueAnalysisError as e:
            console.print(f"[red]FAIL[/red] {path.name}: {e}")
            failures += 1
            continue
        status = "[green]OK[/green]" if result.success else "[red]FAIL[/red]"
        console.print(
            f"{status} {path.name}: {len(result.records)} records, "
            f"{len(result.errors)} errors, {len(result.warnings)} warnings"
        )
        for error in result.errors:
            console.print(f"    [red]error[/red] {error}")
        for warning in result.warnings:
            console.print(f"    [yellow]warning[/yellow] {warning}")
        if not result.success:
            failures += 1

    if failures:
        raise typer.Exit(code=1)
