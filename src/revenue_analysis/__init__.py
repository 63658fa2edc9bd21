"""Merchant revenue ingestion and retention metrics for payment processor reports."""

from __future__ import annotations

from pathlib import Path

__version__ = "1.0.0"


def run_client(
    data_files: list[str | Path] | str | Path,
    output_dir: str | Path = "output/",
    **kwargs,
):
    """Convenience entry-point for Jupyter / REPL usage.

    Usage::

        from revenue_analysis import run_client
        result = run_client(["data/clearent_2024-01.csv", "data/clearent_2024-02.csv"])
    """
    from revenue_analysis.pipeline import export_outputs, run_pipeline
    from revenue_analysis.settings import Settings

    if isinstance(data_files, (str, Path)):
        data_files = [data_files]
    settings = Settings.from_args(
        data_files=[Path(p) for p in data_files], output_dir=Path(output_dir), **kwargs
    )
    result = run_pipeline(settings)
    export_outputs(result)
    return result
