"""Shared fixtures for revenue_analysis tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from revenue_analysis.processors import Processor
from revenue_analysis.records import build_record
from revenue_analysis.settings import Settings

DATA_DIR = Path(__file__).parent / "data"
CLEARENT_JAN = DATA_DIR / "clearent_2024-01.csv"
CLEARENT_FEB = DATA_DIR / "clearent_2024-02.csv"


@pytest.fixture()
def make_record():
    """Factory for canonical records; ``net`` becomes revenue for Clearent."""

    def _make(
        merchant_id: str,
        month: str,
        net: float | None = None,
        *,
        name: str | None = None,
        processor: Processor = Processor.CLEARENT,
        branch_id: str | None = None,
        **values: float,
    ):
        if net is not None:
            values["net"] = net
        return build_record(
            processor,
            merchant_id=merchant_id,
            merchant_name=name or f"Merchant {merchant_id}",
            month=month,
            branch_id=branch_id,
            values=values,
        )

    return _make


@pytest.fixture()
def clearent_rows_jan() -> list[dict[str, object]]:
    return [
        {"MID": "A", "DBA": "Alpha Cafe", "Net": "500"},
        {"MID": "B", "DBA": "Bravo Books", "Net": "300"},
    ]


@pytest.fixture()
def clearent_rows_feb() -> list[dict[str, object]]:
    return [
        {"MID": "A", "DBA": "Alpha Cafe", "Net": "400"},
        {"MID": "C", "DBA": "Charlie Deli", "Net": "600"},
    ]


@pytest.fixture()
def two_month_files() -> list[Path]:
    return [CLEARENT_JAN, CLEARENT_FEB]


@pytest.fixture()
def sample_settings(two_month_files: list[Path], tmp_path: Path) -> Settings:
    """Minimal Settings object pointing at the January/February Clearent CSVs."""
    return Settings(data_files=two_month_files, output_dir=tmp_path)
