"""File reading: CSV/Excel processor reports and leads exports.

Readers turn files into header-keyed row mappings; all interpretation of
those rows happens in the extractor and the leads parser.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from revenue_analysis.exceptions import DataLoadError
from revenue_analysis.extractor import ExtractionResult, Row, extract_workbook, looks_like_title
from revenue_analysis.leads import LeadsParseResult, parse_leads
from revenue_analysis.processors import Processor

logger = logging.getLogger(__name__)

CSV_SUFFIXES = frozenset({".csv"})
EXCEL_SUFFIXES = frozenset({".xlsx", ".xlsm", ".xls"})


def _frame_rows(df: pd.DataFrame) -> list[Row]:
    """Row mappings with NaN cells replaced by None."""
    df = df.astype(object).where(pd.notna(df), None)
    df.columns = [str(c) for c in df.columns]
    return df.to_dict(orient="records")


def read_csv_report(path: Path) -> tuple[list[Row], str | None]:
    """Read a CSV report as text rows.

    When the first line is a report title rather than a header line, the
    file is read again skipping that line.  Returns the rows and the
    skipped title (None when the first line was the header).
    """
    path = Path(path)
    try:
        head = pd.read_csv(path, header=None, nrows=1, dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError:
        return [], None
    except Exception as e:
        raise DataLoadError(f"Failed to read {path}: {e}") from e

    first_line = [str(c) for c in head.iloc[0]] if len(head) else []
    title = None
    if first_line and looks_like_title(first_line):
        title = next((c.strip() for c in first_line if c.strip()), "")
        logger.debug("%s: title line %r skipped", path.name, title)

    try:
        df = pd.read_csv(
            path, dtype=str, keep_default_na=False, skiprows=1 if title is not None else 0
        )
    except pd.errors.EmptyDataError:
        return [], title
    except Exception as e:
        raise DataLoadError(f"Failed to read {path}: {e}") from e
    return _frame_rows(df), title


def _read(path: Path) -> tuple[dict[str, list[Row]], dict[str, str]]:
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in CSV_SUFFIXES | EXCEL_SUFFIXES:
        raise DataLoadError(f"Unsupported file type: {path.suffix}")
    if suffix in CSV_SUFFIXES:
        rows, title = read_csv_report(path)
        return {path.stem: rows}, ({path.stem: title} if title is not None else {})
    try:
        engine = "xlrd" if suffix == ".xls" else None
        sheets = pd.read_excel(path, sheet_name=None, dtype=object, engine=engine)
    except Exception as e:
        raise DataLoadError(f"Failed to read {path}: {e}") from e
    return {name: _frame_rows(df) for name, df in sheets.items()}, {}


def read_sheets(path: Path) -> dict[str, list[Row]]:
    """Read every sheet of *path* into header-keyed rows.

    CSV files yield a single sheet named after the file stem, with every
    cell kept as text and a leading title line dropped.  Excel cells keep
    their native types; title rows there are handled by the extractor.
    """
    sheets, _ = _read(path)
    return sheets


def load_file(
    path: Path,
    processor: Processor | None = None,
    month: str | None = None,
) -> ExtractionResult:
    """Read and extract one processor report.

    The processor is detected from the filename when not given.
    """
    path = Path(path)
    sheets, titles = _read(path)
    result = extract_workbook(
        sheets, processor, month=month, source_name=path.name, titles=titles
    )
    logger.info(
        "Loaded %s: %d records across %d month(s)%s",
        path.name,
        len(result.records),
        len(result.months),
        "" if result.success else " (failed)",
    )
    return result


def load_leads(path: Path) -> LeadsParseResult:
    """Parse the first sheet of a leads export."""
    path = Path(path)
    sheets = read_sheets(path)
    rows = next(iter(sheets.values()), [])
    return parse_leads(rows)
