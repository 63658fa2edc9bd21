"""Formatted Excel report generation with NamedStyles."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import (
    Alignment,
    Border,
    Font,
    NamedStyle,
    PatternFill,
    Side,
)
from openpyxl.utils import get_column_letter

from revenue_analysis.formatting import excel_number_format, is_percentage_column
from revenue_analysis.months import month_label

logger = logging.getLogger(__name__)

NAVY = "1B365D"
ZEBRA_GRAY = "FAFAFA"
ERROR_RED = "C00000"
THIN_BORDER = Border(
    left=Side(style="thin", color="D0D0D0"),
    right=Side(style="thin", color="D0D0D0"),
    top=Side(style="thin", color="D0D0D0"),
    bottom=Side(style="thin", color="D0D0D0"),
)


def _register_styles(wb: Workbook) -> None:
    """Register NamedStyles once for batch application."""
    header_style = NamedStyle(name="rev_header")
    header_style.font = Font(name="Calibri", bold=True, color="FFFFFF", size=10)
    header_style.fill = PatternFill(start_color=NAVY, end_color=NAVY, fill_type="solid")
    header_style.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
    header_style.border = THIN_BORDER
    wb.add_named_style(header_style)

    for name, fill in (("rev_data_even", None), ("rev_data_odd", ZEBRA_GRAY)):
        style = NamedStyle(name=name)
        style.font = Font(name="Calibri", size=10)
        if fill:
            style.fill = PatternFill(start_color=fill, end_color=fill, fill_type="solid")
        style.alignment = Alignment(horizontal="center", vertical="center")
        style.border = THIN_BORDER
        wb.add_named_style(style)


def _period_label(window: list[str]) -> str:
    if not window:
        return "N/A"
    if len(window) == 1:
        return month_label(window[0])
    return f"{month_label(window[0])} - {month_label(window[-1])}"


def _write_cover_sheet(wb: Workbook, result) -> None:
    """Write the Report Info cover sheet."""
    ws = wb.active
    ws.title = "Report Info"
    ws.sheet_properties.showGridLines = False

    ws.merge_cells("A1:D1")
    cell = ws["A1"]
    cell.value = "Merchant Revenue Report"
    cell.font = Font(name="Calibri", size=24, bold=True, color=NAVY)

    ws.merge_cells("A2:D2")
    ws["A2"].value = result.settings.client_name or ""
    ws["A2"].font = Font(name="Calibri", size=16, color="666666")

    now = datetime.now()
    details = [
        ("Report Date:", now.strftime("%B %d, %Y")),
        ("Processor Scope:", result.settings.scope),
        ("Period:", _period_label(result.window)),
        ("Source Files:", ", ".join(result.extractions) or "N/A"),
        ("Records:", f"{len(result.store):,}"),
        ("Analyses Run:", str(sum(1 for a in result.analyses if a.error is None))),
    ]

    for i, (label, value) in enumerate(details, start=4):
        ws[f"A{i}"].value = label
        ws[f"A{i}"].font = Font(name="Calibri", bold=True, size=11)
        ws[f"B{i}"].value = value
        ws[f"B{i}"].font = Font(name="Calibri", size=11)

    ws.column_dimensions["A"].width = 20
    ws.column_dimensions["B"].width = 60


def _ingestion_frame(result) -> pd.DataFrame:
    rows = [
        {
            "file": name,
            "processor": extraction.processor.value if extraction.processor else "",
            "status": "OK" if extraction.success else "Failed",
            "records": len(extraction.records),
            "months": ", ".join(extraction.months),
            "error_count": len(extraction.errors),
            "warning_count": len(extraction.warnings),
            "first_error": extraction.errors[0] if extraction.errors else "",
        }
        for name, extraction in result.extractions.items()
    ]
    return pd.DataFrame(rows)


def _write_frame_sheet(wb: Workbook, sheet_name: str, df: pd.DataFrame) -> None:
    """Write a DataFrame as a formatted worksheet."""
    ws = wb.create_sheet(sheet_name[:31])
    ws.freeze_panes = "A2"

    for col_idx, col_name in enumerate(df.columns, start=1):
        cell = ws.cell(row=1, column=col_idx, value=col_name)
        cell.style = "rev_header"

    for row_idx, (_, row) in enumerate(df.iterrows(), start=2):
        style = "rev_data_odd" if row_idx % 2 else "rev_data_even"
        for col_idx, col_name in enumerate(df.columns, start=1):
            val = row[col_name]
            if isinstance(val, float) and pd.isna(val):
                val = None
            is_pct = is_percentage_column(str(col_name).lower())
            if is_pct and isinstance(val, (int, float)) and not isinstance(val, bool):
                val = val / 100.0
            cell = ws.cell(row=row_idx, column=col_idx, value=val)
            cell.style = style
            cell.number_format = excel_number_format(str(col_name))

    if len(df) > 0:
        last_col = get_column_letter(len(df.columns))
        ws.auto_filter.ref = f"A1:{last_col}{len(df) + 1}"

    for col_idx, col_name in enumerate(df.columns, start=1):
        max_len = len(str(col_name))
        for val in df[col_name].head(20):
            display_len = len(str(val)) if not pd.isna(val) else 0
            max_len = max(max_len, display_len)
        ws.column_dimensions[get_column_letter(col_idx)].width = min(max_len + 4, 40)


def _write_errors(ws, result, start_row: int) -> None:
    failed = [a for a in result.analyses if a.error is not None]
    if not failed:
        return
    ws.cell(row=start_row, column=1, value="Skipped Analyses").font = Font(
        name="Calibri", bold=True, size=11, color=ERROR_RED
    )
    for offset, analysis in enumerate(failed, start=1):
        ws.cell(row=start_row + offset, column=1, value=analysis.title)
        ws.cell(row=start_row + offset, column=2, value=analysis.error)


def write_excel_report(result, output_path: Path) -> None:
    """Write the complete Excel report."""
    wb = Workbook()
    _register_styles(wb)
    _write_cover_sheet(wb, result)
    _write_errors(wb["Report Info"], result, start_row=12)

    for analysis in result.analyses:
        if analysis.error is not None or analysis.df.empty:
            continue
        _write_frame_sheet(wb, analysis.sheet_name or analysis.name, analysis.df)

    if result.extractions:
        _write_frame_sheet(wb, "Ingestion", _ingestion_frame(result))

    wb.save(output_path)
    logger.info("Excel report saved: %s", output_path)
