"""Record extraction: header-keyed sheet rows -> canonical revenue records.

A sheet arrives as an ordered sequence of row mappings keyed by the literal
header strings.  Extraction never raises for row-level problems; every row
that cannot be used contributes an error (row rejected) or a warning (row
accepted with a notice, or skipped as noise) to the returned
ExtractionResult.  Only structural problems -- no rows, no resolvable
merchant id/name columns, no processor -- fail the sheet outright.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd

from revenue_analysis.column_map import (
    NUMERIC_COLUMNS,
    is_known_alias,
    normalize_header,
    require_identity_columns,
    resolve_columns,
)
from revenue_analysis.exceptions import ColumnMismatchError, MissingRevenueError
from revenue_analysis.months import month_from_name, parse_month, sort_months
from revenue_analysis.processors import Processor, detect_processor
from revenue_analysis.records import CanonicalRecord, RecordKey, build_record

logger = logging.getLogger(__name__)

Row = Mapping[str, object]

NOISE_MARKERS = ("merchant", "total")
TITLE_MARKERS = ("residuals", "report")

_BLANK_HEADER = re.compile(r"^unnamed: ?\d+$")
_NUMERIC_NOISE = re.compile(r"[$,%\s]")


@dataclass
class ExtractionResult:
    """Outcome of extracting one sheet or workbook."""

    success: bool
    records: list[CanonicalRecord] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    source_name: str | None = None
    processor: Processor | None = None
    title_row_skipped: bool = False

    @property
    def months(self) -> list[str]:
        """Distinct months present in the accepted records."""
        return sort_months(r.month for r in self.records)


# ---------------------------------------------------------------------------
# Cell helpers
# ---------------------------------------------------------------------------


def _is_missing(value: object) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def cell_text(value: object) -> str:
    """Trimmed string form of a cell; blank for None/NaN."""
    if _is_missing(value):
        return ""
    return str(value).strip()


def clean_merchant_id(value: object) -> str:
    """Merchant ids read from Excel as ``123456.0`` come back as ``123456``."""
    if isinstance(value, float) and not math.isnan(value) and value.is_integer():
        return str(int(value))
    return cell_text(value)


def parse_number(value: object) -> float | None:
    """Parse a numeric cell, stripping ``$``, ``,`` and ``%``.

    Accounting negatives such as ``(1,250.00)`` are returned as negative.
    Returns None for blank or unparseable input.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None
    text = cell_text(value)
    if not text:
        return None
    negative = text.startswith("(") and text.endswith(")")
    if negative:
        text = text[1:-1]
    text = _NUMERIC_NOISE.sub("", text)
    try:
        number = float(text)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return -number if negative else number


def _is_noise(text: str) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in NOISE_MARKERS)


def _is_blank_row(row: Row) -> bool:
    return all(not cell_text(v) for v in row.values())


# ---------------------------------------------------------------------------
# Title row handling
# ---------------------------------------------------------------------------


def _is_blank_header(header: object) -> bool:
    text = normalize_header(header)
    return not text or bool(_BLANK_HEADER.match(text))


def sheet_headers(rows: Sequence[Row]) -> list[str]:
    """Ordered union of the header keys across all rows."""
    headers: dict[str, None] = {}
    for row in rows:
        for key in row:
            headers.setdefault(key, None)
    return list(headers)


def looks_like_title(headers: Sequence[object]) -> bool:
    """Heuristic: the header line is really a report title.

    True when the first named header mentions "residuals"/"report", or when
    a single named header stands alone and is not a known column alias.
    A legitimately single-column export can trip the second rule.
    """
    named = [h for h in headers if not _is_blank_header(h)]
    if not named:
        return True
    first = normalize_header(named[0])
    if any(marker in first for marker in TITLE_MARKERS):
        return True
    return len(named) == 1 and not is_known_alias(named[0])


def promote_first_row(rows: Sequence[Row]) -> list[dict[str, object]] | None:
    """Re-key *rows* using the first row's values as the header line.

    Returns None when there is no row to promote.
    """
    if not rows:
        return None
    headers = sheet_headers(rows)
    first = rows[0]
    new_headers: list[str] = []
    seen: dict[str, int] = {}
    for i, key in enumerate(headers):
        name = cell_text(first.get(key)) or f"Unnamed: {i}"
        if name in seen:
            seen[name] += 1
            name = f"{name}.{seen[name]}"
        else:
            seen[name] = 0
        new_headers.append(name)
    return [
        {new: row.get(old) for old, new in zip(headers, new_headers)} for row in rows[1:]
    ]


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def _failed(
    message: str, *, source_name: str | None, processor: Processor | None
) -> ExtractionResult:
    return ExtractionResult(
        success=False,
        errors=[message],
        source_name=source_name,
        processor=processor,
    )


def _resolve_processor(processor: Processor | None, source_name: str | None) -> Processor | None:
    if processor is not None:
        return processor
    if source_name:
        return detect_processor(source_name)
    return None


def extract_sheet(
    rows: Sequence[Row],
    processor: Processor | None = None,
    *,
    month: str | None = None,
    source_name: str | None = None,
    sheet_name: str | None = None,
    title: str | None = None,
) -> ExtractionResult:
    """Extract canonical records from one sheet.

    Args:
        rows: Header-keyed row mappings, in sheet order.
        processor: Processor of the export; detected from *source_name*
            when omitted.
        month: Caller-declared month, used when a row has no parseable
            month of its own.
        source_name: Original filename (processor detection, month fallback).
        sheet_name: Workbook sheet name (last-resort month fallback).
        title: Title line the reader already stripped from the source;
            *rows* then start right after the real header line.
    """
    resolved = _resolve_processor(processor, str(source_name) if source_name else None)
    if resolved is None:
        return _failed(
            "Could not detect processor from filename. Please specify it explicitly.",
            source_name=source_name,
            processor=None,
        )
    if title is not None:
        return _extract_after_title(
            list(rows),
            resolved,
            title,
            month=month,
            source_name=source_name,
            sheet_name=sheet_name,
        )
    return _extract(
        list(rows),
        resolved,
        month=month,
        source_name=source_name,
        sheet_name=sheet_name,
        title_skipped=False,
        title_month=None,
    )


def _extract_after_title(
    rows: list[Row],
    processor: Processor,
    title: str,
    *,
    month: str | None,
    source_name: str | None,
    sheet_name: str | None,
) -> ExtractionResult:
    result = _extract(
        rows,
        processor,
        month=month,
        source_name=source_name,
        sheet_name=sheet_name,
        title_skipped=True,
        title_month=month_from_name(title) if title else None,
    )
    result.warnings.insert(0, f"Title row skipped: {title!r}")
    result.title_row_skipped = True
    return result


def _extract(
    rows: list[Row],
    processor: Processor,
    *,
    month: str | None,
    source_name: str | None,
    sheet_name: str | None,
    title_skipped: bool,
    title_month: str | None,
) -> ExtractionResult:
    label = sheet_name or (Path(source_name).name if source_name else "sheet")
    if not rows:
        return _failed(f"{label} is empty", source_name=source_name, processor=processor)

    headers = sheet_headers(rows)
    if not title_skipped and looks_like_title(headers):
        promoted = promote_first_row(rows)
        if promoted is not None:
            title = next((h for h in headers if not _is_blank_header(h)), "")
            return _extract_after_title(
                promoted,
                processor,
                title,
                month=month,
                source_name=source_name,
                sheet_name=sheet_name,
            )

    mapping = resolve_columns(headers)
    try:
        require_identity_columns(mapping, headers)
    except ColumnMismatchError as e:
        return _failed(
            f"{e} (available: {', '.join(sorted(e.available))})",
            source_name=source_name,
            processor=processor,
        )

    declared_month = parse_month(month) if month else None
    bad_month = bool(cell_text(month)) and declared_month is None
    file_month = month_from_name(Path(source_name).name) if source_name else None
    sheet_month = month_from_name(sheet_name) if sheet_name else None
    fallback_month = declared_month or title_month or file_month or sheet_month

    records: list[CanonicalRecord] = []
    positions: dict[RecordKey, int] = {}
    row_sources: list[int] = []
    errors: list[str] = []
    warnings: list[str] = []
    if bad_month:
        warnings.append(
            f"Declared month {month!r} not recognized, using the row or filename month instead"
        )
    first_line = 3 if title_skipped else 2

    for line, row in enumerate(rows, start=first_line):
        if _is_blank_row(row):
            continue

        merchant_id = clean_merchant_id(row.get(mapping["merchant_id"]))
        merchant_name = cell_text(row.get(mapping["merchant_name"]))
        if not merchant_id or not merchant_name:
            errors.append(f"Row {line}: missing merchant id or name, skipped")
            continue
        if _is_noise(merchant_id) or _is_noise(merchant_name):
            warnings.append(f"Row {line}: header/total row {merchant_name!r} skipped")
            continue

        row_month = None
        if "month" in mapping:
            row_month = parse_month(row.get(mapping["month"]))
        record_month = row_month or fallback_month
        if record_month is None:
            errors.append(
                f"Row {line}: could not determine month for {merchant_name} ({merchant_id})"
            )
            continue

        values: dict[str, float] = {}
        for name in NUMERIC_COLUMNS:
            column = mapping.get(name)
            if column is None:
                continue
            raw = row.get(column)
            if not cell_text(raw):
                continue
            number = parse_number(raw)
            if number is None:
                warnings.append(
                    f"Row {line}: invalid {name} value {cell_text(raw)!r} for "
                    f"{merchant_id}, treated as absent"
                )
                continue
            values[name] = number

        branch_id = None
        if "branch_id" in mapping:
            branch_id = clean_merchant_id(row.get(mapping["branch_id"])) or None

        try:
            record = build_record(
                processor,
                merchant_id=merchant_id,
                merchant_name=merchant_name,
                month=record_month,
                branch_id=branch_id,
                values=values,
            )
        except MissingRevenueError as e:
            errors.append(f"Row {line}: {e}")
            continue

        index = positions.get(record.key)
        if index is None:
            positions[record.key] = len(records)
            records.append(record)
            row_sources.append(line)
            continue

        existing = records[index]
        if record.revenue() > existing.revenue():
            warnings.append(
                f"Duplicate Merchant ID {merchant_id!r} for {record_month}: kept row {line} "
                f"(revenue {record.revenue():,.2f}), dropped row {row_sources[index]} "
                f"(revenue {existing.revenue():,.2f})"
            )
            records[index] = record
            row_sources[index] = line
        else:
            warnings.append(
                f"Duplicate Merchant ID {merchant_id!r} for {record_month}: kept row "
                f"{row_sources[index]} (revenue {existing.revenue():,.2f}), dropped row {line} "
                f"(revenue {record.revenue():,.2f})"
            )

    if not records:
        errors.append(f"No valid records found in {label}")

    for message in errors:
        logger.debug("%s: %s", label, message)
    logger.info(
        "%s [%s]: %d records accepted, %d errors, %d warnings",
        label,
        processor.value,
        len(records),
        len(errors),
        len(warnings),
    )
    return ExtractionResult(
        success=bool(records),
        records=records,
        errors=errors,
        warnings=warnings,
        source_name=source_name,
        processor=processor,
    )


def extract_workbook(
    sheets: Mapping[str, Sequence[Row]],
    processor: Processor | None = None,
    *,
    month: str | None = None,
    source_name: str | None = None,
    titles: Mapping[str, str] | None = None,
) -> ExtractionResult:
    """Extract every sheet independently and concatenate accepted records.

    Sheet names only act as a month source for multi-sheet workbooks.  No
    deduplication happens across sheets; merging is the store's job.
    *titles* maps sheet names to title lines the reader already stripped.
    """
    titles = titles or {}
    resolved = _resolve_processor(processor, str(source_name) if source_name else None)
    if resolved is None:
        return _failed(
            "Could not detect processor from filename. Please specify it explicitly.",
            source_name=source_name,
            processor=None,
        )
    if not sheets:
        return _failed("Workbook has no sheets", source_name=source_name, processor=resolved)

    multi = len(sheets) > 1
    combined = ExtractionResult(success=False, source_name=source_name, processor=resolved)
    for name, rows in sheets.items():
        result = extract_sheet(
            rows,
            resolved,
            month=month,
            source_name=source_name,
            sheet_name=name if multi else None,
            title=titles.get(name),
        )
        prefix = f"[{name}] " if multi else ""
        combined.records.extend(result.records)
        combined.errors.extend(prefix + e for e in result.errors)
        combined.warnings.extend(prefix + w for w in result.warnings)
        combined.title_row_skipped = combined.title_row_skipped or result.title_row_skipped

    combined.success = bool(combined.records)
    if multi and not combined.success:
        combined.errors.append("No valid records found in any sheet")
    return combined
