"""Leads (MyLeads export) metadata and cross-reference warnings.

The leads file is a CRM export describing merchants independently of the
processor reports.  Its headers drift between exports, so columns are found
by substring containment rather than the exact alias match used for revenue
sheets.
"""

from __future__ import annotations

import logging
import random
import string
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Literal

from revenue_analysis.column_map import resolve_column_containing
from revenue_analysis.extractor import Row, cell_text, clean_merchant_id, sheet_headers
from revenue_analysis.records import CanonicalRecord

logger = logging.getLogger(__name__)

LEADS_COLUMNS: dict[str, tuple[str, ...]] = {
    "merchant_id": ("Existing MID", "MID"),
    "dba_name": ("DBA",),
    "partner_branch_number": ("Partner Branch Number", "Branch Number"),
    "status": ("Status",),
    "status_category": ("Status Category",),
    "current_processor": ("Current Processor", "Processor"),
}

TEMP_ID_PREFIX = "LEAD-"
_TEMP_ID_ALPHABET = string.ascii_uppercase + string.digits

WarningType = Literal["branch_mismatch", "processor_mismatch"]


@dataclass(frozen=True)
class MerchantMetadata:
    merchant_id: str
    dba_name: str
    partner_branch_number: str | None = None
    status: str | None = None
    status_category: str | None = None
    current_processor: str | None = None


@dataclass
class LeadsParseResult:
    success: bool
    metadata: list[MerchantMetadata] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ValidationWarning:
    merchant_id: str
    merchant_name: str
    warning_type: WarningType
    expected: str
    actual: str
    processor: str


def temporary_merchant_id(rng: random.Random | None = None) -> str:
    """Placeholder id for a lead without an existing MID, e.g. ``LEAD-7QX2M0AB``."""
    rng = rng or random.Random()
    return TEMP_ID_PREFIX + "".join(rng.choices(_TEMP_ID_ALPHABET, k=8))


def parse_leads(rows: Sequence[Row], rng: random.Random | None = None) -> LeadsParseResult:
    """Parse leads rows into MerchantMetadata.

    The DBA column is required.  Rows without a DBA are skipped with a
    warning; rows without a MID get a temporary ``LEAD-`` id and a single
    summary warning counts them.
    """
    if not rows:
        return LeadsParseResult(success=False, errors=["File is empty"])

    headers = sheet_headers(rows)
    columns = {name: resolve_column_containing(headers, c) for name, c in LEADS_COLUMNS.items()}
    if columns["dba_name"] is None:
        return LeadsParseResult(
            success=False, errors=["Required column not found: DBA is required"]
        )

    def optional(row: Row, name: str) -> str | None:
        header = columns[name]
        if header is None:
            return None
        return cell_text(row.get(header)) or None

    result = LeadsParseResult(success=True)
    generated = 0
    for row_number, row in enumerate(rows, start=2):
        dba = cell_text(row.get(columns["dba_name"]))
        if not dba:
            result.warnings.append(f"Row {row_number}: Missing DBA, skipping")
            continue
        merchant_id = ""
        if columns["merchant_id"] is not None:
            merchant_id = clean_merchant_id(row.get(columns["merchant_id"]))
        if not merchant_id:
            merchant_id = temporary_merchant_id(rng)
            generated += 1
        result.metadata.append(
            MerchantMetadata(
                merchant_id=merchant_id,
                dba_name=dba,
                partner_branch_number=optional(row, "partner_branch_number"),
                status=optional(row, "status"),
                status_category=optional(row, "status_category"),
                current_processor=optional(row, "current_processor"),
            )
        )

    if generated:
        result.warnings.append(
            f"Auto-generated temporary IDs for {generated} leads without Existing MID"
        )
    if not result.metadata:
        result.success = False
        result.errors.append("No valid merchant metadata found in file")

    logger.info(
        "Leads parsed: %d merchants, %d warnings", len(result.metadata), len(result.warnings)
    )
    return result


def validation_warnings(
    records: Iterable[CanonicalRecord], metadata: Iterable[MerchantMetadata]
) -> list[ValidationWarning]:
    """Cross-check records against leads metadata by merchant id.

    ``branch_mismatch`` when both sides carry a branch and they differ;
    ``processor_mismatch`` when the lead names a different processor
    (compared case-insensitively).
    """
    by_id = {m.merchant_id: m for m in metadata}
    if not by_id:
        return []

    warnings: list[ValidationWarning] = []
    for record in records:
        meta = by_id.get(record.merchant_id)
        if meta is None:
            continue
        processor = record.processor.value
        if (
            meta.partner_branch_number
            and record.branch_id
            and meta.partner_branch_number != record.branch_id
        ):
            warnings.append(
                ValidationWarning(
                    merchant_id=record.merchant_id,
                    merchant_name=record.merchant_name,
                    warning_type="branch_mismatch",
                    expected=meta.partner_branch_number,
                    actual=record.branch_id,
                    processor=processor,
                )
            )
        if meta.current_processor and meta.current_processor.lower() != processor.lower():
            warnings.append(
                ValidationWarning(
                    merchant_id=record.merchant_id,
                    merchant_name=record.merchant_name,
                    warning_type="processor_mismatch",
                    expected=meta.current_processor,
                    actual=processor,
                    processor=processor,
                )
            )
    return warnings
