"""Column alias resolution and required column definitions."""

from __future__ import annotations

import re
from collections.abc import Iterable

from revenue_analysis.exceptions import ColumnMismatchError

REQUIRED_COLUMNS = {
    "merchant_id",
    "merchant_name",
}

NUMERIC_COLUMNS = (
    "sales_amount",
    "net",
    "payout_amount",
    "agent_net",
    "transactions",
    "commission_percent",
    "partner_net",
    "volume",
    "sales",
    "refunds",
    "reject_amount",
    "bank_split",
    "bank_payout",
    "income",
    "expenses",
)

OPTIONAL_COLUMNS = {
    "branch_id",
    "month",
    *NUMERIC_COLUMNS,
}

# Canonical field -> normalized header variations.
FIELD_ALIASES: dict[str, frozenset[str]] = {
    "merchant_id": frozenset(
        {"merchant id", "merchantid", "merchant_id", "mid", "merchant number", "id", "client"}
    ),
    "merchant_name": frozenset(
        {
            "merchant name",
            "merchantname",
            "merchant_name",
            "merchant",
            "name",
            "dba",
            "dba name",
            "business name",
            "businessname",
        }
    ),
    "branch_id": frozenset(
        {"branch id", "branchid", "branch_id", "branch", "branch number", "agent", "agent id"}
    ),
    "month": frozenset(
        {"month", "date", "period", "month/year", "processing date", "processingdate"}
    ),
    "sales_amount": frozenset(
        {"sales amount", "salesamount", "sales_amount", "sales", "amount", "revenue"}
    ),
    "net": frozenset({"net", "tracer net", "net revenue", "residual", "net residual"}),
    "payout_amount": frozenset({"payout amount", "payoutamount", "payout_amount", "payout"}),
    "agent_net": frozenset({"agent net", "agentnet", "agent_net"}),
    "transactions": frozenset({"transactions", "transaction count", "txn count", "# trans"}),
    "commission_percent": frozenset({"commission %", "commission percent", "commission"}),
    "partner_net": frozenset({"partner net", "partnernet", "partner_net"}),
    "volume": frozenset({"volume", "total volume"}),
    "sales": frozenset({"gross sales", "grosssales"}),
    "refunds": frozenset({"refunds", "refund amount"}),
    "reject_amount": frozenset({"reject amount", "rejectamount", "rejects"}),
    "bank_split": frozenset({"bank split", "banksplit", "bank split %"}),
    "bank_payout": frozenset({"bank payout", "bankpayout"}),
    "income": frozenset({"income", "total income"}),
    "expenses": frozenset({"expenses", "expense", "total expenses"}),
}

_WHITESPACE = re.compile(r"\s+")


def normalize_header(header: object) -> str:
    """Lowercase, trim and collapse internal whitespace to single spaces."""
    return _WHITESPACE.sub(" ", str(header).strip().lower())


def resolve_column(headers: Iterable[object], field: str) -> str | None:
    """Return the literal header whose normalized form is an alias of *field*.

    Returns None when no header matches.  None means the column is absent,
    which callers keep distinct from a present-but-blank cell.
    """
    aliases = FIELD_ALIASES[field]
    for header in headers:
        if normalize_header(header) in aliases:
            return header  # type: ignore[return-value]
    return None


def resolve_columns(headers: Iterable[object]) -> dict[str, str]:
    """Resolve every known field; absent fields are left out of the mapping.

    A header is claimed by at most one field, in FIELD_ALIASES order.
    """
    headers = list(headers)
    mapping: dict[str, str] = {}
    claimed: set[str] = set()
    for field in FIELD_ALIASES:
        column = resolve_column((h for h in headers if h not in claimed), field)
        if column is not None:
            mapping[field] = column
            claimed.add(column)
    return mapping


def require_identity_columns(mapping: dict[str, str], headers: Iterable[object]) -> None:
    """Raise ColumnMismatchError if merchant id or name could not be resolved."""
    missing = REQUIRED_COLUMNS - set(mapping)
    if missing:
        raise ColumnMismatchError(missing=missing, available={str(h) for h in headers})


def resolve_column_containing(headers: Iterable[object], candidates: Iterable[str]) -> str | None:
    """Substring variant used by the leads parser only.

    Returns the first header whose normalized form contains any normalized
    candidate.
    """
    needles = [normalize_header(c) for c in candidates]
    for header in headers:
        normalized = normalize_header(header)
        if any(n in normalized for n in needles):
            return header  # type: ignore[return-value]
    return None


def is_known_alias(header: object) -> bool:
    """True if *header* matches an alias of any canonical field."""
    normalized = normalize_header(header)
    return any(normalized in aliases for aliases in FIELD_ALIASES.values())
