"""Payment processor enumeration and filename-based detection."""

from __future__ import annotations

import logging
import re
from enum import Enum
from pathlib import Path

logger = logging.getLogger(__name__)

ALL_PROCESSORS = "All"


class Processor(str, Enum):
    """Payment processors whose residual exports are understood."""

    CLEARENT = "Clearent"
    ML = "ML"
    SHIFT4 = "Shift4"
    TSYS = "TSYS"
    MICAMP = "Micamp"
    PAYBRIGHT = "PayBright"
    TRX = "TRX"
    PAYMENT_ADVISORS = "Payment Advisors"

    def __str__(self) -> str:
        return self.value


# Keyword table scanned against lower-cased filenames.  "ml" is only matched as
# a standalone token so names like "html_export" do not detect as ML.
PROCESSOR_KEYWORDS: dict[Processor, tuple[re.Pattern[str], ...]] = {
    Processor.CLEARENT: (re.compile(r"clearent"),),
    Processor.ML: (re.compile(r"(?<![a-z])ml(?![a-z])"),),
    Processor.SHIFT4: (re.compile(r"shift\s*4"),),
    Processor.TSYS: (re.compile(r"tsys"),),
    Processor.MICAMP: (re.compile(r"micamp"),),
    Processor.PAYBRIGHT: (re.compile(r"paybright"), re.compile(r"(?<![a-z])pb_")),
    Processor.TRX: (re.compile(r"trx"),),
    Processor.PAYMENT_ADVISORS: (re.compile(r"payment[\s_-]*advisors"),),
}


def detect_processor(filename: str | Path) -> Processor | None:
    """Detect the processor from a filename.

    Returns None when nothing matches or when keywords for more than one
    processor match; the caller must then supply the processor explicitly.
    """
    name = Path(filename).name.lower()
    matches = [
        processor
        for processor, patterns in PROCESSOR_KEYWORDS.items()
        if any(p.search(name) for p in patterns)
    ]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        logger.debug(
            "Ambiguous processor for %s: %s", name, ", ".join(m.value for m in matches)
        )
    return None


def parse_processor(value: str | Processor) -> Processor:
    """Resolve user input (case-insensitive name or enum member) to a Processor."""
    if isinstance(value, Processor):
        return value
    key = " ".join(str(value).split()).lower()
    for processor in Processor:
        if processor.value.lower() == key or processor.name.lower() == key:
            return processor
    raise ValueError(
        f"Unknown processor {value!r}; expected one of "
        f"{', '.join(p.value for p in Processor)}"
    )


def parse_scope(value: str | Processor) -> str:
    """Normalize a metrics scope: a processor name or the pseudo-scope 'All'."""
    if isinstance(value, str) and value.strip().lower() == ALL_PROCESSORS.lower():
        return ALL_PROCESSORS
    return parse_processor(value).value
