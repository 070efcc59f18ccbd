"""Extraction dataclasses and enumerations.

This module contains pure data structures with no extractor dependencies,
ensuring they can be imported by every extractor and by the reconciliation
engine without circular imports.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from consig_recon.utils.patterns import EMPLOYEE_KEY_PATTERN

if TYPE_CHECKING:
    from collections.abc import Mapping

__all__ = [
    "DEGRADING_CODES",
    "Confidence",
    "DiagnosticsItem",
    "ExtractionResult",
    "FormatTag",
    "NormalizedRow",
    "Quality",
    "RowMetadata",
    "Severity",
    "Source",
]


class Source(str, Enum):
    """Which side of the reconciliation produced a row."""

    BANK = "bank"
    AUTHORITY = "authority"


class Confidence(str, Enum):
    """How unambiguous the amount of a row was on its source line."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Severity(str, Enum):
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class Quality(str, Enum):
    """Derived health tag of an extraction or reconciliation."""

    COMPLETE = "complete"
    PARTIAL = "partial"
    FAILED = "failed"


class FormatTag(str, Enum):
    """Declared input shape, used by the router to pick an extractor."""

    DELIMITED_TEXT = "delimited-text"
    SPREADSHEET = "spreadsheet"
    PDF_TEXT = "pdf-text"
    DOCUMENT_TEXT = "document-text"
    PLAIN_TEXT = "plain-text"
    UNSUPPORTED = "unsupported"


# Warnings that mean rows were kept but read with reduced confidence
DEGRADING_CODES = frozenset(
    {
        "PDF_TEXT_SPARSE",
        "DOCX_NO_TABLE",
        "DOCX_TABLE_EXTRACT_FALLBACK_TEXT",
        "TEXT_COLUMN_MISMATCH",
        "COLUMNS_LOW_CONFIDENCE",
    }
)


@dataclass(frozen=True)
class DiagnosticsItem:
    """One structured issue raised during extraction or reconciliation.

    Attributes
    ----------
        severity: info, warn or error
        code: Stable machine-readable identifier (e.g. "CSV_NO_ROWS")
        message: Short summary for logs and developers
        details: Optional payload (counts, detected delimiter, sample tokens),
            stored as a read-only copy
    """

    severity: Severity
    code: str
    message: str
    details: Mapping[str, Any] | None = None

    def __post_init__(self) -> None:
        if self.details is not None:
            object.__setattr__(self, "details", MappingProxyType(dict(self.details)))

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR


@dataclass(frozen=True)
class RowMetadata:
    """Display-only context attached to a row; never used for matching."""

    period: str | None = None
    event_code: str | None = None
    confidence: Confidence = Confidence.HIGH
    employee_name: str | None = None
    tax_id: str | None = None


@dataclass(frozen=True)
class NormalizedRow:
    """The unit produced by every extractor."""

    source: Source
    employee_key: str
    amount: Decimal
    metadata: RowMetadata = field(default_factory=RowMetadata)
    raw_reference: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal) or not self.amount.is_finite():
            msg = f"Row amount must be a finite Decimal, got {self.amount!r}"
            raise ValueError(msg)
        if not EMPLOYEE_KEY_PATTERN.fullmatch(self.employee_key):
            msg = f"Malformed employee key: {self.employee_key!r}"
            raise ValueError(msg)
        if not isinstance(self.metadata.confidence, Confidence):
            msg = f"Unknown confidence: {self.metadata.confidence!r}"
            raise ValueError(msg)

    @property
    def period(self) -> str | None:
        return self.metadata.period


@dataclass(frozen=True)
class ExtractionResult:
    """Rows and diagnostics produced from one document.

    ``quality`` is derived from the content: ``failed`` without rows,
    ``partial`` when an error or a degrading warning was raised, ``complete``
    otherwise.
    """

    rows: tuple[NormalizedRow, ...]
    diagnostics: tuple[DiagnosticsItem, ...]
    detected_format: FormatTag
    period: str | None = None

    @property
    def quality(self) -> Quality:
        if not self.rows:
            return Quality.FAILED
        for diag in self.diagnostics:
            if diag.is_error:
                return Quality.PARTIAL
            if diag.severity is Severity.WARN and diag.code in DEGRADING_CODES:
                return Quality.PARTIAL
        return Quality.COMPLETE

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def codes(self) -> list[str]:
        """Diagnostic codes in emission order."""
        return [d.code for d in self.diagnostics]
