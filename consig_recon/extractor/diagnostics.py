"""Stable diagnostic codes and constructors.

Codes are a contract with every consumer of extraction and reconciliation
results (message lookup tables, exports); they must never be renamed.
"""

from __future__ import annotations

from typing import Any

from consig_recon.extractor.types import DiagnosticsItem, Severity

__all__ = [
    "CODES",
    "CODE_ALIASES",
    "diag_error",
    "diag_info",
    "diag_warn",
    "make_diagnostic",
]

# =============================================================================
# Code Catalogue
# =============================================================================

UNSUPPORTED_FORMAT = "UNSUPPORTED_FORMAT"
ENCODING_FALLBACK = "ENCODING_FALLBACK"

CSV_DELIMITER_DETECTED = "CSV_DELIMITER_DETECTED"
CSV_PARSE_SUMMARY = "CSV_PARSE_SUMMARY"
CSV_NO_ROWS = "CSV_NO_ROWS"
CSV_COMPETENCIA_NOT_FOUND = "CSV_COMPETENCIA_NOT_FOUND"
CSV_EVENT_NOT_FOUND = "CSV_EVENT_NOT_FOUND"

TEXT_PARSE_SUMMARY = "TEXT_PARSE_SUMMARY"
TEXT_ZERO_ROWS = "TEXT_ZERO_ROWS"
TEXT_COLUMN_MISMATCH = "TEXT_COLUMN_MISMATCH"
TEXT_COMPETENCIA_NOT_FOUND = "TEXT_COMPETENCIA_NOT_FOUND"
TEXT_EVENT_NOT_FOUND = "TEXT_EVENT_NOT_FOUND"

PDF_EMPTY = "PDF_EMPTY"
PDF_SCAN_DETECTED = "PDF_SCAN_DETECTED"
PDF_TEXT_SPARSE = "PDF_TEXT_SPARSE"
PDF_TEXT_EXTRACTED = "PDF_TEXT_EXTRACTED"
PDF_READ_ERROR = "PDF_READ_ERROR"

DOCX_EMPTY = "DOCX_EMPTY"
DOCX_TABLE_DETECTED = "DOCX_TABLE_DETECTED"
DOCX_NO_TABLE = "DOCX_NO_TABLE"
DOCX_TABLE_EXTRACT_FALLBACK_TEXT = "DOCX_TABLE_EXTRACT_FALLBACK_TEXT"
DOCX_TEXT_EXTRACTED = "DOCX_TEXT_EXTRACTED"
DOCX_READ_ERROR = "DOCX_READ_ERROR"

XLSX_READ_ERROR = "XLSX_READ_ERROR"
XLSX_EMPTY = "XLSX_EMPTY"
XLSX_SHEET_FALLBACK = "XLSX_SHEET_FALLBACK"
COLUMNS_NOT_DETECTED = "COLUMNS_NOT_DETECTED"
COLUMNS_LOW_CONFIDENCE = "COLUMNS_LOW_CONFIDENCE"
XLSX_HEADER_ROW_SKIPPED = "XLSX_HEADER_ROW_SKIPPED"
XLSX_ZERO_ROWS = "XLSX_ZERO_ROWS"
XLSX_COMPETENCIA_NOT_FOUND = "XLSX_COMPETENCIA_NOT_FOUND"
XLSX_EVENT_NOT_FOUND = "XLSX_EVENT_NOT_FOUND"
XLSX_EXTRACTION_COMPLETE = "XLSX_EXTRACTION_COMPLETE"

DUPLICATE_MATRICULA = "DUPLICATE_MATRICULA"
RECONCILE_SUMMARY = "RECONCILE_SUMMARY"

CODES: frozenset[str] = frozenset(
    value for name, value in dict(globals()).items() if name.isupper() and isinstance(value, str)
)

# English spellings accepted by the constructors; results always carry the catalogue code
CODE_ALIASES: dict[str, str] = {
    "CSV_PERIOD_NOT_FOUND": CSV_COMPETENCIA_NOT_FOUND,
    "TEXT_PERIOD_NOT_FOUND": TEXT_COMPETENCIA_NOT_FOUND,
    "XLSX_PERIOD_NOT_FOUND": XLSX_COMPETENCIA_NOT_FOUND,
    "DUPLICATE_KEY": DUPLICATE_MATRICULA,
}


# =============================================================================
# Constructors
# =============================================================================


def make_diagnostic(
    severity: Severity,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> DiagnosticsItem:
    """Build a diagnostic, rejecting codes outside the catalogue.

    Codes listed in ``CODE_ALIASES`` are replaced by their catalogue code.

    Raises
    ------
    ValueError
        If ``code`` is not a known diagnostic code.
    """
    code = CODE_ALIASES.get(code, code)
    if code not in CODES:
        msg = f"Unknown diagnostic code: {code}"
        raise ValueError(msg)
    return DiagnosticsItem(severity=severity, code=code, message=message, details=details)


def diag_info(code: str, message: str, details: dict[str, Any] | None = None) -> DiagnosticsItem:
    return make_diagnostic(Severity.INFO, code, message, details)


def diag_warn(code: str, message: str, details: dict[str, Any] | None = None) -> DiagnosticsItem:
    return make_diagnostic(Severity.WARN, code, message, details)


def diag_error(code: str, message: str, details: dict[str, Any] | None = None) -> DiagnosticsItem:
    return make_diagnostic(Severity.ERROR, code, message, details)
