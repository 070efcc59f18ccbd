"""Free-text report engine shared by PDF, DOCX and plain-text input.

Two strategies are tried in order:

1. **Standard**: the employee key and its amount share a physical line (the
   same line scan as delimited reports, without a delimiter).
2. **Column-separated**: some PDF text layers emit every key first and every
   value afterwards. Lines opening with a key and carrying no tax id are
   collected as keys; lines carrying a tax id and an amount are collected as
   values; both lists are then paired by position.

The second strategy only runs when the first produced no rows, and any
key/value count mismatch is reported as ``TEXT_COLUMN_MISMATCH``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import NamedTuple

from consig_recon.config import get_raw_reference_limit, setup_logging
from consig_recon.extractor import diagnostics as codes
from consig_recon.extractor.csv_tools import split_lines
from consig_recon.extractor.diagnostics import diag_error, diag_info, diag_warn
from consig_recon.extractor.scan import ScanContext, build_row, scan_lines
from consig_recon.extractor.types import (
    Confidence,
    DiagnosticsItem,
    ExtractionResult,
    FormatTag,
    NormalizedRow,
    Source,
)
from consig_recon.utils.parsing import choose_amount, find_amount_candidates
from consig_recon.utils.patterns import find_event_code, find_leading_key, find_tax_id

logger = setup_logging(__name__)

__all__ = [
    "TextReport",
    "extract_plain_text",
    "parse_column_separated",
    "parse_standard",
    "parse_text_report",
]

STANDARD = "standard"
COLUMN_SEPARATED = "column_separated"


class TextReport(NamedTuple):
    """Outcome of the free-text engine, before container diagnostics are added."""

    rows: tuple[NormalizedRow, ...]
    diagnostics: tuple[DiagnosticsItem, ...]
    period: str | None
    method: str


class _ValueLine(NamedTuple):
    amount: Decimal
    raw: str
    event_code: str | None
    tax_id: str | None


def parse_standard(text: str, source: Source = Source.AUTHORITY) -> TextReport:
    """Extract rows whose key and amount share a line."""
    lines = split_lines(text)
    summary = scan_lines(lines, source=source, raw_limit=get_raw_reference_limit())
    extracted = len(summary.rows)
    diagnostics: list[DiagnosticsItem] = []

    if summary.period is None:
        diagnostics.append(diag_warn(codes.TEXT_COMPETENCIA_NOT_FOUND, "Reporting period not found in text"))
    if not summary.events_seen and extracted:
        diagnostics.append(diag_warn(codes.TEXT_EVENT_NOT_FOUND, "No event marker found in text"))

    if not extracted:
        diagnostics.append(
            diag_error(
                codes.TEXT_ZERO_ROWS,
                "No line with both an employee key and an amount",
                {"dataLinesDetected": summary.data_lines, "discardedNoValue": summary.discarded_no_value},
            )
        )
    else:
        diagnostics.append(
            diag_info(
                codes.TEXT_PARSE_SUMMARY,
                f"Extracted {extracted} rows from {summary.data_lines} data lines",
                {
                    "totalLines": summary.total_lines,
                    "dataLinesDetected": summary.data_lines,
                    "extractedRows": extracted,
                    "discardedNoValue": summary.discarded_no_value,
                    "period": summary.period,
                    "eventsDetected": len(summary.events_seen),
                    "extractionMethod": STANDARD,
                },
            )
        )

    return TextReport(summary.rows, tuple(diagnostics), summary.period, STANDARD)


def parse_column_separated(text: str, source: Source = Source.AUTHORITY) -> TextReport:
    """Pair key-only lines with tax-id value lines by position.

    Rows built this way always carry ``medium`` confidence: the pairing is
    positional, not read from a single line.
    """
    lines = split_lines(text)
    raw_limit = get_raw_reference_limit()
    context = ScanContext()
    keys: list[str] = []
    values: list[_ValueLine] = []

    for line in lines:
        stripped = line.strip()
        if not stripped:
            continue

        context = context.observe_period(stripped)
        event_code = find_event_code(stripped)
        if event_code is not None:
            context = context.switch_event(event_code)
            continue

        tax_id = find_tax_id(stripped)
        key = find_leading_key(stripped)
        if key is not None and tax_id is None:
            keys.append(key)
            continue

        if tax_id is not None:
            amount = choose_amount([c.value for c in find_amount_candidates(stripped)])
            if amount is not None:
                values.append(_ValueLine(amount, stripped, context.event_code, tax_id))

    rows = tuple(
        build_row(
            source,
            key,
            value.amount,
            raw=value.raw,
            period=context.period,
            event_code=value.event_code,
            confidence=Confidence.MEDIUM,
            tax_id=value.tax_id,
            raw_limit=raw_limit,
        )
        for key, value in zip(keys, values, strict=False)
    )

    diagnostics: list[DiagnosticsItem] = []
    counts = {"keysFound": len(keys), "valuesFound": len(values)}

    if not rows:
        diagnostics.append(
            diag_error(codes.TEXT_ZERO_ROWS, "No line with both an employee key and an amount", counts)
        )
    else:
        if len(keys) != len(values):
            logger.warning("Positional pairing with %d keys and %d values", len(keys), len(values))
            diagnostics.append(
                diag_warn(
                    codes.TEXT_COLUMN_MISMATCH,
                    f"Found {len(keys)} keys but {len(values)} values",
                    {**counts, "matched": len(rows)},
                )
            )
        diagnostics.append(
            diag_info(
                codes.TEXT_PARSE_SUMMARY,
                f"Extracted {len(rows)} rows (column-separated layout)",
                {
                    "totalLines": len(lines),
                    **counts,
                    "extractedRows": len(rows),
                    "period": context.period,
                    "eventsDetected": len(context.events_seen),
                    "extractionMethod": COLUMN_SEPARATED,
                },
            )
        )

    if context.period is None:
        diagnostics.append(diag_warn(codes.TEXT_COMPETENCIA_NOT_FOUND, "Reporting period not found in text"))
    if not context.events_seen and rows:
        diagnostics.append(diag_warn(codes.TEXT_EVENT_NOT_FOUND, "No event marker found in text"))

    return TextReport(rows, tuple(diagnostics), context.period, COLUMN_SEPARATED)


def parse_text_report(text: str, source: Source = Source.AUTHORITY) -> TextReport:
    """Run the standard strategy, falling back to the column-separated one."""
    standard = parse_standard(text, source)
    if standard.rows:
        return standard

    logger.debug("Standard text strategy found no rows, trying column-separated layout")
    return parse_column_separated(text, source)


def extract_plain_text(text: str, source: Source = Source.BANK) -> ExtractionResult:
    """Extract rows from an already-decoded plain-text report (e.g. a bank TXT)."""
    report = parse_text_report(text, source)
    result = ExtractionResult(
        rows=report.rows,
        diagnostics=report.diagnostics,
        detected_format=FormatTag.PLAIN_TEXT,
        period=report.period,
    )
    logger.info(
        "Plain-text report: %d rows (%s), quality %s",
        len(report.rows),
        report.method,
        result.quality.value,
    )
    return result
