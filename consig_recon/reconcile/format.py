"""Reconciliation report formatting utilities.

Pure formatters for display and logging; nothing here alters a result.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from consig_recon.config import get_channel_name
from consig_recon.extractor.types import Severity
from consig_recon.reconcile.types import ReconciliationStatus
from consig_recon.utils.parsing import format_amount

if TYPE_CHECKING:
    from decimal import Decimal

    from consig_recon.extractor.types import ExtractionResult
    from consig_recon.reconcile.types import ReconciliationItem, ReconciliationResult

logger = logging.getLogger(__name__)

__all__ = [
    "format_extraction_summary",
    "format_item",
    "format_reconciliation_report",
    "log_reconciliation",
]

STATUS_LABELS = {
    ReconciliationStatus.MATCHED: "Matched",
    ReconciliationStatus.DIVERGENT: "Divergent",
    ReconciliationStatus.BANK_ONLY: "Bank only",
    ReconciliationStatus.AUTHORITY_ONLY: "Authority only",
    ReconciliationStatus.DIAGNOSTIC: "Diagnostic",
}

# Sections listed in the report body, in order
_DETAIL_SECTIONS = (
    ReconciliationStatus.DIVERGENT,
    ReconciliationStatus.BANK_ONLY,
    ReconciliationStatus.AUTHORITY_ONLY,
)


def _money(amount: Decimal | None) -> str:
    return "-" if amount is None else f"R$ {format_amount(amount)}"


def format_item(item: ReconciliationItem) -> str:
    """Format one item as ``key: bank x authority (note)``."""
    line = f"  {item.employee_key}: bank {_money(item.bank_amount)} x authority {_money(item.authority_amount)}"
    if item.note:
        line += f" ({item.note})"
    return line


def format_extraction_summary(label: str, extraction: ExtractionResult) -> str:
    """One-line preview of an extraction: rows, period, quality and event channels."""
    events = sorted({row.metadata.event_code for row in extraction.rows if row.metadata.event_code})
    channels = ", ".join(f"{code} {get_channel_name(code) or '?'}" for code in events) or "none"
    return (
        f"{label}: {len(extraction.rows)} rows, format {extraction.detected_format.value}, "
        f"period {extraction.period or 'n/a'}, quality {extraction.quality.value}, events {channels}"
    )


def format_reconciliation_report(result: ReconciliationResult) -> str:
    """Format a reconciliation result for display.

    Parameters
    ----------
    result
        Output of the reconciliation engine.

    Returns
    -------
    str
        Multi-line report: headline, counts per status, then every
        non-matched item grouped by status, then warnings and errors.
    """
    summary = result.summary
    separator = "═" * 60
    lines = [
        separator,
        "                  RECONCILIATION REPORT",
        separator,
        "",
        f"Period:     {summary.period or 'n/a'}",
        f"Quality:    {summary.quality.value}",
        f"Match rate: {summary.match_rate_percent:.2f}%",
        "",
        "Counts:",
    ]
    lines.extend(
        f"  {STATUS_LABELS[status]:<15} {summary.count(status)}"
        for status in ReconciliationStatus
        if status is not ReconciliationStatus.DIAGNOSTIC
    )

    for status in _DETAIL_SECTIONS:
        section = result.items_with_status(status)
        if section:
            lines.extend(["", f"{STATUS_LABELS[status]}:"])
            lines.extend(format_item(item) for item in section)

    issues = [d for d in result.diagnostics if d.severity is not Severity.INFO]
    if issues:
        lines.extend(["", "Diagnostics:"])
        lines.extend(f"  [{d.severity.value}] {d.code}: {d.message}" for d in issues)

    lines.extend(["", separator])
    return "\n".join(lines)


def log_reconciliation(result: ReconciliationResult) -> None:
    """Log a reconciliation result with appropriate log levels."""
    summary = result.summary
    logger.info(
        "Reconciliation %s: %.2f%% matched (%d items)",
        summary.period or "n/a",
        summary.match_rate_percent,
        summary.total,
    )
    for diag in result.diagnostics:
        if diag.severity is Severity.ERROR:
            logger.error("%s: %s", diag.code, diag.message)
        elif diag.severity is Severity.WARN:
            logger.warning("%s: %s", diag.code, diag.message)
