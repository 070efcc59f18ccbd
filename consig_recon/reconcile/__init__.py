"""Reconciliation of bank rows against authority rows."""

from consig_recon.reconcile.engine import reconcile, reconcile_extractions
from consig_recon.reconcile.format import format_reconciliation_report, log_reconciliation
from consig_recon.reconcile.types import (
    ReconciliationItem,
    ReconciliationResult,
    ReconciliationStatus,
    ReconciliationSummary,
)

__all__ = [
    "ReconciliationItem",
    "ReconciliationResult",
    "ReconciliationStatus",
    "ReconciliationSummary",
    "format_reconciliation_report",
    "log_reconciliation",
    "reconcile",
    "reconcile_extractions",
]
