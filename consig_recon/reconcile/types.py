"""Reconciliation dataclasses.

Pure data structures consumed by result renderers and exporters; the engine in
:mod:`consig_recon.reconcile.engine` is the only producer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from decimal import Decimal

    from consig_recon.extractor.types import DiagnosticsItem, Quality

__all__ = [
    "ReconciliationItem",
    "ReconciliationResult",
    "ReconciliationStatus",
    "ReconciliationSummary",
]


class ReconciliationStatus(str, Enum):
    """Classification of one reconciled amount (or pair of amounts)."""

    MATCHED = "matched"
    BANK_ONLY = "bank_only"
    AUTHORITY_ONLY = "authority_only"
    DIVERGENT = "divergent"
    DIAGNOSTIC = "diagnostic"


@dataclass(frozen=True)
class ReconciliationItem:
    """One line of the reconciliation diff.

    Attributes
    ----------
        employee_key: Key shared by both sides
        bank_amount: Amount on the bank side (absent for authority_only)
        authority_amount: Amount on the authority side (absent for bank_only)
        status: Classification of the pair
        note: Free-form explanation (signed difference for divergent items)
    """

    employee_key: str
    status: ReconciliationStatus
    bank_amount: Decimal | None = None
    authority_amount: Decimal | None = None
    note: str | None = None

    def __post_init__(self) -> None:
        both = (ReconciliationStatus.MATCHED, ReconciliationStatus.DIVERGENT)
        if self.status in both and (self.bank_amount is None or self.authority_amount is None):
            msg = f"{self.status.value} item needs both amounts ({self.employee_key})"
            raise ValueError(msg)
        if self.status is ReconciliationStatus.BANK_ONLY and (
            self.bank_amount is None or self.authority_amount is not None
        ):
            msg = f"bank_only item must carry only the bank amount ({self.employee_key})"
            raise ValueError(msg)
        if self.status is ReconciliationStatus.AUTHORITY_ONLY and (
            self.authority_amount is None or self.bank_amount is not None
        ):
            msg = f"authority_only item must carry only the authority amount ({self.employee_key})"
            raise ValueError(msg)

    @property
    def difference(self) -> Decimal | None:
        """Bank minus authority amount, when both are present."""
        if self.bank_amount is None or self.authority_amount is None:
            return None
        return self.bank_amount - self.authority_amount


@dataclass(frozen=True)
class ReconciliationSummary:
    """Headline figures of a reconciliation."""

    period: str | None
    quality: Quality
    counts: dict[ReconciliationStatus, int] = field(default_factory=dict)
    match_rate_percent: float = 0.0

    def count(self, status: ReconciliationStatus) -> int:
        return self.counts.get(status, 0)

    @property
    def total(self) -> int:
        """Items that take part in the match rate (every status but diagnostic)."""
        return sum(n for status, n in self.counts.items() if status is not ReconciliationStatus.DIAGNOSTIC)


@dataclass(frozen=True)
class ReconciliationResult:
    summary: ReconciliationSummary
    items: tuple[ReconciliationItem, ...]
    diagnostics: tuple[DiagnosticsItem, ...]

    def items_with_status(self, status: ReconciliationStatus) -> list[ReconciliationItem]:
        return [item for item in self.items if item.status is status]
