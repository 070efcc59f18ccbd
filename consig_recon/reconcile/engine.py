"""Bank x authority reconciliation engine.

Both row sets are grouped by employee key into multisets of amounts (a key may
legitimately repeat when an employee has several deductions in one period).
For each key:

1. **Tolerance matching**: bank amounts are visited from the last to the
   first; each one consumes the first pending authority amount within the
   tolerance (difference rounded to cents, boundary inclusive) -> ``matched``.
2. **Rank pairing**: residuals on both sides are sorted ascending and paired
   by position -> ``divergent`` with the signed difference. This is a
   closest-by-rank heuristic, not a minimum-cost assignment; it is kept
   because it is stable and easy to explain.
3. **Leftovers**: unpaired residuals -> ``bank_only`` / ``authority_only``.

The engine is a pure function and never raises for empty or degenerate input.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import replace
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from consig_recon.config import get_reconciliation_tolerance, setup_logging
from consig_recon.extractor import diagnostics as codes
from consig_recon.extractor.diagnostics import diag_info
from consig_recon.extractor.types import DiagnosticsItem, Quality
from consig_recon.reconcile.types import (
    ReconciliationItem,
    ReconciliationResult,
    ReconciliationStatus,
    ReconciliationSummary,
)
from consig_recon.utils.parsing import CENT
from consig_recon.utils.patterns import key_sort_value

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from consig_recon.extractor.types import ExtractionResult, NormalizedRow

logger = setup_logging(__name__)

__all__ = [
    "group_by_key",
    "match_key",
    "reconcile",
    "reconcile_extractions",
]

Status = ReconciliationStatus


def group_by_key(rows: Iterable[NormalizedRow]) -> dict[str, list[Decimal]]:
    """Group row amounts by employee key, preserving first-seen key order."""
    groups: dict[str, list[Decimal]] = {}
    for row in rows:
        groups.setdefault(row.employee_key, []).append(row.amount)
    return groups


def _within_tolerance(a: Decimal, b: Decimal, tolerance: Decimal) -> bool:
    return abs(a - b).quantize(CENT, rounding=ROUND_HALF_UP) <= tolerance


def match_key(
    employee_key: str,
    bank_amounts: Sequence[Decimal],
    authority_amounts: Sequence[Decimal],
    tolerance: Decimal,
) -> list[ReconciliationItem]:
    """Classify every amount of one key.

    Parameters
    ----------
    employee_key : str
        Key being reconciled.
    bank_amounts, authority_amounts : Sequence[Decimal]
        Amounts of the key on each side, in input order.
    tolerance : Decimal
        Largest difference still considered a match.

    Returns
    -------
    list[ReconciliationItem]
        Items in emission order: matched, then divergent, then leftovers.
    """
    items: list[ReconciliationItem] = []
    bank_pending = list(bank_amounts)
    authority_pending = list(authority_amounts)

    for i in range(len(bank_pending) - 1, -1, -1):
        bank_amount = bank_pending[i]
        match_index = next(
            (j for j, amount in enumerate(authority_pending) if _within_tolerance(amount, bank_amount, tolerance)),
            None,
        )
        if match_index is None:
            continue
        items.append(
            ReconciliationItem(
                employee_key,
                Status.MATCHED,
                bank_amount=bank_amount,
                authority_amount=authority_pending[match_index],
            )
        )
        del bank_pending[i]
        del authority_pending[match_index]

    bank_pending.sort()
    authority_pending.sort()
    pairs = min(len(bank_pending), len(authority_pending))
    for bank_amount, authority_amount in zip(bank_pending[:pairs], authority_pending[:pairs], strict=True):
        diff = bank_amount - authority_amount
        items.append(
            ReconciliationItem(
                employee_key,
                Status.DIVERGENT,
                bank_amount=bank_amount,
                authority_amount=authority_amount,
                note=f"difference: {diff:+.2f}",
            )
        )

    items.extend(ReconciliationItem(employee_key, Status.BANK_ONLY, bank_amount=a) for a in bank_pending[pairs:])
    items.extend(
        ReconciliationItem(employee_key, Status.AUTHORITY_ONLY, authority_amount=a)
        for a in authority_pending[pairs:]
    )
    return items


def _most_frequent_period(rows: Iterable[NormalizedRow]) -> str | None:
    periods = Counter(row.metadata.period for row in rows if row.metadata.period)
    if not periods:
        return None
    return periods.most_common(1)[0][0]


def _duplicate_keys(groups: dict[str, list[Decimal]]) -> list[str]:
    return [key for key, amounts in groups.items() if len(amounts) > 1]


def reconcile(
    bank_rows: Sequence[NormalizedRow],
    authority_rows: Sequence[NormalizedRow],
    diagnostics: Iterable[DiagnosticsItem] = (),
    tolerance: Decimal | None = None,
) -> ReconciliationResult:
    """Reconcile bank rows against authority rows.

    Parameters
    ----------
    bank_rows : Sequence[NormalizedRow]
        Rows extracted from the bank report.
    authority_rows : Sequence[NormalizedRow]
        Rows extracted from the authority report.
    diagnostics : Iterable[DiagnosticsItem], optional
        Upstream diagnostics to carry into the result; they take part in the
        quality derivation.
    tolerance : Decimal | None, optional
        Match tolerance; defaults to the configured value.

    Returns
    -------
    ReconciliationResult
        Items ordered by the numeric prefix of the key, then status; summary
        with counts and match rate; diagnostics ending with
        ``RECONCILE_SUMMARY``.
    """
    if tolerance is None:
        tolerance = get_reconciliation_tolerance()

    all_diagnostics: list[DiagnosticsItem] = list(diagnostics)
    bank_groups = group_by_key(bank_rows)
    authority_groups = group_by_key(authority_rows)
    keys = list(dict.fromkeys([*bank_groups, *authority_groups]))

    items: list[ReconciliationItem] = []
    for key in keys:
        items.extend(match_key(key, bank_groups.get(key, []), authority_groups.get(key, []), tolerance))
    items.sort(key=lambda item: (key_sort_value(item.employee_key), item.status.value))

    counts = dict.fromkeys(Status, 0)
    for item in items:
        counts[item.status] += 1
    total = sum(n for status, n in counts.items() if status is not Status.DIAGNOSTIC)
    match_rate = round(counts[Status.MATCHED] / total * 100, 2) if total else 0.0

    duplicates = {"bank": _duplicate_keys(bank_groups), "authority": _duplicate_keys(authority_groups)}
    if duplicates["bank"] or duplicates["authority"]:
        all_diagnostics.append(
            diag_info(
                codes.DUPLICATE_MATRICULA,
                f"Repeated keys: {len(duplicates['bank'])} on bank side, "
                f"{len(duplicates['authority'])} on authority side",
                duplicates,
            )
        )

    if not authority_rows:
        quality = Quality.FAILED
    elif any(d.is_error for d in all_diagnostics):
        quality = Quality.PARTIAL
    else:
        quality = Quality.COMPLETE

    summary = ReconciliationSummary(
        period=_most_frequent_period([*bank_rows, *authority_rows]),
        quality=quality,
        counts=counts,
        match_rate_percent=match_rate,
    )

    all_diagnostics.append(
        diag_info(
            codes.RECONCILE_SUMMARY,
            f"{counts[Status.MATCHED]} matched, {counts[Status.DIVERGENT]} divergent, "
            f"{counts[Status.BANK_ONLY]} bank only, {counts[Status.AUTHORITY_ONLY]} authority only",
            {
                "totalKeys": len(keys),
                "totalBankRows": len(bank_rows),
                "totalAuthorityRows": len(authority_rows),
                "totalItems": total,
                "counts": {status.value: n for status, n in counts.items()},
                "matchRatePercent": match_rate,
            },
        )
    )

    logger.info(
        "Reconciled %d bank / %d authority rows: %.2f%% matched, quality %s",
        len(bank_rows),
        len(authority_rows),
        match_rate,
        quality.value,
    )
    return ReconciliationResult(summary=summary, items=tuple(items), diagnostics=tuple(all_diagnostics))


def reconcile_extractions(
    bank: ExtractionResult,
    authority: ExtractionResult,
    tolerance: Decimal | None = None,
) -> ReconciliationResult:
    """Reconcile two extraction results, carrying their diagnostics.

    The period falls back to the bank extraction's period, then the
    authority's, when no row carries one.
    """
    result = reconcile(
        bank.rows,
        authority.rows,
        diagnostics=(*bank.diagnostics, *authority.diagnostics),
        tolerance=tolerance,
    )
    if result.summary.period is None and (bank.period or authority.period):
        summary = replace(result.summary, period=bank.period or authority.period)
        result = replace(result, summary=summary)
    return result
