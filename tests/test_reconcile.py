"""Tests for the reconciliation engine."""

from __future__ import annotations

from collections import Counter
from decimal import Decimal
from typing import TYPE_CHECKING

import pytest

from consig_recon.extractor.diagnostics import diag_error, diag_warn
from consig_recon.extractor.types import (
    DiagnosticsItem,
    ExtractionResult,
    FormatTag,
    NormalizedRow,
    Quality,
    Source,
)
from consig_recon.reconcile.engine import group_by_key, match_key, reconcile, reconcile_extractions
from consig_recon.reconcile.types import ReconciliationItem, ReconciliationStatus

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    RowFactory = Callable[..., NormalizedRow]

Status = ReconciliationStatus
TOLERANCE = Decimal("0.01")


def money(value: str | int) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.01"))


def _extraction(
    rows: list[NormalizedRow],
    period: str | None = None,
    diagnostics: Sequence[DiagnosticsItem] = (),
) -> ExtractionResult:
    return ExtractionResult(
        rows=tuple(rows),
        diagnostics=tuple(diagnostics),
        detected_format=FormatTag.PLAIN_TEXT,
        period=period,
    )


# =============================================================================
# Per-Key Matching
# =============================================================================


class TestMatchKey:
    """Tests for match_key() on a single key's multisets."""

    def test_exact_multiset(self) -> None:
        """Equal multisets match pairwise."""
        items = match_key("85-1", [money(100), money(200)], [money(100), money(200)], TOLERANCE)
        assert [i.status for i in items] == [Status.MATCHED, Status.MATCHED]
        assert sorted(i.bank_amount for i in items) == [money(100), money(200)]
        assert all(i.bank_amount == i.authority_amount for i in items)

    def test_divergence_paired_by_rank(self) -> None:
        """Residuals pair smallest with smallest, not crosswise."""
        items = match_key("85-1", [money(100), money(200)], [money(105), money(210)], TOLERANCE)
        assert [(i.status, i.bank_amount, i.authority_amount) for i in items] == [
            (Status.DIVERGENT, money(100), money(105)),
            (Status.DIVERGENT, money(200), money(210)),
        ]
        assert items[0].note == "difference: -5.00"
        assert items[1].difference == money(-10)

    def test_rank_pairing_ignores_input_order(self) -> None:
        """Residuals are sorted before pairing."""
        items = match_key("85-1", [money(200), money(100)], [money(210), money(105)], TOLERANCE)
        pairs = [(i.bank_amount, i.authority_amount) for i in items]
        assert pairs == [(money(100), money(105)), (money(200), money(210))]

    @pytest.mark.parametrize(
        ("bank", "authority", "status"),
        [
            ("100.00", "100.01", Status.MATCHED),
            ("100.01", "100.00", Status.MATCHED),
            ("100.00", "100.02", Status.DIVERGENT),
            ("100.00", "99.98", Status.DIVERGENT),
        ],
    )
    def test_tolerance_boundary(self, bank: str, authority: str, status: Status) -> None:
        """A difference equal to the tolerance still matches."""
        items = match_key("85-1", [Decimal(bank)], [Decimal(authority)], TOLERANCE)
        assert [i.status for i in items] == [status]

    def test_leftovers(self) -> None:
        """Unpaired residuals fall to the side they came from."""
        items = match_key("85-1", [money(100), money(50), money(70)], [money(100), money(40)], TOLERANCE)
        assert [(i.status, i.bank_amount) for i in items] == [
            (Status.MATCHED, money(100)),
            (Status.DIVERGENT, money(50)),
            (Status.BANK_ONLY, money(70)),
        ]

    def test_authority_only(self) -> None:
        """A key absent from the bank yields authority_only items."""
        items = match_key("85-1", [], [money(10), money(20)], TOLERANCE)
        assert [i.status for i in items] == [Status.AUTHORITY_ONLY, Status.AUTHORITY_ONLY]
        assert all(i.bank_amount is None for i in items)

    def test_match_prefers_first_authority_amount(self) -> None:
        """The first authority amount within tolerance is consumed."""
        items = match_key("85-1", [money("100.00")], [money("100.01"), money("100.00")], Decimal("0.05"))
        assert items[0].authority_amount == money("100.01")
        assert items[1].status is Status.AUTHORITY_ONLY

    def test_conservation(self) -> None:
        """Every input amount appears in exactly one item."""
        bank = [money(10), money(20), money(30), money(30), money(45)]
        authority = [money(30), money(11), money(20), money(99)]
        items = match_key("85-1", bank, authority, TOLERANCE)
        assert Counter(i.bank_amount for i in items if i.bank_amount is not None) == Counter(bank)
        authority_seen = [i.authority_amount for i in items if i.authority_amount is not None]
        assert Counter(authority_seen) == Counter(authority)


# =============================================================================
# Full Reconciliation
# =============================================================================


class TestReconcile:
    """Tests for reconcile()."""

    def test_all_matched(self, bank_row: RowFactory, authority_row: RowFactory) -> None:
        """Identical multisets give a 100% match rate."""
        result = reconcile(
            [bank_row("85-1", 100), bank_row("85-1", 200)],
            [authority_row("85-1", 100), authority_row("85-1", 200)],
        )
        assert result.summary.count(Status.MATCHED) == 2
        assert result.summary.match_rate_percent == 100.0
        assert result.summary.quality is Quality.COMPLETE

    def test_divergent_pairs(self, bank_row: RowFactory, authority_row: RowFactory) -> None:
        """Scenario with two shifted amounts pairs them by rank."""
        result = reconcile(
            [bank_row("85-1", 100), bank_row("85-1", 200)],
            [authority_row("85-1", 105), authority_row("85-1", 210)],
        )
        divergent = result.items_with_status(Status.DIVERGENT)
        pairs = [(i.bank_amount, i.authority_amount) for i in divergent]
        assert pairs == [(money(100), money(105)), (money(200), money(210))]
        assert result.summary.match_rate_percent == 0.0

    def test_items_sorted_by_key_then_status(self, bank_row: RowFactory, authority_row: RowFactory) -> None:
        """Items are ordered by numeric key prefix, then status name."""
        result = reconcile(
            [bank_row("123-1", 10), bank_row("9-1", 10), bank_row("85-1", 10), bank_row("85-1", 77)],
            [
                authority_row("85-1", 10),
                authority_row("9-1", 10),
                authority_row("85-1", 5),
                authority_row("85-1", 3),
            ],
        )
        assert [(i.employee_key, i.status) for i in result.items] == [
            ("9-1", Status.MATCHED),
            ("85-1", Status.AUTHORITY_ONLY),
            ("85-1", Status.DIVERGENT),
            ("85-1", Status.MATCHED),
            ("123-1", Status.BANK_ONLY),
        ]

    def test_counts_and_rate(self, bank_row: RowFactory, authority_row: RowFactory) -> None:
        """Counts cover every status and the rate is rounded to two places."""
        result = reconcile(
            [bank_row("1-1", 10), bank_row("2-1", 20)],
            [authority_row("1-1", 10), authority_row("3-1", 30)],
        )
        summary = result.summary
        assert summary.counts == {
            Status.MATCHED: 1,
            Status.BANK_ONLY: 1,
            Status.AUTHORITY_ONLY: 1,
            Status.DIVERGENT: 0,
            Status.DIAGNOSTIC: 0,
        }
        assert summary.total == 3
        assert summary.match_rate_percent == 33.33

    def test_summary_diagnostic(self, bank_row: RowFactory, authority_row: RowFactory) -> None:
        """RECONCILE_SUMMARY closes the diagnostics with totals."""
        result = reconcile([bank_row("1-1", 10)], [authority_row("1-1", 10), authority_row("2-1", 5)])
        last = result.diagnostics[-1]
        assert last.code == "RECONCILE_SUMMARY"
        assert last.details is not None
        assert last.details["totalKeys"] == 2
        assert last.details["totalBankRows"] == 1
        assert last.details["totalAuthorityRows"] == 2
        assert last.details["counts"]["matched"] == 1
        assert last.details["matchRatePercent"] == 50.0

    def test_duplicate_keys_reported(self, bank_row: RowFactory, authority_row: RowFactory) -> None:
        """Repeated keys are legitimate but reported."""
        result = reconcile([bank_row("85-1", 1), bank_row("85-1", 2)], [authority_row("85-1", 1)])
        duplicate = next(d for d in result.diagnostics if d.code == "DUPLICATE_MATRICULA")
        assert duplicate.details == {"bank": ["85-1"], "authority": []}

    def test_no_authority_rows_fails(self, bank_row: RowFactory) -> None:
        """Without authority rows the reconciliation fails."""
        result = reconcile([bank_row("85-1", 10)], [])
        assert result.summary.quality is Quality.FAILED
        assert result.items_with_status(Status.BANK_ONLY)[0].bank_amount == money(10)

    def test_empty_input(self) -> None:
        """Empty input never raises."""
        result = reconcile([], [])
        assert result.items == ()
        assert result.summary.match_rate_percent == 0.0
        assert result.summary.quality is Quality.FAILED

    def test_upstream_error_is_partial(self, bank_row: RowFactory, authority_row: RowFactory) -> None:
        """An upstream error caps quality at partial; warnings do not."""
        rows = ([bank_row("85-1", 10)], [authority_row("85-1", 10)])
        errored = reconcile(*rows, diagnostics=[diag_error("CSV_NO_ROWS", "no rows")])
        warned = reconcile(*rows, diagnostics=[diag_warn("CSV_COMPETENCIA_NOT_FOUND", "no period")])
        assert errored.summary.quality is Quality.PARTIAL
        assert warned.summary.quality is Quality.COMPLETE
        assert errored.diagnostics[0].code == "CSV_NO_ROWS"

    def test_most_frequent_period(self, bank_row: RowFactory, authority_row: RowFactory) -> None:
        """The summary period is the most frequent one across rows."""
        result = reconcile(
            [bank_row("1-1", 1, "02/2026"), bank_row("2-1", 1, "01/2026")],
            [authority_row("1-1", 1, "01/2026"), authority_row("2-1", 1)],
        )
        assert result.summary.period == "01/2026"

    def test_custom_tolerance(self, bank_row: RowFactory, authority_row: RowFactory) -> None:
        """A wider tolerance turns small differences into matches."""
        bank = [bank_row("85-1", "100.00")]
        result = reconcile(bank, [authority_row("85-1", "100.50")], tolerance=Decimal("1"))
        assert result.summary.count(Status.MATCHED) == 1


class TestReconcileExtractions:
    """Tests for reconcile_extractions()."""

    def test_carries_diagnostics(self, bank_row: RowFactory, authority_row: RowFactory) -> None:
        """Diagnostics of both extractions come first, bank before authority."""
        bank = _extraction([bank_row("85-1", 10)], diagnostics=[diag_warn("TEXT_COMPETENCIA_NOT_FOUND", "x")])
        authority = _extraction(
            [authority_row("85-1", 10)], diagnostics=[diag_warn("CSV_EVENT_NOT_FOUND", "y")]
        )
        result = reconcile_extractions(bank, authority)
        assert [d.code for d in result.diagnostics] == [
            "TEXT_COMPETENCIA_NOT_FOUND",
            "CSV_EVENT_NOT_FOUND",
            "RECONCILE_SUMMARY",
        ]

    def test_period_fallback(self, bank_row: RowFactory, authority_row: RowFactory) -> None:
        """Without row periods, the extraction period is used."""
        result = reconcile_extractions(
            _extraction([bank_row("85-1", 10)]),
            _extraction([authority_row("85-1", 10)], period="03/2026"),
        )
        assert result.summary.period == "03/2026"


# =============================================================================
# Helpers and Types
# =============================================================================


class TestHelpers:
    """Tests for group_by_key() and ReconciliationItem validation."""

    def test_group_by_key(self, bank_row: RowFactory) -> None:
        """Amounts are grouped per key in first-seen order."""
        groups = group_by_key([bank_row("9-1", 1), bank_row("85-1", 2), bank_row("9-1", 3)])
        assert groups == {"9-1": [money(1), money(3)], "85-1": [money(2)]}

    def test_item_requires_amounts(self) -> None:
        """Items reject amounts inconsistent with their status."""
        with pytest.raises(ValueError, match="both amounts"):
            ReconciliationItem("85-1", Status.MATCHED, bank_amount=money(1))
        with pytest.raises(ValueError, match="only the bank amount"):
            ReconciliationItem("85-1", Status.BANK_ONLY, bank_amount=money(1), authority_amount=money(1))
        with pytest.raises(ValueError, match="only the authority amount"):
            ReconciliationItem("85-1", Status.AUTHORITY_ONLY)

    def test_row_rejects_bad_input(self) -> None:
        """Rows reject malformed keys and non-decimal amounts."""
        with pytest.raises(ValueError, match="Malformed employee key"):
            NormalizedRow(Source.BANK, "85", money(1))
        with pytest.raises(ValueError, match="finite Decimal"):
            NormalizedRow(Source.BANK, "85-1", 1.0)  # type: ignore[arg-type]
