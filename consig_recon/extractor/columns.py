"""Column inference for tabular (spreadsheet) input.

Given a grid of typed cells, decide which column holds the employee key, which
holds the deducted amount and, optionally, which holds the event code.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from consig_recon.extractor.types import Confidence
from consig_recon.utils.parsing import parse_amount
from consig_recon.utils.patterns import find_employee_key, is_short_code

if TYPE_CHECKING:
    from collections.abc import Sequence

__all__ = [
    "ColumnMapping",
    "cell_amount",
    "cell_employee_key",
    "cell_text",
    "infer_columns",
]

HIGH_RATIO = 0.7
MEDIUM_RATIO = 0.4


@dataclass(frozen=True)
class ColumnMapping:
    """Inferred roles of the grid columns (zero-based indices)."""

    key_col: int
    amount_col: int
    event_col: int | None
    confidence: Confidence
    key_hits: int
    amount_hits: int
    total_rows: int


def cell_text(cell: Any) -> str | None:
    """Render a cell as trimmed text; empty cells and NaN become ``None``.

    Integral floats lose their fractional part (``2.0`` -> ``"2"``) so event
    codes read from numeric cells keep their natural form.
    """
    if cell is None:
        return None
    if isinstance(cell, float):
        if not math.isfinite(cell):
            return None
        if cell.is_integer():
            return str(int(cell))
        return str(cell)
    text = str(cell).strip()
    return text or None


def cell_amount(cell: Any) -> Decimal | None:
    """Parse a cell as an amount: finite numbers as-is, strings via pt-BR rules."""
    if isinstance(cell, str):
        return parse_amount(cell.strip())
    return parse_amount(cell)


def cell_employee_key(cell: Any) -> str | None:
    text = cell_text(cell)
    return find_employee_key(text) if text else None


def _first_max(scores: Sequence[float], candidates: Sequence[int]) -> int | None:
    best: int | None = None
    for col in candidates:
        if best is None or scores[col] > scores[best]:
            best = col
    return best


def infer_columns(grid: Sequence[Sequence[Any]]) -> ColumnMapping | None:
    """Infer the key, amount and event columns of a grid.

    Parameters
    ----------
    grid : Sequence[Sequence[Any]]
        Rows of cell values (text, numbers or ``None``). Rows may be ragged.

    Returns
    -------
    ColumnMapping | None
        ``None`` when no column holds a key or no other column holds an amount.

    Notes
    -----
    - Key column: most cells matching the employee-key pattern.
    - Amount column: among the remaining columns with at least one
      non-negative amount, the one with the highest **sum** (so a column of
      real figures beats a column of zero placeholders); ties go left.
    - Event column: remaining column with the most one-to-three digit cells.
    - Confidence compares hits against every row of the grid, header included.
    """
    if not grid:
        return None

    width = max((len(row) for row in grid), default=0)
    if width == 0:
        return None

    key_hits = [0] * width
    amount_hits = [0] * width
    amount_sums = [Decimal(0)] * width
    code_hits = [0] * width

    for row in grid:
        for col, cell in enumerate(row):
            if cell_employee_key(cell) is not None:
                key_hits[col] += 1

            amount = cell_amount(cell)
            if amount is not None and amount >= 0:
                amount_hits[col] += 1
                amount_sums[col] += amount

            text = cell_text(cell)
            if text is not None and is_short_code(text):
                code_hits[col] += 1

    key_col = _first_max(key_hits, range(width))
    if key_col is None or key_hits[key_col] == 0:
        return None

    amount_candidates = [c for c in range(width) if c != key_col and amount_hits[c] > 0]
    amount_col = _first_max(amount_sums, amount_candidates)
    if amount_col is None:
        return None

    event_candidates = [c for c in range(width) if c not in (key_col, amount_col) and code_hits[c] > 0]
    event_col = _first_max(code_hits, event_candidates)

    total = len(grid)
    key_ratio = key_hits[key_col] / total
    amount_ratio = amount_hits[amount_col] / total
    if key_ratio >= HIGH_RATIO and amount_ratio >= HIGH_RATIO:
        confidence = Confidence.HIGH
    elif key_ratio >= MEDIUM_RATIO and amount_ratio >= MEDIUM_RATIO:
        confidence = Confidence.MEDIUM
    else:
        confidence = Confidence.LOW

    return ColumnMapping(
        key_col=key_col,
        amount_col=amount_col,
        event_col=event_col,
        confidence=confidence,
        key_hits=key_hits[key_col],
        amount_hits=amount_hits[amount_col],
        total_rows=total,
    )
