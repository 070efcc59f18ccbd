"""Line-stream scanning shared by the delimited and free-text extractors.

The scan is an explicit fold: :func:`scan_line` takes the current
:class:`ScanContext` (first period seen, current event code) and one line, and
returns the next context plus a :class:`LineOutcome`. :func:`scan_lines` drives
the fold over a document and tallies the outcomes.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING

from consig_recon.extractor.csv_tools import split_line
from consig_recon.extractor.types import Confidence, NormalizedRow, RowMetadata, Source
from consig_recon.utils.parsing import choose_amount, find_amount_candidates
from consig_recon.utils.patterns import find_employee_key, find_event_code, find_period, find_tax_id

if TYPE_CHECKING:
    from collections.abc import Iterable
    from decimal import Decimal

logger = logging.getLogger(__name__)

__all__ = [
    "LineKind",
    "LineOutcome",
    "ScanContext",
    "ScanSummary",
    "build_row",
    "scan_line",
    "scan_lines",
]

DEFAULT_RAW_LIMIT = 300

_NAME_FIELD = re.compile(r"[^\W\d_]+(?:[ .'-]+[^\W\d_]+)*")


class LineKind(str, Enum):
    BLANK = "blank"
    EVENT = "event"
    NO_KEY = "no_key"
    NO_VALUE = "no_value"
    ROW = "row"


@dataclass(frozen=True)
class ScanContext:
    """State carried from one line to the next."""

    period: str | None = None
    event_code: str | None = None
    events_seen: tuple[str, ...] = ()

    def observe_period(self, line: str) -> ScanContext:
        """Record the first period of the document; later ones are ignored."""
        if self.period is not None:
            return self
        period = find_period(line)
        return replace(self, period=period) if period else self

    def switch_event(self, event_code: str) -> ScanContext:
        seen = self.events_seen if event_code in self.events_seen else (*self.events_seen, event_code)
        return replace(self, event_code=event_code, events_seen=seen)


@dataclass(frozen=True)
class LineOutcome:
    kind: LineKind
    employee_key: str | None = None
    row: NormalizedRow | None = None


@dataclass(frozen=True)
class ScanSummary:
    """Rows and counters produced by scanning a whole document."""

    rows: tuple[NormalizedRow, ...]
    context: ScanContext
    total_lines: int
    data_lines: int
    discarded_no_value: int

    @property
    def period(self) -> str | None:
        return self.context.period

    @property
    def events_seen(self) -> tuple[str, ...]:
        return self.context.events_seen


def build_row(
    source: Source,
    employee_key: str,
    amount: Decimal,
    *,
    raw: str,
    period: str | None = None,
    event_code: str | None = None,
    confidence: Confidence = Confidence.HIGH,
    employee_name: str | None = None,
    tax_id: str | None = None,
    raw_limit: int = DEFAULT_RAW_LIMIT,
) -> NormalizedRow:
    """Assemble a row, truncating its raw reference to ``raw_limit`` characters."""
    metadata = RowMetadata(
        period=period,
        event_code=event_code,
        confidence=confidence,
        employee_name=employee_name,
        tax_id=tax_id,
    )
    return NormalizedRow(
        source=source,
        employee_key=employee_key,
        amount=amount,
        metadata=metadata,
        raw_reference=raw[:raw_limit],
    )


def _employee_name(line: str, delimiter: str | None) -> str | None:
    """First purely alphabetic field of a delimited line."""
    if not delimiter:
        return None
    for field in split_line(line, delimiter):
        if _NAME_FIELD.fullmatch(field) and not field.lower().startswith("evento"):
            return field
    return None


def scan_line(
    context: ScanContext,
    line: str,
    *,
    source: Source,
    delimiter: str | None = None,
    raw_limit: int = DEFAULT_RAW_LIMIT,
) -> tuple[ScanContext, LineOutcome]:
    """Fold one line into the scan.

    Parameters
    ----------
    context : ScanContext
        State after the previous line.
    line : str
        Raw physical line.
    source : Source
        Side the rows belong to.
    delimiter : str | None, optional
        Detected field separator, when the document is delimited.
    raw_limit : int, optional
        Maximum kept length of the raw reference.

    Returns
    -------
    tuple[ScanContext, LineOutcome]
        The next context and what this line turned out to be. Event marker
        lines switch the current event and never produce rows.
    """
    text = line.strip()
    if not text:
        return context, LineOutcome(LineKind.BLANK)

    context = context.observe_period(text)

    event_code = find_event_code(text)
    if event_code is not None:
        return context.switch_event(event_code), LineOutcome(LineKind.EVENT)

    employee_key = find_employee_key(text)
    if employee_key is None:
        return context, LineOutcome(LineKind.NO_KEY)

    candidates = find_amount_candidates(text)
    amount = choose_amount([c.value for c in candidates])
    if amount is None:
        logger.debug("No amount for key %s: %r", employee_key, text[:80])
        return context, LineOutcome(LineKind.NO_VALUE, employee_key=employee_key)

    row = build_row(
        source,
        employee_key,
        amount,
        raw=text,
        period=context.period,
        event_code=context.event_code,
        confidence=Confidence.HIGH if len(candidates) == 1 else Confidence.MEDIUM,
        employee_name=_employee_name(text, delimiter),
        tax_id=find_tax_id(text),
        raw_limit=raw_limit,
    )
    return context, LineOutcome(LineKind.ROW, employee_key=employee_key, row=row)


def scan_lines(
    lines: Iterable[str],
    *,
    source: Source,
    delimiter: str | None = None,
    raw_limit: int = DEFAULT_RAW_LIMIT,
) -> ScanSummary:
    """Run :func:`scan_line` over a document and tally the outcomes."""
    context = ScanContext()
    rows: list[NormalizedRow] = []
    total = data_lines = no_value = 0

    for line in lines:
        total += 1
        context, outcome = scan_line(context, line, source=source, delimiter=delimiter, raw_limit=raw_limit)
        if outcome.kind is LineKind.ROW and outcome.row is not None:
            data_lines += 1
            rows.append(outcome.row)
        elif outcome.kind is LineKind.NO_VALUE:
            data_lines += 1
            no_value += 1

    return ScanSummary(
        rows=tuple(rows),
        context=context,
        total_lines=total,
        data_lines=data_lines,
        discarded_no_value=no_value,
    )
