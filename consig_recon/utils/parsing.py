"""Shared parsing utilities for pt-BR monetary amounts.

This module is the single place where report tokens become amounts; every
extractor goes through :func:`parse_amount` and :func:`find_amount_candidates`.
"""

from __future__ import annotations

import logging
import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import NamedTuple

logger = logging.getLogger(__name__)

__all__ = [
    "AmountCandidate",
    "choose_amount",
    "find_amount_candidates",
    "format_amount",
    "parse_amount",
    "to_money",
]

CENT = Decimal("0.01")

_QUOTES = "\"'"
_CURRENCY_PREFIX = re.compile(r"^R\$\s*", re.IGNORECASE)
_GROUPED_AMOUNT = re.compile(r"\d{1,3}(?:\.\d{3})*,\d{2}")
_UNGROUPED_AMOUNT = re.compile(r"\d+,\d{2}")

# Candidate strategies, in priority order for a shared start position
_QUOTED_TOKEN = re.compile(r"\"([\d.,]+)\"")
_CURRENCY_TOKEN = re.compile(r"R\$\s*([\d.,]+)", re.IGNORECASE)
_BARE_TOKEN = re.compile(r"(?<![\d.])(\d{1,3}(?:\.\d{3})*,\d{2})(?!\d)")


class AmountCandidate(NamedTuple):
    """A numeric token found on a line."""

    position: int
    raw: str
    value: Decimal


def to_money(value: int | float | Decimal | str) -> Decimal:
    """Quantize a number to cents.

    Parameters
    ----------
    value
        Finite number, or its string representation.

    Returns
    -------
    Decimal
        Value rounded half-up to two decimal places.

    Raises
    ------
    ValueError
        If the value is not a finite number.
    """
    try:
        amount = Decimal(str(value))
    except InvalidOperation as err:
        msg = f"Not a number: {value!r}"
        raise ValueError(msg) from err
    if not amount.is_finite():
        msg = f"Not a finite amount: {value!r}"
        raise ValueError(msg)
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def parse_amount(token: object) -> Decimal | None:
    """Parse a token using pt-BR conventions.

    pt-BR amounts use a period as thousands separator and a comma as decimal
    separator:

    - ``"400,49"`` -> 400.49
    - ``"1.234,56"`` -> 1234.56
    - ``"R$ 138.282,94"`` -> 138282.94
    - ``"\"0,00\""`` -> 0.00

    Parameters
    ----------
    token
        Raw string token, or an already-numeric cell value.

    Returns
    -------
    Decimal | None
        Amount in cents precision, or ``None`` when the token is not a number.
        Empty input is "not a number", never zero.
    """
    if token is None or isinstance(token, bool):
        return None

    if isinstance(token, (int, float, Decimal)):
        if isinstance(token, float) and not math.isfinite(token):
            return None
        if isinstance(token, Decimal) and not token.is_finite():
            return None
        return to_money(token)

    if not isinstance(token, str):
        return None

    cleaned = token.strip().strip(_QUOTES).strip()
    cleaned = _CURRENCY_PREFIX.sub("", cleaned).strip(_QUOTES).strip()
    if not cleaned:
        return None

    if not (_GROUPED_AMOUNT.fullmatch(cleaned) or _UNGROUPED_AMOUNT.fullmatch(cleaned)):
        return None

    return to_money(cleaned.replace(".", "").replace(",", "."))


def format_amount(amount: Decimal) -> str:
    """Format an amount as a pt-BR token (``Decimal("1234.5")`` -> ``"1.234,50"``)."""
    quantized = to_money(amount)
    sign = "-" if quantized < 0 else ""
    text = f"{abs(quantized):,.2f}"
    return sign + text.replace(",", "_").replace(".", ",").replace("_", ".")


def find_amount_candidates(line: str) -> list[AmountCandidate]:
    """Collect every monetary token on a line.

    Three overlapping strategies are applied: quoted tokens, tokens after an
    ``R$`` marker, and bare grouped tokens. A token occurrence found by more
    than one strategy is kept once.

    Parameters
    ----------
    line
        One physical line of a report.

    Returns
    -------
    list[AmountCandidate]
        Parsed candidates ordered by position on the line.
    """
    by_position: dict[int, AmountCandidate] = {}

    for pattern in (_QUOTED_TOKEN, _CURRENCY_TOKEN, _BARE_TOKEN):
        for match in pattern.finditer(line):
            position = match.start(1)
            if position in by_position:
                continue
            raw = match.group(1)
            value = parse_amount(raw)
            if value is None:
                logger.debug("Skipping non-amount token %r", raw)
                continue
            by_position[position] = AmountCandidate(position, raw, value)

    return [by_position[pos] for pos in sorted(by_position)]


def choose_amount(values: list[Decimal]) -> Decimal | None:
    """Pick the amount of a line among its candidates.

    The last non-zero value wins; when every candidate is zero the amount is
    zero, which is a valid amount distinct from "no value".
    """
    if not values:
        return None

    non_zero = [v for v in values if v != 0]
    if not non_zero:
        return Decimal("0.00")
    return non_zero[-1]
