"""Stateless matchers for employee keys, event codes, periods and tax ids.

Every matcher takes one line (or one cell rendered as text) and returns the
normalized token or ``None``. Threading "current" state across a line stream
is the job of :mod:`consig_recon.extractor.scan`.
"""

from __future__ import annotations

import re

__all__ = [
    "EMPLOYEE_KEY_PATTERN",
    "find_employee_key",
    "find_event_code",
    "find_leading_key",
    "find_period",
    "find_tax_id",
    "is_short_code",
    "key_sort_value",
]

EMPLOYEE_KEY_PATTERN = re.compile(r"\d{1,6}-\d{1,3}")

_KEY_EXACT = re.compile(r"^\s*(\d{1,6}-\d{1,3})\s*$")
_KEY_LEADING = re.compile(r"^\s*(\d{1,6}-\d{1,3})(?![\d-])")
_KEY_START = re.compile(r"^\s*(\d{1,6}-\d{1,3})\s*[,;\t|]")
_KEY_ANYWHERE = re.compile(r"(?<![\d.])(\d{1,6}-\d{1,3})(?!\d)")
_EVENT = re.compile(r"evento:\s*(\d{1,4})", re.IGNORECASE)
_PERIOD_SLASH = re.compile(r"\b(\d{2})/(\d{4})\b")
_PERIOD_COMPACT = re.compile(r"\b(0[1-9]|1[0-2])(\d{4})\b")
_TAX_ID = re.compile(r"\b\d{3}\.\d{3}\.\d{3}-\d{2}\b")
_SHORT_CODE = re.compile(r"^\d{1,3}$")
_KEY_PREFIX = re.compile(r"^(\d+)")


def find_employee_key(line: str) -> str | None:
    """Find the employee key on a line.

    A key at the start of the line, immediately followed by a field separator,
    is preferred. Otherwise the first key-shaped token anywhere on the line is
    used, ignoring fragments glued to a preceding digit or period (the tail of
    a tax id such as ``111.222.333-44`` is not a key).

    Parameters
    ----------
    line : str
        One physical line or cell text.

    Returns
    -------
    str | None
        Key such as ``"85-1"``, or ``None``.
    """
    if not line:
        return None

    match = _KEY_START.match(line) or _KEY_EXACT.match(line)
    if match:
        return match.group(1)

    match = _KEY_ANYWHERE.search(line)
    return match.group(1) if match else None


def find_leading_key(line: str) -> str | None:
    """Return the key that opens a line (``"  9-1 1/0"`` -> ``"9-1"``), if any."""
    match = _KEY_LEADING.match(line or "")
    return match.group(1) if match else None


def find_event_code(line: str) -> str | None:
    """Extract an ``Evento: N`` marker as a three-digit code (``"Evento: 2"`` -> ``"002"``)."""
    match = _EVENT.search(line or "")
    if not match:
        return None
    return str(int(match.group(1))).zfill(3)


def find_period(line: str) -> str | None:
    """Extract a reporting period as ``MM/YYYY``.

    The slash form (``03/2024``) is tried before the compact form
    (``032024``); the compact form only accepts months 01 to 12.
    """
    if not line:
        return None

    match = _PERIOD_SLASH.search(line)
    if match:
        return f"{match.group(1)}/{match.group(2)}"

    match = _PERIOD_COMPACT.search(line)
    if match:
        return f"{match.group(1)}/{match.group(2)}"
    return None


def find_tax_id(line: str) -> str | None:
    """Return the first CPF-shaped token on a line."""
    match = _TAX_ID.search(line or "")
    return match.group(0) if match else None


def is_short_code(text: str) -> bool:
    """Check whether a cell looks like an event code (one to three digits)."""
    return _SHORT_CODE.match(text.strip()) is not None


def key_sort_value(employee_key: str) -> int:
    """Numeric prefix of a key, used to order reconciliation output."""
    match = _KEY_PREFIX.match(employee_key)
    return int(match.group(1)) if match else 0
