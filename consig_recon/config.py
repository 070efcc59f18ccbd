"""Configuration management for consig-recon.

This module centralizes file-system paths, environment variables, logging
setup, and the typed accessors over ``config/config.json``.

Configuration file
------------------
``config.json`` holds the deterministic thresholds used by the pipeline:

* ``reconciliation.tolerance``: amount tolerance for a match (currency units)
* ``delimited.sample_lines``: lines sampled by delimiter detection
* ``spreadsheet.period_scan_rows``: rows scanned for the reporting period
* ``pdf``: page-sampling classifier settings (scan / text thresholds)
* ``text``: raw reference truncation and decoding order
* ``event_channels``: display names per deduction event code

Environment variables
---------------------
``CONSIG_CONFIG_DIR`` and ``LOGS_DIR`` override the default directories. The
logs directory is created eagerly on import so handlers can rely on it.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, cast

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent
CONFIG_DIR = Path(os.getenv("CONSIG_CONFIG_DIR", PROJECT_ROOT / "config"))
LOGS_DIR = Path(os.getenv("LOGS_DIR", PROJECT_ROOT / "logs"))

LOGS_DIR.mkdir(parents=True, exist_ok=True)

DEFAULT_PDF_SETTINGS: dict[str, int] = {
    "sample_pages": 3,
    "scan_max_chars": 50,
    "text_min_chars": 200,
}


def get_config() -> dict[str, Any]:
    """Load the project configuration.

    Returns
    -------
    dict[str, Any]
        Parsed contents of ``config/config.json``.

    Raises
    ------
    FileNotFoundError
        If ``config/config.json`` is missing.
    json.JSONDecodeError
        If the file exists but is not valid JSON.
    """
    config_path = CONFIG_DIR / "config.json"
    if not config_path.exists():
        msg = f"Configuration file not found: {config_path}"
        raise FileNotFoundError(msg)

    with Path(config_path).open(encoding="utf-8") as f:
        return json.load(f)  # type: ignore[no-any-return]


def setup_logging(name: str = "consig_recon") -> logging.Logger:
    """Configure a console+file logger if not already present.

    Parameters
    ----------
    name : str, optional
        Logger namespace; reused to avoid duplicate handlers.

    Returns
    -------
    logging.Logger
        Logger with INFO-level console handler and DEBUG-level file handler
        under ``LOGS_DIR``.
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        logger.setLevel(logging.DEBUG)

        # Console handler
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.INFO)
        console_format = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
        console_handler.setFormatter(console_format)
        logger.addHandler(console_handler)

        # File handler
        log_filename = f"{datetime.now(UTC).strftime('%Y-%m-%d')}_run.log"
        file_handler = logging.FileHandler(LOGS_DIR / log_filename)
        file_handler.setLevel(logging.DEBUG)
        file_format = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        file_handler.setFormatter(file_format)
        logger.addHandler(file_handler)

    return logger


# =============================================================================
# Section Accessors
# =============================================================================


def _get_section(name: str) -> dict[str, Any]:
    """Return one top-level section of the config, empty when absent."""
    return cast("dict[str, Any]", get_config().get(name, {}))


def get_reconciliation_tolerance() -> Decimal:
    """Return the amount tolerance under which two values count as matched.

    Returns
    -------
    Decimal
        Tolerance in currency units (default ``0.01``).

    Raises
    ------
    ValueError
        If the configured tolerance is not a non-negative decimal.
    """
    raw = _get_section("reconciliation").get("tolerance", "0.01")
    try:
        tolerance = Decimal(str(raw))
    except InvalidOperation as err:
        msg = f"Invalid reconciliation tolerance: {raw!r}"
        raise ValueError(msg) from err
    if not tolerance.is_finite() or tolerance < 0:
        msg = f"Invalid reconciliation tolerance: {raw!r}"
        raise ValueError(msg)
    return tolerance


def get_delimiter_sample_size() -> int:
    """Return how many non-empty lines delimiter detection samples."""
    return int(_get_section("delimited").get("sample_lines", 30))


def get_period_scan_rows() -> int:
    """Return how many leading spreadsheet rows are scanned for the period."""
    return int(_get_section("spreadsheet").get("period_scan_rows", 30))


def get_pdf_classifier_settings() -> dict[str, int]:
    """Return the PDF page-sampling classifier settings.

    Returns
    -------
    dict[str, int]
        ``sample_pages`` (pages inspected), ``scan_max_chars`` (below this
        average a document is a scan) and ``text_min_chars`` (at or above this
        average a document is text; in between it is mixed).
    """
    settings = dict(DEFAULT_PDF_SETTINGS)
    settings.update({k: int(v) for k, v in _get_section("pdf").items() if k in DEFAULT_PDF_SETTINGS})
    return settings


def get_raw_reference_limit() -> int:
    """Return the maximum length kept for a row's raw reference."""
    return int(_get_section("text").get("raw_reference_max_chars", 300))


def get_text_encodings() -> list[str]:
    """Return the decoding order tried for byte input."""
    return cast("list[str]", _get_section("text").get("encodings", ["utf-8-sig", "cp1252"]))


def get_event_channels() -> dict[str, str]:
    """Return display names for deduction event codes."""
    return cast("dict[str, str]", get_config().get("event_channels", {}))


def get_channel_name(event_code: str | None) -> str | None:
    """Look up the display name of a deduction channel.

    Parameters
    ----------
    event_code : str | None
        Event code as found in the report; zero-padded to three digits before
        the lookup.

    Returns
    -------
    str | None
        Channel name, or ``None`` when the code is missing or unknown.
    """
    if not event_code:
        return None
    return get_event_channels().get(event_code.zfill(3))
