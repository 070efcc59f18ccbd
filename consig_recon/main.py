#!/usr/bin/env python3
"""Reconcile a bank report against a payroll authority report.

This module orchestrates one batch reconciliation:
1. Extract the bank report (format from ``--bank-format`` or the extension)
2. Extract the authority report (likewise)
3. Reconcile both row sets
4. Print the formatted report

Usage (from project root):
    python -m consig_recon.main banco.txt prefeitura.pdf
    python -m consig_recon.main banco.csv prefeitura.xlsx --quiet
    python -m consig_recon.main banco.dat prefeitura.dat --bank-format plain-text --authority-format delimited-text

CLI Flags:
    --bank-format       Format tag of the bank file (default: from extension)
    --authority-format  Format tag of the authority file (default: from extension)
    --quiet             Suppress report output

Exit status is ``0`` unless the reconciliation quality is ``failed`` or an
input file is missing.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from consig_recon.config import setup_logging
from consig_recon.extractor.router import extract_document
from consig_recon.extractor.types import FormatTag, Quality, Source
from consig_recon.reconcile.engine import reconcile_extractions
from consig_recon.reconcile.format import (
    format_extraction_summary,
    format_reconciliation_report,
    log_reconciliation,
)

logger = setup_logging(__name__)

FORMAT_CHOICES = [t.value for t in FormatTag if t is not FormatTag.UNSUPPORTED]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Reconcile a bank payroll-deduction report against the payroll authority's report.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m consig_recon.main banco.txt prefeitura.pdf
  python -m consig_recon.main banco.txt prefeitura.csv --quiet
  python -m consig_recon.main banco.dat prefeitura.xlsx --bank-format plain-text
        """,
    )
    parser.add_argument("bank", type=Path, help="Bank report file")
    parser.add_argument("authority", type=Path, help="Payroll authority report file")
    parser.add_argument("--bank-format", choices=FORMAT_CHOICES, help="Bank file format (default: by extension)")
    parser.add_argument(
        "--authority-format",
        choices=FORMAT_CHOICES,
        help="Authority file format (default: by extension)",
    )
    parser.add_argument("--quiet", action="store_true", help="Don't print report")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse CLI flags, extract both reports and reconcile them.

    Parameters
    ----------
    argv : list[str] | None, optional
        Arguments to parse; defaults to ``sys.argv[1:]``.

    Returns
    -------
    int
        ``0`` on a complete or partial reconciliation; ``1`` when it failed or
        an input file is missing.
    """
    args = build_parser().parse_args(argv)

    try:
        bank = extract_document(args.bank, args.bank_format, Source.BANK)
        authority = extract_document(args.authority, args.authority_format, Source.AUTHORITY)
    except FileNotFoundError as e:
        logger.error("%s", e)
        return 1

    result = reconcile_extractions(bank, authority)
    log_reconciliation(result)

    if not args.quiet:
        print(format_extraction_summary("Bank", bank))
        print(format_extraction_summary("Authority", authority))
        print(format_reconciliation_report(result))

    return 1 if result.summary.quality is Quality.FAILED else 0


if __name__ == "__main__":
    sys.exit(main())
