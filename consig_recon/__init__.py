"""consig-recon: payroll-deduction report extraction and reconciliation.

The package reads the two monthly reports describing the same set of
payroll-deducted loan installments (one from the bank, one from the municipal
payroll authority), normalizes each into employee-keyed rows, and reconciles
them into a classified, explainable diff.

Architecture
------------
* ``utils``: locale-aware amount parsing and the shared regex matchers
  (employee key, event code, reporting period, tax id).
* ``extractor``: one extractor per input shape (delimited text, spreadsheet,
  PDF text via pdfplumber, DOCX via lxml, plain text) behind a single router.
  Every extractor returns an ``ExtractionResult`` carrying diagnostics and a
  derived quality tag instead of raising.
* ``reconcile``: multiset matching with tolerance, rank-based divergence
  pairing, summary statistics and plain-text report formatting.

Configuration
-------------
Thresholds live in ``config/config.json``. ``CONSIG_CONFIG_DIR`` and
``LOGS_DIR`` override the default directories.

Examples
--------
Reconcile a bank TXT against an authority PDF:

    >>> python -m consig_recon.main banco.txt prefeitura.pdf
"""

from consig_recon.extractor.router import extract_document
from consig_recon.reconcile.engine import reconcile, reconcile_extractions

__version__ = "0.1.0"
__all__ = ["__version__", "extract_document", "reconcile", "reconcile_extractions"]


def get_version() -> str:
    """Return the current package version string."""
    return __version__


__all__.append("get_version")
