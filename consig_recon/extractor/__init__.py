"""Extraction pipeline: one extractor per input shape behind a single router.

Modules
-------
types
    NormalizedRow, DiagnosticsItem, ExtractionResult and the enumerations.
diagnostics
    Stable diagnostic codes and constructors.
csv_tools
    Delimiter detection and quote-aware line splitting.
scan
    Line-stream fold shared by the delimited and free-text extractors.
columns
    Column inference for spreadsheet grids.
delimited, text_report, spreadsheet, pdf_parser, docx_parser
    Format-specific extractors.
router
    Dispatch by format tag.
"""

from consig_recon.extractor.router import SUPPORTED_FORMATS, extract_document, format_tag_for_filename
from consig_recon.extractor.types import (
    Confidence,
    DiagnosticsItem,
    ExtractionResult,
    FormatTag,
    NormalizedRow,
    Quality,
    RowMetadata,
    Severity,
    Source,
)

__all__ = [
    "SUPPORTED_FORMATS",
    "Confidence",
    "DiagnosticsItem",
    "ExtractionResult",
    "FormatTag",
    "NormalizedRow",
    "Quality",
    "RowMetadata",
    "Severity",
    "Source",
    "extract_document",
    "format_tag_for_filename",
]
