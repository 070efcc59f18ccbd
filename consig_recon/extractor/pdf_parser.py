"""PDF text extractor using pdfplumber, with a page-sampling scan classifier.

Before any parsing, the first pages are sampled and their average count of
non-whitespace characters decides how the document is treated:

- ``scan``: below ``scan_max_chars``; no text layer worth reading, extraction
  stops with ``PDF_SCAN_DETECTED`` (no OCR is attempted)
- ``mixed``: below ``text_min_chars``; extraction proceeds with a
  ``PDF_TEXT_SPARSE`` warning, capping quality at partial
- ``text``: full extraction
"""

from __future__ import annotations

import io
import re
from enum import Enum
from typing import TYPE_CHECKING, Any, NamedTuple

import pdfplumber

from consig_recon.config import get_pdf_classifier_settings, setup_logging
from consig_recon.extractor import diagnostics as codes
from consig_recon.extractor.diagnostics import diag_error, diag_info, diag_warn
from consig_recon.extractor.text_report import parse_text_report
from consig_recon.extractor.types import DiagnosticsItem, ExtractionResult, FormatTag, Source

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

logger = setup_logging(__name__)

__all__ = [
    "PageClassification",
    "PdfKind",
    "classify_pages",
    "count_visible_chars",
    "extract_pdf_report",
]

_WHITESPACE = re.compile(r"\s")


class PdfKind(str, Enum):
    TEXT = "text"
    MIXED = "mixed"
    SCAN = "scan"


class PageClassification(NamedTuple):
    kind: PdfKind
    average_chars: float
    sampled_pages: int


def count_visible_chars(text: str) -> int:
    """Count non-whitespace characters of a page."""
    return len(_WHITESPACE.sub("", text or ""))


def classify_pages(sample: Sequence[str], settings: dict[str, int] | None = None) -> PageClassification:
    """Classify a document from the text of its first pages.

    Parameters
    ----------
    sample : Sequence[str]
        Extracted text of the sampled pages (at least one).
    settings : dict[str, int] | None, optional
        Classifier thresholds; defaults to the configured ones.

    Returns
    -------
    PageClassification
        Kind, average visible characters per page, and pages sampled.
    """
    settings = settings or get_pdf_classifier_settings()
    total = sum(count_visible_chars(text) for text in sample)
    average = total / len(sample) if sample else 0.0

    if average < settings["scan_max_chars"]:
        kind = PdfKind.SCAN
    elif average < settings["text_min_chars"]:
        kind = PdfKind.MIXED
    else:
        kind = PdfKind.TEXT
    return PageClassification(kind, average, len(sample))


def _classify_and_read(
    pages: Sequence[Any],
    text_of: Callable[[Any], str],
) -> tuple[PageClassification | None, list[str]]:
    """Sample the first pages, then read the rest unless the document is a scan."""
    if not pages:
        return None, []

    settings = get_pdf_classifier_settings()
    sample = [text_of(page) for page in pages[: settings["sample_pages"]]]
    classification = classify_pages(sample, settings)
    if classification.kind is PdfKind.SCAN:
        return classification, sample

    rest = [text_of(page) for page in pages[len(sample) :]]
    return classification, sample + rest


def _page_text(page: Any) -> str:
    return page.extract_text() or ""


def _failed(diagnostics: list[DiagnosticsItem]) -> ExtractionResult:
    return ExtractionResult(rows=(), diagnostics=tuple(diagnostics), detected_format=FormatTag.PDF_TEXT)


def extract_pdf_report(document: bytes | Sequence[str], source: Source = Source.AUTHORITY) -> ExtractionResult:
    """Extract rows from a PDF report.

    Parameters
    ----------
    document : bytes | Sequence[str]
        PDF content, or the already-extracted text of each page.
    source : Source, optional
        Side the rows belong to.

    Returns
    -------
    ExtractionResult
        ``PDF_*`` diagnostics followed by those of the free-text engine.
        Errors raised by pdfplumber are reported as ``PDF_READ_ERROR``.
    """
    diagnostics: list[DiagnosticsItem] = []

    try:
        if isinstance(document, (bytes, bytearray)):
            with pdfplumber.open(io.BytesIO(bytes(document))) as pdf:
                page_count = len(pdf.pages)
                classification, texts = _classify_and_read(pdf.pages, _page_text)
        else:
            page_count = len(document)
            classification, texts = _classify_and_read(list(document), str)
    except Exception as e:
        logger.error("Failed to read PDF: %s", e)
        diagnostics.append(diag_error(codes.PDF_READ_ERROR, "Could not read PDF", {"error": str(e)}))
        return _failed(diagnostics)

    if classification is None:
        diagnostics.append(diag_error(codes.PDF_EMPTY, "PDF has no pages"))
        return _failed(diagnostics)

    page_details = {
        "averageChars": round(classification.average_chars, 1),
        "sampledPages": classification.sampled_pages,
        "pageCount": page_count,
    }

    if classification.kind is PdfKind.SCAN:
        logger.warning("PDF looks like an image-only scan (%.1f chars/page)", classification.average_chars)
        diagnostics.append(
            diag_error(codes.PDF_SCAN_DETECTED, "PDF looks like a scanned image; OCR is not supported", page_details)
        )
        return _failed(diagnostics)

    if classification.kind is PdfKind.MIXED:
        diagnostics.append(diag_warn(codes.PDF_TEXT_SPARSE, "PDF has little extractable text", page_details))

    full_text = "\n".join(texts)
    diagnostics.append(
        diag_info(
            codes.PDF_TEXT_EXTRACTED,
            f"Extracted text from {page_count} pages",
            {**page_details, "classification": classification.kind.value, "textLength": len(full_text)},
        )
    )

    report = parse_text_report(full_text, source)
    result = ExtractionResult(
        rows=report.rows,
        diagnostics=(*diagnostics, *report.diagnostics),
        detected_format=FormatTag.PDF_TEXT,
        period=report.period,
    )
    logger.info(
        "PDF report: %d pages (%s), %d rows, quality %s",
        page_count,
        classification.kind.value,
        len(report.rows),
        result.quality.value,
    )
    return result
