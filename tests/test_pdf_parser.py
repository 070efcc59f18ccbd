"""Tests for the PDF extractor and its scan classifier.

pdfplumber is patched where a page object is needed; page-text sequences
exercise the classifier and the text engine directly.
"""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from consig_recon.extractor.pdf_parser import (
    PdfKind,
    classify_pages,
    count_visible_chars,
    extract_pdf_report,
)
from consig_recon.extractor.types import FormatTag, Quality, Severity, Source

SETTINGS = {"sample_pages": 3, "scan_max_chars": 50, "text_min_chars": 200}

TEXT_PAGE = "\n".join(
    ["PREFEITURA MUNICIPAL - Competência 01/2026", "Evento: 002 - CONSIGNADO BB"]
    + [f"{i}-1  SERVIDOR NUMERO {i}  1{i:02d},00" for i in range(1, 11)]
)

SPARSE_PAGE = "\n".join(
    ["RELATORIO DE CONSIGNADOS PREFEITURA MUNICIPAL", "01/2026", "Evento: 2", "85-1 JOAO 400,49", "99-2 MARIA 250,00"]
)


def _mock_pdf(page_texts: list[str | None]) -> MagicMock:
    """Build a pdfplumber-like document whose pages return the given texts."""
    pages = []
    for text in page_texts:
        page = MagicMock()
        page.extract_text.return_value = text
        pages.append(page)
    pdf = MagicMock()
    pdf.pages = pages
    pdf.__enter__.return_value = pdf
    return pdf


# =============================================================================
# Classifier
# =============================================================================


class TestClassifyPages:
    """Tests for count_visible_chars() and classify_pages()."""

    def test_count_visible_chars(self) -> None:
        """Whitespace is not counted."""
        assert count_visible_chars(" a b\n\tc ") == 3
        assert count_visible_chars("") == 0

    @pytest.mark.parametrize(
        ("sample", "kind"),
        [
            (["", "x" * 10], PdfKind.SCAN),
            (["x" * 49], PdfKind.SCAN),
            (["x" * 50], PdfKind.MIXED),
            (["x" * 199], PdfKind.MIXED),
            (["x" * 200], PdfKind.TEXT),
            (["x" * 100, "x" * 300], PdfKind.TEXT),
        ],
    )
    def test_thresholds(self, sample: list[str], kind: PdfKind) -> None:
        """Average visible characters per page decide the kind."""
        assert classify_pages(sample, SETTINGS).kind is kind

    def test_reports_average(self) -> None:
        """The average and the sample size are returned."""
        classification = classify_pages(["x" * 10, "x" * 30], SETTINGS)
        assert classification.average_chars == pytest.approx(20.0)
        assert classification.sampled_pages == 2


# =============================================================================
# Page-Text Input
# =============================================================================


class TestExtractPdfFromPageTexts:
    """Tests for extract_pdf_report() with already-extracted page texts."""

    def test_text_document(self) -> None:
        """A text PDF is parsed into rows with complete quality."""
        result = extract_pdf_report([TEXT_PAGE])
        assert result.detected_format is FormatTag.PDF_TEXT
        assert result.row_count == 10
        assert result.rows[0].amount == Decimal("101.00")
        assert result.rows[0].metadata.event_code == "002"
        assert result.period == "01/2026"
        assert result.codes()[0] == "PDF_TEXT_EXTRACTED"
        assert result.quality is Quality.COMPLETE

    def test_scan_document(self) -> None:
        """An image-only PDF fails without downstream parsing."""
        with patch("consig_recon.extractor.pdf_parser.parse_text_report") as mock_parse:
            result = extract_pdf_report(["", " ", "12"])

        mock_parse.assert_not_called()
        assert result.row_count == 0
        assert result.quality is Quality.FAILED
        assert result.codes() == ["PDF_SCAN_DETECTED"]
        scan = result.diagnostics[0]
        assert scan.severity is Severity.ERROR
        assert scan.details == {"averageChars": 0.7, "sampledPages": 3, "pageCount": 3}

    def test_sparse_document_is_partial(self) -> None:
        """A mixed PDF keeps its rows but is capped at partial."""
        result = extract_pdf_report([SPARSE_PAGE], source=Source.BANK)
        assert result.row_count == 2
        assert result.codes()[:2] == ["PDF_TEXT_SPARSE", "PDF_TEXT_EXTRACTED"]
        assert result.quality is Quality.PARTIAL
        assert result.rows[0].source is Source.BANK

    def test_pages_are_joined(self) -> None:
        """Rows on later pages keep the event of earlier pages."""
        result = extract_pdf_report([TEXT_PAGE, "11-1  SERVIDOR NUMERO 11  111,00"])
        assert result.row_count == 11
        assert result.rows[-1].metadata.event_code == "002"

    def test_no_pages(self) -> None:
        """A document without pages fails with PDF_EMPTY."""
        result = extract_pdf_report([])
        assert result.codes() == ["PDF_EMPTY"]
        assert result.quality is Quality.FAILED

    def test_text_without_rows(self) -> None:
        """Readable text without data rows ends with TEXT_ZERO_ROWS."""
        result = extract_pdf_report(["Relatório sem dados de servidores " * 10])
        assert result.quality is Quality.FAILED
        assert "TEXT_ZERO_ROWS" in result.codes()


# =============================================================================
# PDF Bytes Input
# =============================================================================


class TestExtractPdfFromBytes:
    """Tests for the pdfplumber-backed path."""

    @patch("consig_recon.extractor.pdf_parser.pdfplumber.open")
    def test_reads_pages(self, mock_open: MagicMock) -> None:
        """Page text comes from pdfplumber; empty pages count as blank."""
        mock_open.return_value = _mock_pdf([TEXT_PAGE, None])

        result = extract_pdf_report(b"%PDF-1.4 fake")

        assert result.row_count == 10
        details = result.diagnostics[0].details
        assert details is not None
        assert details["pageCount"] == 2

    @patch("consig_recon.extractor.pdf_parser.pdfplumber.open")
    def test_scan_samples_first_pages_only(self, mock_open: MagicMock) -> None:
        """A scan is decided from the sample; later pages are never read."""
        pdf = _mock_pdf(["", "", "", TEXT_PAGE])
        mock_open.return_value = pdf

        result = extract_pdf_report(b"%PDF-1.4 fake")

        assert result.codes() == ["PDF_SCAN_DETECTED"]
        pdf.pages[3].extract_text.assert_not_called()

    @patch("consig_recon.extractor.pdf_parser.pdfplumber.open")
    def test_read_error(self, mock_open: MagicMock) -> None:
        """pdfplumber failures become PDF_READ_ERROR."""
        mock_open.side_effect = ValueError("broken xref")

        result = extract_pdf_report(b"garbage")

        assert result.codes() == ["PDF_READ_ERROR"]
        assert result.diagnostics[0].details == {"error": "broken xref"}
        assert result.quality is Quality.FAILED
