"""DOCX text extractor.

A ``.docx`` file is a ZIP archive whose body lives in ``word/document.xml``
(WordprocessingML). Reports exported as a Word table are read row by row, one
line per table row with cells joined by `` | ``; documents without a usable
table fall back to their paragraphs, one line each. The resulting text goes
through the free-text engine.
"""

from __future__ import annotations

import io
import zipfile

from lxml import etree

from consig_recon.config import setup_logging
from consig_recon.extractor import diagnostics as codes
from consig_recon.extractor.diagnostics import diag_error, diag_info, diag_warn
from consig_recon.extractor.text_report import parse_text_report
from consig_recon.extractor.types import DiagnosticsItem, ExtractionResult, FormatTag, Source

logger = setup_logging(__name__)

__all__ = [
    "extract_docx_report",
    "paragraph_text",
    "read_document_xml",
    "table_text",
]

DOCUMENT_PART = "word/document.xml"
W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
NAMESPACES = {"w": W_NS}
CELL_SEPARATOR = " | "


def read_document_xml(data: bytes) -> bytes | None:
    """Return the main document part of a DOCX archive, or ``None`` if absent.

    Raises
    ------
    zipfile.BadZipFile
        If ``data`` is not a ZIP archive.
    """
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        if DOCUMENT_PART not in zf.namelist():
            return None
        return zf.read(DOCUMENT_PART)


def _parse(xml: bytes) -> etree._Element:
    parser = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)
    return etree.fromstring(xml, parser)


def _runs_text(element: etree._Element) -> str:
    return "".join(t.text or "" for t in element.iter(f"{{{W_NS}}}t")).strip()


def table_text(root: etree._Element) -> str:
    """Render every table row as a line of `` | ``-joined cell texts.

    Rows whose cells are all empty are skipped.
    """
    lines: list[str] = []
    for row in root.iter(f"{{{W_NS}}}tr"):
        cells = [_runs_text(cell) for cell in row.iterfind("w:tc", NAMESPACES)]
        if any(cells):
            lines.append(CELL_SEPARATOR.join(cells))
    return "\n".join(lines)


def paragraph_text(root: etree._Element) -> str:
    """Render every non-empty paragraph as one line."""
    paragraphs = (_runs_text(p) for p in root.iterfind(".//w:p", NAMESPACES))
    return "\n".join(p for p in paragraphs if p)


def _failed(diagnostics: list[DiagnosticsItem]) -> ExtractionResult:
    return ExtractionResult(rows=(), diagnostics=tuple(diagnostics), detected_format=FormatTag.DOCUMENT_TEXT)


def extract_docx_report(data: bytes, source: Source = Source.AUTHORITY) -> ExtractionResult:
    """Extract rows from a DOCX report.

    Parameters
    ----------
    data : bytes
        DOCX file content.
    source : Source, optional
        Side the rows belong to.

    Returns
    -------
    ExtractionResult
        ``DOCX_*`` diagnostics followed by those of the free-text engine.
        Corrupt archives or XML are reported as ``DOCX_READ_ERROR``.
    """
    diagnostics: list[DiagnosticsItem] = []

    try:
        xml = read_document_xml(data)
        root = _parse(xml) if xml is not None else None
    except Exception as e:
        logger.error("Failed to read DOCX: %s", e)
        diagnostics.append(diag_error(codes.DOCX_READ_ERROR, "Could not read DOCX", {"error": str(e)}))
        return _failed(diagnostics)

    if root is None:
        diagnostics.append(diag_error(codes.DOCX_EMPTY, "DOCX has no document body"))
        return _failed(diagnostics)

    has_table = root.find(".//w:tbl", NAMESPACES) is not None
    if has_table:
        diagnostics.append(diag_info(codes.DOCX_TABLE_DETECTED, "Table found in document"))
        text = table_text(root)
        if not text:
            logger.warning("DOCX tables are empty, falling back to paragraph text")
            diagnostics.append(
                diag_warn(codes.DOCX_TABLE_EXTRACT_FALLBACK_TEXT, "Tables had no text, using paragraphs")
            )
            text = paragraph_text(root)
    else:
        diagnostics.append(diag_warn(codes.DOCX_NO_TABLE, "Document has no table, using paragraphs"))
        text = paragraph_text(root)

    if not text.strip():
        diagnostics.append(diag_error(codes.DOCX_EMPTY, "No text extracted from DOCX"))
        return _failed(diagnostics)

    diagnostics.append(
        diag_info(
            codes.DOCX_TEXT_EXTRACTED,
            f"Extracted {len(text)} characters",
            {"hasTable": has_table, "textLength": len(text)},
        )
    )

    report = parse_text_report(text, source)
    result = ExtractionResult(
        rows=report.rows,
        diagnostics=(*diagnostics, *report.diagnostics),
        detected_format=FormatTag.DOCUMENT_TEXT,
        period=report.period,
    )
    logger.info("DOCX report: table=%s, %d rows, quality %s", has_table, len(report.rows), result.quality.value)
    return result
