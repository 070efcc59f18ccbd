"""Ingestion router: dispatch an input artifact to its extractor.

Dispatch is a closed table keyed by :class:`FormatTag`; every tag maps to
exactly one handler, and unsupported input is answered with a failed result
rather than an exception.
"""

from __future__ import annotations

from pathlib import Path, PurePath
from typing import TYPE_CHECKING, Any

from consig_recon.config import get_text_encodings, setup_logging
from consig_recon.extractor import diagnostics as codes
from consig_recon.extractor.delimited import extract_delimited_report
from consig_recon.extractor.diagnostics import diag_error, diag_info
from consig_recon.extractor.docx_parser import extract_docx_report
from consig_recon.extractor.pdf_parser import extract_pdf_report
from consig_recon.extractor.spreadsheet import extract_spreadsheet
from consig_recon.extractor.text_report import extract_plain_text
from consig_recon.extractor.types import DiagnosticsItem, ExtractionResult, FormatTag, Source

if TYPE_CHECKING:
    from collections.abc import Callable

logger = setup_logging(__name__)

__all__ = [
    "SUPPORTED_FORMATS",
    "decode_text",
    "extract_document",
    "format_tag_for_filename",
]

SUPPORTED_FORMATS: tuple[FormatTag, ...] = tuple(t for t in FormatTag if t is not FormatTag.UNSUPPORTED)

_EXTENSION_TAGS: dict[str, FormatTag] = {
    "csv": FormatTag.DELIMITED_TEXT,
    "xlsx": FormatTag.SPREADSHEET,
    "xls": FormatTag.SPREADSHEET,
    "pdf": FormatTag.PDF_TEXT,
    "docx": FormatTag.DOCUMENT_TEXT,
    "txt": FormatTag.PLAIN_TEXT,
}


def format_tag_for_filename(filename: str | PurePath) -> FormatTag:
    """Map a file name to its format tag by extension (case-insensitive)."""
    suffix = PurePath(filename).suffix.lower().lstrip(".")
    return _EXTENSION_TAGS.get(suffix, FormatTag.UNSUPPORTED)


def decode_text(data: bytes | str) -> tuple[str, DiagnosticsItem | None]:
    """Decode report bytes with the configured encodings, in order.

    Returns
    -------
    tuple[str, DiagnosticsItem | None]
        The text, plus an ``ENCODING_FALLBACK`` diagnostic when the first
        encoding failed. The last encoding is applied with replacement
        characters if nothing decodes cleanly.
    """
    if isinstance(data, str):
        return data, None

    encodings = get_text_encodings() or ["utf-8"]
    for position, encoding in enumerate(encodings):
        try:
            text = data.decode(encoding)
        except UnicodeDecodeError:
            logger.debug("Input is not valid %s", encoding)
            continue
        if position == 0:
            return text, None
        return text, diag_info(
            codes.ENCODING_FALLBACK,
            f"Input decoded as {encoding}",
            {"encoding": encoding, "tried": encodings[:position]},
        )

    encoding = encodings[-1]
    logger.warning("No configured encoding decodes the input cleanly, using %s with replacement", encoding)
    return data.decode(encoding, errors="replace"), diag_info(
        codes.ENCODING_FALLBACK,
        f"Input decoded as {encoding} with replacement characters",
        {"encoding": encoding, "tried": list(encodings), "replaced": True},
    )


def _with_leading(result: ExtractionResult, leading: DiagnosticsItem | None) -> ExtractionResult:
    if leading is None:
        return result
    return ExtractionResult(
        rows=result.rows,
        diagnostics=(leading, *result.diagnostics),
        detected_format=result.detected_format,
        period=result.period,
    )


def _as_bytes(data: bytes | str) -> bytes:
    return data.encode("utf-8") if isinstance(data, str) else bytes(data)


def _delimited(data: Any, source: Source) -> ExtractionResult:
    text, note = decode_text(data)
    return _with_leading(extract_delimited_report(text, source), note)


def _plain_text(data: Any, source: Source) -> ExtractionResult:
    text, note = decode_text(data)
    return _with_leading(extract_plain_text(text, source), note)


def _spreadsheet(data: Any, source: Source) -> ExtractionResult:
    if isinstance(data, (bytes, bytearray)):
        return extract_spreadsheet(bytes(data), source)
    return extract_spreadsheet(data, source)


def _pdf(data: Any, source: Source) -> ExtractionResult:
    if isinstance(data, str):
        return extract_pdf_report([data], source)
    return extract_pdf_report(data, source)


def _docx(data: Any, source: Source) -> ExtractionResult:
    return extract_docx_report(_as_bytes(data), source)


def _unsupported(declared: str) -> ExtractionResult:
    supported = [t.value for t in SUPPORTED_FORMATS]
    logger.warning("Unsupported input format %r", declared)
    return ExtractionResult(
        rows=(),
        diagnostics=(
            diag_error(
                codes.UNSUPPORTED_FORMAT,
                f"Unsupported input format: {declared}",
                {"format": declared, "supportedFormats": supported},
            ),
        ),
        detected_format=FormatTag.UNSUPPORTED,
    )


_HANDLERS: dict[FormatTag, Callable[[Any, Source], ExtractionResult]] = {
    FormatTag.DELIMITED_TEXT: _delimited,
    FormatTag.SPREADSHEET: _spreadsheet,
    FormatTag.PDF_TEXT: _pdf,
    FormatTag.DOCUMENT_TEXT: _docx,
    FormatTag.PLAIN_TEXT: _plain_text,
}


def _resolve_tag(tag: FormatTag | str | None, path: Path | None) -> tuple[FormatTag, str]:
    if tag is None:
        if path is None:
            return FormatTag.UNSUPPORTED, "(none)"
        resolved = format_tag_for_filename(path)
        return resolved, path.suffix.lower() or "(no extension)"
    if isinstance(tag, FormatTag):
        return tag, tag.value
    try:
        return FormatTag(tag), tag
    except ValueError:
        return FormatTag.UNSUPPORTED, tag


def extract_document(
    artifact: bytes | str | Path | Any,
    tag: FormatTag | str | None = None,
    source: Source = Source.AUTHORITY,
) -> ExtractionResult:
    """Extract normalized rows from one input artifact.

    Parameters
    ----------
    artifact : bytes | str | Path | Any
        File content (bytes), decoded text (str), a path to read, or a
        pre-parsed workbook mapping for spreadsheet input.
    tag : FormatTag | str | None, optional
        Declared format. When omitted and ``artifact`` is a path, the format
        is inferred from the file extension.
    source : Source, optional
        Side the rows belong to.

    Returns
    -------
    ExtractionResult
        Always a well-formed result; unsupported formats yield zero rows and a
        single ``UNSUPPORTED_FORMAT`` error.

    Raises
    ------
    FileNotFoundError
        If ``artifact`` is a path that does not exist.
    """
    path = artifact if isinstance(artifact, Path) else None
    resolved, declared = _resolve_tag(tag, path)

    handler = _HANDLERS.get(resolved)
    if handler is None:
        return _unsupported(declared)

    if path is not None:
        if not path.exists():
            msg = f"Input file not found: {path}"
            raise FileNotFoundError(msg)
        artifact = path.read_bytes()

    logger.debug("Routing %s input from %s", resolved.value, source.value)
    return handler(artifact, source)
