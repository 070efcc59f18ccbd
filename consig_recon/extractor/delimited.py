"""Delimited-text report extractor.

Handles the authority's "workers by event" export: a header carrying the
reporting period, ``Evento: NNN`` section markers, and data lines that start
with an employee key followed by pt-BR amounts, separated by ``,`` ``;`` tab or
``|``.
"""

from __future__ import annotations

from consig_recon.config import get_delimiter_sample_size, get_raw_reference_limit, setup_logging
from consig_recon.extractor import diagnostics as codes
from consig_recon.extractor.csv_tools import detect_delimiter, split_lines
from consig_recon.extractor.diagnostics import diag_error, diag_info, diag_warn
from consig_recon.extractor.scan import scan_lines
from consig_recon.extractor.types import DiagnosticsItem, ExtractionResult, FormatTag, Source

logger = setup_logging(__name__)

__all__ = ["extract_delimited_report"]


def _delimiter_label(delimiter: str) -> str:
    return "TAB" if delimiter == "\t" else delimiter


def extract_delimited_report(text: str, source: Source = Source.AUTHORITY) -> ExtractionResult:
    """Extract rows from a delimited-text report.

    Parameters
    ----------
    text : str
        Decoded document content.
    source : Source, optional
        Side the rows belong to.

    Returns
    -------
    ExtractionResult
        Rows plus ``CSV_*`` diagnostics. Never raises for malformed content:
        an unreadable document yields zero rows and ``CSV_NO_ROWS``.
    """
    lines = split_lines(text)
    guess = detect_delimiter(lines, get_delimiter_sample_size())
    diagnostics: list[DiagnosticsItem] = [
        diag_info(
            codes.CSV_DELIMITER_DETECTED,
            f"Detected delimiter {_delimiter_label(guess.delimiter)!r} ({guess.confidence.value} confidence)",
            {
                "delimiter": guess.delimiter,
                "avgCount": round(guess.average, 2),
                "confidence": guess.confidence.value,
                "counts": dict(guess.counts),
            },
        )
    ]

    summary = scan_lines(
        lines,
        source=source,
        delimiter=guess.delimiter,
        raw_limit=get_raw_reference_limit(),
    )
    extracted = len(summary.rows)

    diagnostics.append(
        (diag_info if extracted else diag_error)(
            codes.CSV_PARSE_SUMMARY,
            f"Extracted {extracted} rows from {summary.data_lines} data lines",
            {
                "totalLines": summary.total_lines,
                "dataLinesDetected": summary.data_lines,
                "extractedRows": extracted,
                "discardedNoValue": summary.discarded_no_value,
                "period": summary.period,
                "events": list(summary.events_seen),
                "delimiter": guess.delimiter,
            },
        )
    )

    if not extracted:
        diagnostics.append(
            diag_error(
                codes.CSV_NO_ROWS,
                "No data rows extracted from delimited report",
                {
                    "totalLines": summary.total_lines,
                    "dataLinesDetected": summary.data_lines,
                    "discardedNoValue": summary.discarded_no_value,
                },
            )
        )
    else:
        if summary.period is None:
            diagnostics.append(diag_warn(codes.CSV_COMPETENCIA_NOT_FOUND, "Reporting period not found"))
        if not summary.events_seen:
            diagnostics.append(diag_warn(codes.CSV_EVENT_NOT_FOUND, "No event marker found"))

    result = ExtractionResult(
        rows=summary.rows,
        diagnostics=tuple(diagnostics),
        detected_format=FormatTag.DELIMITED_TEXT,
        period=summary.period,
    )
    logger.info(
        "Delimited report: %d rows, delimiter %s, quality %s",
        extracted,
        _delimiter_label(guess.delimiter),
        result.quality.value,
    )
    return result
