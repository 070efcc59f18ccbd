"""Spreadsheet (XLSX / legacy XLS) extractor.

Workbooks are loaded with pandas (``openpyxl`` engine for XLSX, ``xlrd`` for
the legacy binary format) into plain grids of cell values. The extractor then
picks the fullest worksheet, scans its leading rows for the reporting period,
infers the key / amount / event columns and walks the rows.
"""

from __future__ import annotations

import io
from typing import TYPE_CHECKING, Any

import pandas as pd

from consig_recon.config import get_period_scan_rows, get_raw_reference_limit, setup_logging
from consig_recon.extractor import diagnostics as codes
from consig_recon.extractor.columns import cell_amount, cell_employee_key, cell_text, infer_columns
from consig_recon.extractor.diagnostics import diag_error, diag_info, diag_warn
from consig_recon.extractor.scan import build_row
from consig_recon.extractor.types import (
    Confidence,
    DiagnosticsItem,
    ExtractionResult,
    FormatTag,
    NormalizedRow,
    Source,
)
from consig_recon.utils.patterns import find_event_code, find_period, find_tax_id, is_short_code

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from consig_recon.extractor.columns import ColumnMapping

logger = setup_logging(__name__)

__all__ = [
    "Grid",
    "count_non_empty",
    "extract_spreadsheet",
    "find_period_in_cells",
    "load_workbook_sheets",
    "select_best_sheet",
]

Grid = list[list[Any]]

# Compound File Binary header of legacy .xls workbooks
_OLE_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


# =============================================================================
# Workbook Loading
# =============================================================================


def _excel_engine(data: bytes) -> str:
    return "xlrd" if data[:8] == _OLE_MAGIC else "openpyxl"


def _frame_to_grid(frame: pd.DataFrame) -> Grid:
    return [
        [None if pd.isna(value) else value for value in row]
        for row in frame.itertuples(index=False, name=None)
    ]


def load_workbook_sheets(data: bytes) -> dict[str, Grid]:
    """Read every worksheet of a workbook into raw grids.

    Parameters
    ----------
    data : bytes
        XLSX or XLS file content.

    Returns
    -------
    dict[str, Grid]
        Sheet name -> rows of cell values, in workbook order. Empty cells are
        ``None``; no header row is assumed.
    """
    engine = _excel_engine(data)
    logger.debug("Reading workbook with engine=%s", engine)
    frames = pd.read_excel(io.BytesIO(data), sheet_name=None, header=None, dtype=object, engine=engine)
    return {str(name): _frame_to_grid(frame) for name, frame in frames.items()}


# =============================================================================
# Sheet Helpers
# =============================================================================


def count_non_empty(grid: Sequence[Sequence[Any]]) -> int:
    return sum(1 for row in grid for cell in row if cell_text(cell) is not None)


def select_best_sheet(sheets: Mapping[str, Sequence[Sequence[Any]]]) -> str | None:
    """Return the sheet with the most non-empty cells (first one on ties)."""
    best: str | None = None
    best_score = -1
    for name, grid in sheets.items():
        score = count_non_empty(grid)
        if score > best_score:
            best, best_score = name, score
    return best


def find_period_in_cells(grid: Sequence[Sequence[Any]], max_rows: int = 30) -> str | None:
    """Scan the first ``max_rows`` rows cell by cell for a reporting period."""
    for row in grid[:max_rows]:
        for cell in row:
            text = cell_text(cell)
            if text is None:
                continue
            period = find_period(text)
            if period:
                return period
    return None


def _row_event_marker(row: Sequence[Any]) -> str | None:
    for cell in row:
        text = cell_text(cell)
        if text is not None:
            event_code = find_event_code(text)
            if event_code is not None:
                return event_code
    return None


def _cell(row: Sequence[Any], col: int | None) -> Any:
    if col is None or col >= len(row):
        return None
    return row[col]


# =============================================================================
# Extraction
# =============================================================================


def _failed(diagnostics: list[DiagnosticsItem], period: str | None = None) -> ExtractionResult:
    return ExtractionResult(
        rows=(),
        diagnostics=tuple(diagnostics),
        detected_format=FormatTag.SPREADSHEET,
        period=period,
    )


def _walk_rows(
    grid: Sequence[Sequence[Any]],
    mapping: ColumnMapping,
    *,
    source: Source,
    period: str | None,
) -> tuple[list[NormalizedRow], int, int | None, bool]:
    """Apply the inferred columns to every row.

    Returns the rows, the number of keyed rows without an amount, the index of
    the first keyed row, and whether any event code was seen.
    """
    raw_limit = get_raw_reference_limit()
    rows: list[NormalizedRow] = []
    discarded = 0
    first_data_row: int | None = None
    current_event: str | None = None
    event_seen = False

    for index, row in enumerate(grid):
        marker = _row_event_marker(row)
        if marker is not None:
            current_event = marker
            event_seen = True
            continue

        employee_key = cell_employee_key(_cell(row, mapping.key_col))
        if employee_key is None:
            continue
        if first_data_row is None:
            first_data_row = index

        amount = cell_amount(_cell(row, mapping.amount_col))
        if amount is None:
            discarded += 1
            continue

        event_text = cell_text(_cell(row, mapping.event_col))
        if event_text is not None and is_short_code(event_text):
            event_code = event_text.zfill(3)
            event_seen = True
        else:
            event_code = current_event

        raw = " | ".join(text for text in (cell_text(c) for c in row) if text is not None)
        rows.append(
            build_row(
                source,
                employee_key,
                amount,
                raw=raw,
                period=period,
                event_code=event_code,
                confidence=mapping.confidence,
                tax_id=find_tax_id(raw),
                raw_limit=raw_limit,
            )
        )

    return rows, discarded, first_data_row, event_seen


def extract_spreadsheet(
    workbook: bytes | Mapping[str, Sequence[Sequence[Any]]],
    source: Source = Source.AUTHORITY,
) -> ExtractionResult:
    """Extract rows from a workbook.

    Parameters
    ----------
    workbook : bytes | Mapping[str, Sequence[Sequence[Any]]]
        Raw XLSX/XLS content, or an already-parsed mapping of sheet name to
        grid.
    source : Source, optional
        Side the rows belong to.

    Returns
    -------
    ExtractionResult
        Rows plus ``XLSX_*`` / ``COLUMNS_*`` diagnostics. Read failures are
        reported as ``XLSX_READ_ERROR``, never raised.
    """
    diagnostics: list[DiagnosticsItem] = []

    if isinstance(workbook, (bytes, bytearray)):
        try:
            sheets: Mapping[str, Sequence[Sequence[Any]]] = load_workbook_sheets(bytes(workbook))
        except Exception as e:
            logger.error("Failed to read workbook: %s", e)
            diagnostics.append(
                diag_error(codes.XLSX_READ_ERROR, "Could not read workbook", {"error": str(e)})
            )
            return _failed(diagnostics)
    else:
        sheets = workbook

    best = select_best_sheet(sheets)
    if best is None or count_non_empty(sheets[best]) == 0:
        diagnostics.append(diag_error(codes.XLSX_EMPTY, "Workbook has no non-empty sheet"))
        return _failed(diagnostics)

    first = next(iter(sheets))
    if best != first:
        diagnostics.append(
            diag_info(
                codes.XLSX_SHEET_FALLBACK,
                f"Using sheet {best!r} instead of {first!r}",
                {"selectedSheet": best, "firstSheet": first, "sheets": list(sheets)},
            )
        )

    grid = sheets[best]
    period = find_period_in_cells(grid, get_period_scan_rows())

    mapping = infer_columns(grid)
    if mapping is None:
        diagnostics.append(
            diag_error(
                codes.COLUMNS_NOT_DETECTED,
                "Could not identify key and amount columns",
                {"sheet": best, "rows": len(grid)},
            )
        )
        return _failed(diagnostics, period)

    column_details = {
        "keyColumn": mapping.key_col,
        "amountColumn": mapping.amount_col,
        "eventColumn": mapping.event_col,
        "confidence": mapping.confidence.value,
    }
    if mapping.confidence is Confidence.LOW:
        logger.warning("Low-confidence column inference on sheet %s", best)
        diagnostics.append(
            diag_warn(codes.COLUMNS_LOW_CONFIDENCE, "Column inference has low confidence", column_details)
        )

    rows, discarded, first_data_row, event_seen = _walk_rows(grid, mapping, source=source, period=period)

    if first_data_row:
        diagnostics.append(
            diag_info(
                codes.XLSX_HEADER_ROW_SKIPPED,
                f"Skipped {first_data_row} rows before the first data row",
                {"skippedRows": first_data_row},
            )
        )

    if not rows:
        diagnostics.append(
            diag_error(
                codes.XLSX_ZERO_ROWS,
                "No row with both an employee key and an amount",
                {"sheet": best, "discardedNoValue": discarded},
            )
        )
    else:
        if period is None:
            diagnostics.append(diag_warn(codes.XLSX_COMPETENCIA_NOT_FOUND, "Reporting period not found"))
        if not event_seen:
            diagnostics.append(diag_warn(codes.XLSX_EVENT_NOT_FOUND, "No event code found"))
        diagnostics.append(
            diag_info(
                codes.XLSX_EXTRACTION_COMPLETE,
                f"Extracted {len(rows)} rows from sheet {best!r}",
                {
                    "sheet": best,
                    "extractedRows": len(rows),
                    "discardedNoValue": discarded,
                    "period": period,
                    **column_details,
                },
            )
        )

    result = ExtractionResult(
        rows=tuple(rows),
        diagnostics=tuple(diagnostics),
        detected_format=FormatTag.SPREADSHEET,
        period=period,
    )
    logger.info("Spreadsheet %s: %d rows, quality %s", best, len(rows), result.quality.value)
    return result
