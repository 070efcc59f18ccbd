"""Pytest configuration for consig_recon tests.

This module provides:
- Row factories for reconciliation tests
- Builders for real XLSX workbooks (openpyxl) and DOCX archives (zipfile)
- Sample report texts shared across extractor tests
"""

from __future__ import annotations

import io
import zipfile
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from xml.sax.saxutils import escape

import pytest
from openpyxl import Workbook

from consig_recon.extractor.types import Confidence, NormalizedRow, RowMetadata, Source

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"

CONTENT_TYPES = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
    '<Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>'
    '<Default Extension="xml" ContentType="application/xml"/>'
    '<Override PartName="/word/document.xml" '
    'ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml"/>'
    "</Types>"
)


# =============================================================================
# Row Factories
# =============================================================================


def make_row(
    key: str,
    amount: str | int,
    source: Source = Source.BANK,
    period: str | None = None,
) -> NormalizedRow:
    """Build a row with a cent-quantized amount."""
    return NormalizedRow(
        source=source,
        employee_key=key,
        amount=Decimal(str(amount)).quantize(Decimal("0.01")),
        metadata=RowMetadata(period=period, confidence=Confidence.HIGH),
        raw_reference=f"{key} {amount}",
    )


@pytest.fixture
def bank_row() -> Callable[..., NormalizedRow]:
    def _make(key: str, amount: str | int, period: str | None = None) -> NormalizedRow:
        return make_row(key, amount, Source.BANK, period)

    return _make


@pytest.fixture
def authority_row() -> Callable[..., NormalizedRow]:
    def _make(key: str, amount: str | int, period: str | None = None) -> NormalizedRow:
        return make_row(key, amount, Source.AUTHORITY, period)

    return _make


# =============================================================================
# Workbook and Document Builders
# =============================================================================


def build_xlsx(sheets: dict[str, Sequence[Sequence[Any]]]) -> bytes:
    """Write the given sheets (name -> rows) to XLSX bytes with openpyxl."""
    wb = Workbook()
    wb.remove(wb.active)
    for name, rows in sheets.items():
        ws = wb.create_sheet(title=name)
        for row in rows:
            ws.append(list(row))
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def _paragraph(text: str) -> str:
    return f'<w:p><w:r><w:t xml:space="preserve">{escape(text)}</w:t></w:r></w:p>'


def _table(rows: Sequence[Sequence[str]]) -> str:
    body = "".join(
        "<w:tr>" + "".join(f"<w:tc>{_paragraph(cell)}</w:tc>" for cell in row) + "</w:tr>" for row in rows
    )
    return f"<w:tbl>{body}</w:tbl>"


def build_docx(
    paragraphs: Sequence[str] = (),
    table: Sequence[Sequence[str]] | None = None,
    include_body: bool = True,
) -> bytes:
    """Assemble a minimal DOCX archive with optional paragraphs and one table."""
    content = "".join(_paragraph(p) for p in paragraphs)
    if table is not None:
        content += _table(table)
    document = (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        f'<w:document xmlns:w="{W_NS}"><w:body>{content}</w:body></w:document>'
    )
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        zf.writestr("[Content_Types].xml", CONTENT_TYPES)
        if include_body:
            zf.writestr("word/document.xml", document)
    return buffer.getvalue()


@pytest.fixture
def xlsx_builder() -> Callable[[dict[str, Sequence[Sequence[Any]]]], bytes]:
    return build_xlsx


@pytest.fixture
def docx_builder() -> Callable[..., bytes]:
    return build_docx


# =============================================================================
# Sample Reports
# =============================================================================


@pytest.fixture
def authority_csv_text() -> str:
    """Delimited 'workers by event' export with two event sections."""
    return "\n".join(
        [
            "PREFEITURA MUNICIPAL",
            "Mês/Ano: 01/2026",
            "Evento: 002 - CONSIGNADO BB",
            'Matricula,Nome,CPF,Valor',
            '85-1,JOAO DA SILVA,111.222.333-44,"400,49"',
            '99-2,MARIA SOUZA,222.333.444-55,"250,00"',
            "Evento: 104 - CONSIGNADO CAIXA",
            '123-1,PEDRO LIMA,333.444.555-66,"1.234,56"',
            '150-1,ANA SEM VALOR,444.555.666-77,',
        ]
    )


@pytest.fixture
def column_separated_text() -> str:
    """PDF text layer where keys and values were emitted on separate lines."""
    return "\n".join(
        [
            "RELACAO DE TRABALHADORES 01/2026",
            "Evento: 2",
            "9-1 1/0",
            "10-1 1/0",
            "11-2 1/0",
            "JOAO 111.222.333-44 400,49",
            "MARIA 222.333.444-55 250,00",
        ]
    )
