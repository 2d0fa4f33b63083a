"""Export service: rebuild a product workbook in the layout it was imported with."""

import io
import logging
from datetime import datetime
from pathlib import Path
from typing import Sequence

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from catalogbox.config import settings
from catalogbox.schemas.catalog import CatalogRecord, HeaderColumn
from catalogbox.services.file_storage import CatalogFileStorage
from catalogbox.store.base import AttributeMap, CatalogStore

logger = logging.getLogger(__name__)

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

COLUMN_WIDTH = 20
# Records per attribute lookup
ATTRIBUTE_CHUNK_SIZE = 500


def generate_export_filename(when: datetime | None = None) -> str:
    """Generate the download filename for a catalog export."""
    timestamp = (when or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return f"catalogbox_products_{timestamp}.xlsx"


def _write_text(ws, row: int, column: int, value: str | None, bold: bool = False) -> None:
    if value is None:
        return
    cell = ws.cell(row=row, column=column, value=ILLEGAL_CHARACTERS_RE.sub("", value))
    # "=SUM(A1)" is data, not a formula
    cell.data_type = "s"
    cell.number_format = "@"
    if bold:
        cell.font = Font(bold=True)


def build_catalog_workbook(
    headers: Sequence[HeaderColumn],
    records: Sequence[CatalogRecord],
    attributes: AttributeMap,
    sheet_title: str | None = None,
) -> bytes:
    """Write one header row and one row per record.

    Column i shows ``headers[i].raw_header``; each record's cell holds the
    attribute stored under ``headers[i].key``. Missing attributes are
    empty cells. Every value is written as text.

    Returns:
        XLSX content as bytes.
    """
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_title or settings.sheet_title

    for col_idx, header in enumerate(headers, 1):
        _write_text(ws, 1, col_idx, header.raw_header, bold=True)
        ws.column_dimensions[get_column_letter(col_idx)].width = COLUMN_WIDTH

    for row_idx, record in enumerate(records, 2):
        values = attributes.get(record.code, {})
        for col_idx, header in enumerate(headers, 1):
            _write_text(ws, row_idx, col_idx, values.get(header.key))

    # Freeze header row
    ws.freeze_panes = "A2"

    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


async def _load_attributes(
    store: CatalogStore,
    records: Sequence[CatalogRecord],
    keys: Sequence[str],
) -> AttributeMap:
    attributes: AttributeMap = {}
    codes = [r.code for r in records]
    for start in range(0, len(codes), ATTRIBUTE_CHUNK_SIZE):
        attributes.update(await store.get_attributes(codes[start:start + ATTRIBUTE_CHUNK_SIZE], keys))
    return attributes


async def export_catalog_to_xlsx(store: CatalogStore, sheet_title: str | None = None) -> bytes:
    """Export the catalog to XLSX bytes.

    Header order, records and attributes are read under one store snapshot
    so a concurrent import is never half-visible.
    """
    async with store.snapshot():
        headers = await store.get_header_order()
        records = await store.list_records()
        attributes = await _load_attributes(store, records, [h.key for h in headers])

    if records and not headers:
        logger.warning("Exporting %d records with no header order; the sheet will be empty", len(records))
    logger.info("Exporting %d records in %d columns", len(records), len(headers))
    return build_catalog_workbook(headers, records, attributes, sheet_title)


async def export_catalog_to_file(
    store: CatalogStore,
    storage: CatalogFileStorage | None = None,
    sheet_title: str | None = None,
) -> Path:
    """Export the catalog and save it under the export directory.

    Returns:
        Path of the saved ``products_<timestamp>.xlsx``.
    """
    content = await export_catalog_to_xlsx(store, sheet_title)
    return await (storage or CatalogFileStorage()).save_export(content)
