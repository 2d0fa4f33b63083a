"""Workbook reading and per-row record extraction for XLSX imports."""

import io
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Sequence
from xml.etree.ElementTree import ParseError
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from catalogbox.errors import BatchUnreadableError
from catalogbox.schemas.catalog import CanonicalField, CatalogRecord

from .cells import cell_text
from .headers import BatchSchema

logger = logging.getLogger(__name__)

# Failures openpyxl surfaces for bytes that are not a readable workbook
_UNREADABLE_ERRORS = (InvalidFileException, BadZipFile, KeyError, ValueError, OSError, EOFError, ParseError)


@dataclass
class ParsedProduct:
    """A data row turned into a record plus its full attribute map."""

    row_number: int
    record: CatalogRecord
    attributes: dict[str, str | None] = field(default_factory=dict)


def _guarded_rows(rows: Iterator[Sequence[Any]]) -> Iterator[Sequence[Any]]:
    """Re-raise worksheet read failures as BatchUnreadableError."""
    while True:
        try:
            cells = next(rows)
        except StopIteration:
            return
        except _UNREADABLE_ERRORS as e:
            raise BatchUnreadableError(f"Could not read worksheet rows: {e}") from e
        yield cells


def _trim_trailing_blanks(headers: list[str]) -> list[str]:
    end = len(headers)
    while end > 0 and not headers[end - 1]:
        end -= 1
    return headers[:end]


@contextmanager
def open_sheet_rows(file_content: bytes) -> Iterator[tuple[list[str], int, Iterator[Sequence[Any]]]]:
    """Open the first worksheet and position it after the header row.

    Leading blank rows are skipped; the first row with any content is the
    header row. Trailing blank header cells are dropped, interior ones are
    kept as empty strings.

    Uses openpyxl read_only mode; data rows are yielded lazily as cell
    tuples so number formats stay available.

    Yields:
        (raw_headers, header_row_number, row_iterator). Row numbers are
        1-based sheet rows.

    Raises:
        BatchUnreadableError: If the bytes are not a workbook, the workbook
            has no worksheet, or the sheet has no header row.
    """
    try:
        wb = load_workbook(filename=io.BytesIO(file_content), read_only=True, data_only=True)
    except _UNREADABLE_ERRORS as e:
        raise BatchUnreadableError(f"File is not a readable XLSX workbook: {e}") from e

    try:
        if not wb.worksheets:
            raise BatchUnreadableError("XLSX file has no worksheets")
        ws = wb.worksheets[0]
        # Some writers store wrong sheet dimensions
        ws.reset_dimensions()

        row_iter = _guarded_rows(ws.iter_rows())
        raw_headers: list[str] = []
        header_row = 0
        for number, cells in enumerate(row_iter, start=1):
            texts = [cell_text(c) or "" for c in cells]
            if any(texts):
                raw_headers = _trim_trailing_blanks(texts)
                header_row = number
                break

        if not raw_headers:
            raise BatchUnreadableError("XLSX file has no header row")

        yield raw_headers, header_row, row_iter
    finally:
        wb.close()


def _attribute_map(schema: BatchSchema, cells: Sequence[Any]) -> dict[str, str | None]:
    return {
        key: cell_text(cells[i]) if i < len(cells) else None
        for i, key in enumerate(schema.keys)
    }


def parse_row(schema: BatchSchema, row_number: int, cells: Sequence[Any]) -> ParsedProduct | None:
    """Build a product from one data row.

    Every header key gets an entry in the attribute map, None for blank
    cells. Canonical fields come from the columns resolved in the schema;
    name falls back to the identifier.

    Returns:
        The parsed product, or None when the identifier cell is blank.
    """
    return _build_product(schema, row_number, _attribute_map(schema, cells))


def _build_product(
    schema: BatchSchema, row_number: int, attributes: dict[str, str | None]
) -> ParsedProduct | None:
    code = attributes[schema.keys[schema.identifier_column]]
    if code is None:
        return None

    def field_value(canonical: CanonicalField) -> str | None:
        column = schema.column_for(canonical)
        return None if column is None else attributes[schema.keys[column]]

    record = CatalogRecord(
        code=code,
        name=field_value(CanonicalField.NAME) or code,
        description=field_value(CanonicalField.DESCRIPTION),
        category=field_value(CanonicalField.CATEGORY),
        unit=field_value(CanonicalField.UNIT),
    )
    return ParsedProduct(row_number=row_number, record=record, attributes=attributes)


def parse_rows(
    schema: BatchSchema,
    rows: Iterable[Sequence[Any]],
    first_row_number: int,
) -> Iterator[tuple[int, ParsedProduct | None]]:
    """Lazily parse data rows.

    Rows whose header-width cells are all blank are passed over silently.
    Other rows yield (row_number, product), with product None when the
    identifier is blank.
    """
    width = len(schema.keys)
    for row_number, cells in enumerate(rows, start=first_row_number):
        attributes = _attribute_map(schema, tuple(cells)[:width])
        if all(v is None for v in attributes.values()):
            continue
        yield row_number, _build_product(schema, row_number, attributes)


class Deduplicator:
    """Drops repeated identifiers within one batch; the first row wins."""

    def __init__(self) -> None:
        self._seen: set[str] = set()
        self.dropped = 0

    def accept(self, product: ParsedProduct) -> bool:
        code = product.record.code
        if code in self._seen:
            self.dropped += 1
            logger.debug("Dropping duplicate code '%s' at row %d", code, product.row_number)
            return False
        self._seen.add(code)
        return True
