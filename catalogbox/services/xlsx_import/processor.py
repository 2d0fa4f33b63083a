"""Import pipeline: stage a workbook in memory, then commit it to the store."""

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable

from catalogbox.errors import CatalogImportError, ImportCancelledError
from catalogbox.schemas.catalog import (
    ImportBatchRecord,
    ImportBatchStatus,
    ImportMode,
    ImportSummary,
)
from catalogbox.store.base import CatalogStore

from .constants import DEFAULT_PROGRESS_INTERVAL
from .headers import BatchSchema, build_batch_schema
from .parsers import Deduplicator, ParsedProduct, open_sheet_rows, parse_rows
from .synonyms import DEFAULT_SYNONYMS, SynonymTable

if TYPE_CHECKING:
    from catalogbox.services.file_storage import CatalogFileStorage

logger = logging.getLogger(__name__)

# Called with (processed, total); may be a coroutine function
ProgressCallback = Callable[[int, int], Any]
# An asyncio.Event, or a zero-argument callable returning True to cancel
CancelSignal = asyncio.Event | Callable[[], bool]


@dataclass
class StagedImport:
    """A fully parsed batch, ready to be written."""

    schema: BatchSchema
    products: list[ParsedProduct] = field(default_factory=list)
    rows_read: int = 0
    rows_skipped: int = 0
    duplicates_dropped: int = 0
    warnings: list[str] = field(default_factory=list)


def _check_cancelled(cancel: CancelSignal | None) -> None:
    if cancel is None:
        return
    cancelled = cancel.is_set() if isinstance(cancel, asyncio.Event) else cancel()
    if cancelled:
        raise ImportCancelledError("Import cancelled")


async def _report(on_progress: ProgressCallback | None, processed: int, total: int) -> None:
    if on_progress is None:
        return
    result = on_progress(processed, total)
    if inspect.isawaitable(result):
        await result


async def stage_import(
    file_content: bytes,
    synonyms: SynonymTable = DEFAULT_SYNONYMS,
    max_rows: int | None = None,
    chunk_size: int = DEFAULT_PROGRESS_INTERVAL,
    cancel: CancelSignal | None = None,
) -> StagedImport:
    """Parse a workbook into deduplicated products without touching the store.

    Cancellation is checked and control is yielded to the event loop after
    every ``chunk_size`` data rows.

    Raises:
        BatchUnreadableError: If the workbook or its header row can't be read.
        ImportCancelledError: If ``cancel`` fires while parsing.
    """
    with open_sheet_rows(file_content) as (raw_headers, header_row, rows):
        schema = build_batch_schema(raw_headers, synonyms)
        staged = StagedImport(schema=schema)
        if schema.identifier_fallback:
            staged.warnings.append(
                f"No identifier column recognised; using first column '{raw_headers[0]}'"
            )

        dedup = Deduplicator()
        for row_number, product in parse_rows(schema, rows, header_row + 1):
            if max_rows is not None and staged.rows_read >= max_rows:
                message = f"Stopped after {max_rows} data rows; rows from {row_number} on were ignored"
                logger.warning(message)
                staged.warnings.append(message)
                break

            staged.rows_read += 1
            if product is None:
                staged.rows_skipped += 1
            elif dedup.accept(product):
                staged.products.append(product)

            if staged.rows_read % chunk_size == 0:
                _check_cancelled(cancel)
                await asyncio.sleep(0)

    staged.duplicates_dropped = dedup.dropped
    if dedup.dropped:
        logger.warning("Dropped %d rows with repeated identifiers", dedup.dropped)
        staged.warnings.append(f"Dropped {dedup.dropped} rows with repeated identifiers")
    return staged


async def _record_batch(store: CatalogStore, entry: ImportBatchRecord) -> None:
    try:
        await store.add_import_batch(entry)
    except CatalogImportError as e:
        logger.error("Could not record import history for '%s': %s", entry.filename, e)


async def import_catalog(
    file_content: bytes,
    mode: ImportMode,
    store: CatalogStore,
    *,
    filename: str = "upload.xlsx",
    synonyms: SynonymTable = DEFAULT_SYNONYMS,
    on_progress: ProgressCallback | None = None,
    cancel: CancelSignal | None = None,
    progress_interval: int = DEFAULT_PROGRESS_INTERVAL,
    max_rows: int | None = None,
    archive: "CatalogFileStorage | None" = None,
) -> ImportSummary:
    """Import a product workbook into the catalog store.

    The whole sheet is parsed first; nothing is written for an unreadable
    or cancelled batch. Writes then happen inside one store transaction:

    - overwrite: records, attributes and header order are cleared and the
      batch's headers become the new header order.
    - append: existing data and header order are kept. The header order is
      only set when the store has none yet, so columns first seen in an
      append batch are stored as attributes but not exported.

    Each surviving product is upserted and its attributes replaced.

    Args:
        file_content: Raw XLSX bytes.
        mode: Overwrite or append.
        store: Record store to write to.
        filename: Name recorded in the import history.
        synonyms: Header alias and field synonym tables.
        on_progress: Called with (processed, total) every
            ``progress_interval`` records and once more at the end.
        cancel: Checked between row chunks; when set the batch is abandoned.
        progress_interval: Records between progress reports.
        max_rows: Data rows to read at most; the rest of the sheet is ignored.
        archive: When given, the raw bytes are archived after commit.

    Returns:
        ImportSummary with the number of records stored and the counters.

    Raises:
        BatchUnreadableError: The bytes are not a workbook or have no header row.
        ImportCancelledError: ``cancel`` fired before commit.
        StoreWriteError: The store rejected a write; the batch was rolled back.
    """
    mode = ImportMode(mode)
    logger.info("Starting %s import of '%s'", mode.value, filename)

    try:
        staged = await stage_import(
            file_content,
            synonyms=synonyms,
            max_rows=max_rows,
            chunk_size=progress_interval,
            cancel=cancel,
        )
        _check_cancelled(cancel)

        total = len(staged.products)
        summary = ImportSummary(
            mode=mode,
            records_stored=total,
            rows_read=staged.rows_read,
            rows_skipped=staged.rows_skipped,
            duplicates_dropped=staged.duplicates_dropped,
            identifier_fallback=staged.schema.identifier_fallback,
            headers=staged.schema.header_columns(),
            warnings=list(staged.warnings),
        )

        async with store.transaction():
            if mode is ImportMode.OVERWRITE:
                await store.clear_all()
                await store.set_header_order(summary.headers)
            elif not await store.get_header_order():
                await store.set_header_order(summary.headers)

            for processed, product in enumerate(staged.products, start=1):
                await store.upsert_record(product.record)
                await store.replace_attributes(product.record.code, product.attributes)
                if processed % progress_interval == 0 and processed < total:
                    await _report(on_progress, processed, total)
                    _check_cancelled(cancel)

            await store.add_import_batch(
                ImportBatchRecord(
                    filename=filename,
                    mode=mode,
                    status=ImportBatchStatus.COMPLETED,
                    imported_at=datetime.now(timezone.utc),
                    records_stored=total,
                    rows_read=staged.rows_read,
                    rows_skipped=staged.rows_skipped,
                    duplicates_dropped=staged.duplicates_dropped,
                    errors=list(staged.warnings),
                )
            )
    except CatalogImportError as e:
        logger.error("Import of '%s' failed: %s", filename, e)
        await _record_batch(
            store,
            ImportBatchRecord(
                filename=filename,
                mode=mode,
                status=ImportBatchStatus.FAILED,
                imported_at=datetime.now(timezone.utc),
                errors=[str(e)],
            ),
        )
        raise

    await _report(on_progress, total, total)

    if archive is not None:
        try:
            path = await archive.archive_import(file_content)
        except OSError as e:
            logger.error("Could not archive '%s': %s", filename, e)
            summary.warnings.append(f"Workbook was imported but not archived: {e}")
        else:
            logger.debug("Archived '%s' as %s", filename, path)

    logger.info(
        "Imported '%s': %d records stored, %d rows read, %d skipped, %d duplicates dropped",
        filename,
        total,
        staged.rows_read,
        staged.rows_skipped,
        staged.duplicates_dropped,
    )
    return summary
