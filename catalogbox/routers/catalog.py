"""Catalog endpoints: spreadsheet import and export, products and import history."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from fastapi.responses import Response

from catalogbox.config import settings
from catalogbox.errors import BatchUnreadableError, StoreWriteError
from catalogbox.schemas.catalog import (
    CatalogRecord,
    HeaderColumn,
    ImportBatchRecord,
    ImportMode,
    ImportSummary,
    ProductDetailResponse,
)
from catalogbox.services.export_service import (
    XLSX_CONTENT_TYPE,
    export_catalog_to_xlsx,
    generate_export_filename,
)
from catalogbox.services.file_storage import (
    CatalogFileStorage,
    FileSizeExceededError,
    InvalidFileTypeError,
    validate_extension,
    validate_upload,
)
from catalogbox.services.xlsx_import import SynonymTable, import_catalog, load_synonym_table
from catalogbox.store import CatalogStore, get_catalog_store

logger = logging.getLogger(__name__)

router = APIRouter()

Store = Annotated[CatalogStore, Depends(get_catalog_store)]


def get_synonym_table() -> SynonymTable:
    """Synonym tables, extended by the configured TOML file if any."""
    return load_synonym_table(settings.synonyms_file)


Synonyms = Annotated[SynonymTable, Depends(get_synonym_table)]


async def _read_upload(file: UploadFile) -> bytes:
    """Read an upload in chunks, stopping as soon as it exceeds the size limit."""
    max_size = settings.max_upload_size_bytes
    chunks: list[bytes] = []
    total_size = 0
    while True:
        chunk = await file.read(64 * 1024)  # 64 KB chunks
        if not chunk:
            break
        total_size += len(chunk)
        if total_size > max_size:
            raise HTTPException(
                status_code=status.HTTP_413_CONTENT_TOO_LARGE,
                detail=f"File exceeds maximum size of {max_size // (1024 * 1024)} MB",
            )
        chunks.append(chunk)
    return b"".join(chunks)


@router.post("/import", response_model=ImportSummary)
async def import_products(
    store: Store,
    synonyms: Synonyms,
    file: UploadFile = File(..., description="XLSX product spreadsheet"),
    mode: ImportMode = Query(default=ImportMode.OVERWRITE, description="overwrite or append"),
) -> ImportSummary:
    """Import a product spreadsheet.

    Overwrite replaces the whole catalog and its export layout; append
    merges records into the existing catalog.
    """
    try:
        validate_extension(file.filename)
    except InvalidFileTypeError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    content = await _read_upload(file)

    try:
        validate_upload(file.filename, content)
    except InvalidFileTypeError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except FileSizeExceededError as e:
        raise HTTPException(status_code=status.HTTP_413_CONTENT_TOO_LARGE, detail=str(e))

    try:
        return await import_catalog(
            content,
            mode,
            store,
            filename=file.filename or "unknown",
            synonyms=synonyms,
            progress_interval=settings.progress_interval,
            max_rows=settings.max_rows,
            archive=CatalogFileStorage() if settings.archive_imports else None,
        )
    except BatchUnreadableError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except StoreWriteError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Import was not saved: {e}",
        )


@router.get("/export")
async def export_products(store: Store) -> Response:
    """Download the catalog as XLSX, in the column layout of the last overwrite import."""
    content = await export_catalog_to_xlsx(store, settings.sheet_title)
    return Response(
        content=content,
        media_type=XLSX_CONTENT_TYPE,
        headers={"Content-Disposition": f"attachment; filename={generate_export_filename()}"},
    )


@router.get("/headers", response_model=list[HeaderColumn])
async def list_headers(store: Store) -> list[HeaderColumn]:
    """Get the export column layout."""
    return await store.get_header_order()


@router.get("/products", response_model=list[CatalogRecord])
async def list_products(
    store: Store,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
) -> list[CatalogRecord]:
    """List products ordered by name."""
    records = await store.list_records()
    return records[skip:skip + limit]


@router.get("/products/{code}", response_model=ProductDetailResponse)
async def get_product(code: str, store: Store) -> ProductDetailResponse:
    """Get a product with every attribute imported for it."""
    record = await store.get_record(code)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Product with code {code} not found",
        )
    attributes = await store.get_record_attributes(code)
    return ProductDetailResponse(record=record, attributes=attributes)


@router.delete("/products/{code}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(code: str, store: Store) -> None:
    """Delete a product and its attributes."""
    try:
        deleted = await store.delete_record(code)
    except StoreWriteError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Product with code {code} not found",
        )
    logger.info("Deleted product %s", code)


@router.get("/imports", response_model=list[ImportBatchRecord])
async def list_imports(
    store: Store,
    limit: int = Query(default=50, ge=1, le=500),
) -> list[ImportBatchRecord]:
    """List import history, newest first."""
    return await store.list_import_batches(limit)
