"""Exceptions raised by the CatalogBox import and export pipelines."""


class CatalogImportError(Exception):
    """Base class for batch-level import failures."""


class BatchUnreadableError(CatalogImportError, ValueError):
    """The upload is not a workbook, or it has no header row."""


class StoreWriteError(CatalogImportError):
    """The record store rejected a write; the batch was not committed."""


class ImportCancelledError(CatalogImportError):
    """The caller cancelled the import before it was committed."""
