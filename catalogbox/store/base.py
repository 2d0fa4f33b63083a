"""Record store interface used by the import and export pipelines."""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Mapping, Sequence

from catalogbox.schemas.catalog import CatalogRecord, HeaderColumn, ImportBatchRecord

# code -> {key -> value}
AttributeMap = dict[str, dict[str, str | None]]


class CatalogStore(ABC):
    """Persistent home of catalog records, their attributes and the header order.

    Writes made inside ``transaction()`` become visible together or not at
    all. Reads made inside ``snapshot()`` never observe a transaction
    halfway through.
    """

    @abstractmethod
    async def upsert_record(self, record: CatalogRecord) -> None:
        """Create the record, or replace the one with the same code."""

    @abstractmethod
    async def replace_attributes(self, code: str, attributes: Mapping[str, str | None]) -> None:
        """Drop every attribute of ``code`` and store ``attributes`` instead."""

    @abstractmethod
    async def get_header_order(self) -> list[HeaderColumn]:
        """Return the export column layout ordered by position."""

    @abstractmethod
    async def set_header_order(self, headers: Sequence[HeaderColumn]) -> None:
        """Replace the export column layout."""

    @abstractmethod
    async def clear_all(self) -> None:
        """Remove all records, attributes and the header order.

        Import history is kept.
        """

    @abstractmethod
    async def list_records(self) -> list[CatalogRecord]:
        """Return every record ordered by name, then code."""

    @abstractmethod
    async def get_attributes(self, codes: Sequence[str], keys: Sequence[str]) -> AttributeMap:
        """Return ``{code: {key: value}}`` restricted to the given codes and keys.

        Codes with no stored attributes are absent from the result; keys a
        record has no attribute for are absent from its inner map.
        """

    @abstractmethod
    async def get_record(self, code: str) -> CatalogRecord | None:
        """Return one record by code."""

    @abstractmethod
    async def get_record_attributes(self, code: str) -> dict[str, str | None]:
        """Return every attribute of one record."""

    @abstractmethod
    async def delete_record(self, code: str) -> bool:
        """Delete a record and its attributes. Returns False if it did not exist."""

    @abstractmethod
    async def count_records(self) -> int:
        """Return the number of stored records."""

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[None]:
        """All writes inside commit together, or none do if the block raises."""

    @abstractmethod
    def snapshot(self) -> AbstractAsyncContextManager[None]:
        """Consistent read-only view for the duration of the block."""

    @abstractmethod
    async def add_import_batch(self, batch: ImportBatchRecord) -> None:
        """Append an entry to the import history."""

    @abstractmethod
    async def list_import_batches(self, limit: int = 50) -> list[ImportBatchRecord]:
        """Return import history, newest first."""
