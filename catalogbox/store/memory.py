"""In-process catalog store, for embedding and tests."""

import asyncio
import copy
from contextlib import asynccontextmanager
from typing import AsyncIterator, Mapping, Sequence

from catalogbox.schemas.catalog import CatalogRecord, HeaderColumn, ImportBatchRecord

from .base import AttributeMap, CatalogStore


class MemoryCatalogStore(CatalogStore):
    """Dict-backed CatalogStore.

    ``transaction()`` copies the state on entry and puts it back if the
    block raises. A single lock serialises transactions and snapshots.
    """

    def __init__(self) -> None:
        self._records: dict[str, CatalogRecord] = {}
        self._attributes: dict[str, dict[str, str | None]] = {}
        self._header_order: list[HeaderColumn] = []
        self._batches: list[ImportBatchRecord] = []
        self._lock = asyncio.Lock()

    async def upsert_record(self, record: CatalogRecord) -> None:
        self._records[record.code] = record.model_copy()

    async def replace_attributes(self, code: str, attributes: Mapping[str, str | None]) -> None:
        self._attributes[code] = dict(attributes)

    async def get_header_order(self) -> list[HeaderColumn]:
        return sorted(self._header_order, key=lambda h: h.position)

    async def set_header_order(self, headers: Sequence[HeaderColumn]) -> None:
        self._header_order = [h.model_copy() for h in headers]

    async def clear_all(self) -> None:
        self._records.clear()
        self._attributes.clear()
        self._header_order = []

    async def list_records(self) -> list[CatalogRecord]:
        return sorted(self._records.values(), key=lambda r: (r.name, r.code))

    async def get_attributes(self, codes: Sequence[str], keys: Sequence[str]) -> AttributeMap:
        wanted = set(keys)
        result: AttributeMap = {}
        for code in codes:
            stored = self._attributes.get(code)
            if stored is None:
                continue
            result[code] = {k: v for k, v in stored.items() if k in wanted}
        return result

    async def get_record(self, code: str) -> CatalogRecord | None:
        return self._records.get(code)

    async def get_record_attributes(self, code: str) -> dict[str, str | None]:
        return dict(self._attributes.get(code, {}))

    async def delete_record(self, code: str) -> bool:
        self._attributes.pop(code, None)
        return self._records.pop(code, None) is not None

    async def count_records(self) -> int:
        return len(self._records)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        async with self._lock:
            saved = (
                dict(self._records),
                copy.deepcopy(self._attributes),
                list(self._header_order),
                list(self._batches),
            )
            try:
                yield
            except BaseException:
                self._records, self._attributes, self._header_order, self._batches = saved
                raise

    @asynccontextmanager
    async def snapshot(self) -> AsyncIterator[None]:
        async with self._lock:
            yield

    async def add_import_batch(self, batch: ImportBatchRecord) -> None:
        self._batches.append(batch.model_copy())

    async def list_import_batches(self, limit: int = 50) -> list[ImportBatchRecord]:
        return sorted(self._batches, key=lambda b: b.imported_at, reverse=True)[:limit]
