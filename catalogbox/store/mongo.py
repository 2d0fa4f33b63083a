"""MongoDB catalog store on the Beanie document models."""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Awaitable, Callable, Mapping, Sequence

from beanie.operators import In, NotIn
from pymongo import AsyncMongoClient
from pymongo.asynchronous.client_session import AsyncClientSession
from pymongo.errors import PyMongoError

from catalogbox.errors import StoreWriteError
from catalogbox.models import CatalogHeader, ImportBatch, Product, ProductAttribute
from catalogbox.schemas.catalog import CatalogRecord, HeaderColumn, ImportBatchRecord

from .base import AttributeMap, CatalogStore

logger = logging.getLogger(__name__)

PendingWrite = Callable[[AsyncClientSession | None], Awaitable[Any]]

@dataclass
class _CatalogState:
    """Catalog documents as they were before a flush."""

    products: list[Product]
    attributes: list[ProductAttribute]
    headers: list[CatalogHeader]
    batch_ids: list[Any]


def _to_record(product: Product) -> CatalogRecord:
    return CatalogRecord(
        code=product.code,
        name=product.name,
        description=product.description,
        category=product.category,
        unit=product.unit,
    )


class MongoCatalogStore(CatalogStore):
    """CatalogStore backed by the Product, ProductAttribute and CatalogHeader collections.

    Beanie must be initialised (``init_db``) before use. Writes issued
    inside ``transaction()`` are buffered and flushed when the block exits
    cleanly; a block that raises writes nothing. With ``use_transactions``
    the flush runs in a MongoDB multi-document transaction, which needs a
    replica set. Without it the flush is sequential; the catalog is read
    before the flush and restored if a write fails partway through.
    """

    def __init__(
        self,
        client: AsyncMongoClient | None = None,
        use_transactions: bool = False,
    ) -> None:
        self._client = client
        self._use_transactions = use_transactions
        self._lock = asyncio.Lock()
        self._pending: list[PendingWrite] | None = None

    async def _write(self, op: PendingWrite) -> None:
        if self._pending is not None:
            self._pending.append(op)
            return
        try:
            await op(None)
        except PyMongoError as e:
            raise StoreWriteError(f"Store write failed: {e}") from e

    @staticmethod
    async def _apply(ops: list[PendingWrite], session: AsyncClientSession | None) -> None:
        for op in ops:
            await op(session)

    @staticmethod
    async def _capture() -> _CatalogState:
        batches = await ImportBatch.find_all().to_list()
        return _CatalogState(
            products=await Product.find_all().to_list(),
            attributes=await ProductAttribute.find_all().to_list(),
            headers=await CatalogHeader.find_all().to_list(),
            batch_ids=[b.id for b in batches],
        )

    @staticmethod
    async def _restore(state: _CatalogState) -> None:
        await ProductAttribute.find_all().delete()
        await Product.find_all().delete()
        await CatalogHeader.find_all().delete()
        await ImportBatch.find(NotIn(ImportBatch.id, state.batch_ids)).delete()
        if state.products:
            await Product.insert_many(state.products)
        if state.attributes:
            await ProductAttribute.insert_many(state.attributes)
        if state.headers:
            await CatalogHeader.insert_many(state.headers)

    async def _flush(self, ops: list[PendingWrite]) -> None:
        if not ops:
            return
        if self._use_transactions and self._client is not None:
            try:
                async with self._client.start_session() as session:
                    await session.with_transaction(lambda s: self._apply(ops, s))
            except PyMongoError as e:
                raise StoreWriteError(f"Store write failed: {e}") from e
            return

        try:
            state = await self._capture()
        except PyMongoError as e:
            raise StoreWriteError(f"Store read failed before write: {e}") from e
        try:
            await self._apply(ops, None)
        except PyMongoError as e:
            logger.warning("Store write failed, restoring the previous catalog: %s", e)
            try:
                await self._restore(state)
            except PyMongoError as restore_error:
                logger.error("Could not restore the previous catalog: %s", restore_error)
            raise StoreWriteError(f"Store write failed: {e}") from e

    # Writes

    async def upsert_record(self, record: CatalogRecord) -> None:
        record = record.model_copy()

        async def op(session: AsyncClientSession | None) -> None:
            existing = await Product.find_one(Product.code == record.code, session=session)
            if existing is None:
                await Product(**record.model_dump()).insert(session=session)
                return
            existing.name = record.name
            existing.description = record.description
            existing.category = record.category
            existing.unit = record.unit
            existing.updated_at = datetime.now(timezone.utc)
            await existing.save(session=session)

        await self._write(op)

    async def replace_attributes(self, code: str, attributes: Mapping[str, str | None]) -> None:
        items = list(attributes.items())

        async def op(session: AsyncClientSession | None) -> None:
            await ProductAttribute.find(
                ProductAttribute.product_code == code, session=session
            ).delete(session=session)
            if items:
                await ProductAttribute.insert_many(
                    [ProductAttribute(product_code=code, key=k, value=v) for k, v in items],
                    session=session,
                )

        await self._write(op)

    async def set_header_order(self, headers: Sequence[HeaderColumn]) -> None:
        columns = [h.model_copy() for h in headers]

        async def op(session: AsyncClientSession | None) -> None:
            await CatalogHeader.find_all(session=session).delete(session=session)
            if columns:
                await CatalogHeader.insert_many(
                    [CatalogHeader(**c.model_dump()) for c in columns],
                    session=session,
                )

        await self._write(op)

    async def clear_all(self) -> None:
        async def op(session: AsyncClientSession | None) -> None:
            await ProductAttribute.find_all(session=session).delete(session=session)
            await Product.find_all(session=session).delete(session=session)
            await CatalogHeader.find_all(session=session).delete(session=session)

        await self._write(op)

    async def delete_record(self, code: str) -> bool:
        product = await Product.find_one(Product.code == code)
        if product is None:
            return False

        async def op(session: AsyncClientSession | None) -> None:
            await ProductAttribute.find(
                ProductAttribute.product_code == code, session=session
            ).delete(session=session)
            await Product.find(Product.code == code, session=session).delete(session=session)

        await self._write(op)
        return True

    async def add_import_batch(self, batch: ImportBatchRecord) -> None:
        entry = ImportBatch(**batch.model_dump())

        async def op(session: AsyncClientSession | None) -> None:
            await entry.insert(session=session)

        await self._write(op)

    # Reads

    async def get_header_order(self) -> list[HeaderColumn]:
        headers = await CatalogHeader.find_all().sort(CatalogHeader.position).to_list()
        return [HeaderColumn(position=h.position, raw_header=h.raw_header, key=h.key) for h in headers]

    async def list_records(self) -> list[CatalogRecord]:
        products = await Product.find_all().sort(Product.name, Product.code).to_list()
        return [_to_record(p) for p in products]

    async def get_attributes(self, codes: Sequence[str], keys: Sequence[str]) -> AttributeMap:
        if not codes or not keys:
            return {}
        result: AttributeMap = {}
        attributes = ProductAttribute.find(
            In(ProductAttribute.product_code, list(codes)),
            In(ProductAttribute.key, list(keys)),
        )
        async for attribute in attributes:
            result.setdefault(attribute.product_code, {})[attribute.key] = attribute.value
        return result

    async def get_record(self, code: str) -> CatalogRecord | None:
        product = await Product.find_one(Product.code == code)
        return None if product is None else _to_record(product)

    async def get_record_attributes(self, code: str) -> dict[str, str | None]:
        attributes = await ProductAttribute.find(ProductAttribute.product_code == code).to_list()
        return {a.key: a.value for a in attributes}

    async def count_records(self) -> int:
        return await Product.find_all().count()

    async def list_import_batches(self, limit: int = 50) -> list[ImportBatchRecord]:
        batches = await ImportBatch.find_all().sort(-ImportBatch.imported_at).limit(limit).to_list()
        return [
            ImportBatchRecord(**b.model_dump(exclude={"id", "revision_id"}))
            for b in batches
        ]

    # Boundaries

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        async with self._lock:
            self._pending = []
            try:
                yield
                ops = self._pending
            finally:
                self._pending = None
            await self._flush(ops)
            logger.debug("Flushed %d buffered store writes", len(ops))

    @asynccontextmanager
    async def snapshot(self) -> AsyncIterator[None]:
        async with self._lock:
            yield
