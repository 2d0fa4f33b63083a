"""Tests for the MongoDB catalog store.

These need a MongoDB server at TEST_MONGODB_URL and are skipped without one.
"""

from datetime import datetime, timedelta, timezone

import pytest

from catalogbox.errors import StoreWriteError
from catalogbox.models import CatalogHeader, Product, ProductAttribute
from catalogbox.schemas.catalog import (
    CatalogRecord,
    HeaderColumn,
    ImportBatchRecord,
    ImportBatchStatus,
    ImportMode,
)
from catalogbox.services.export_service import export_catalog_to_xlsx
from catalogbox.services.xlsx_import import import_catalog
from tests.conftest import build_xlsx, read_xlsx


HEADERS = [
    HeaderColumn(position=0, raw_header="Código", key="sku"),
    HeaderColumn(position=1, raw_header="Nome", key="nome"),
]


class TestMongoWrites:
    """Tests for buffered and direct writes."""

    @pytest.mark.asyncio
    async def test_upsert_creates_then_replaces(self, mongo_store):
        await mongo_store.upsert_record(CatalogRecord(code="A1", name="Alpha"))
        await mongo_store.upsert_record(CatalogRecord(code="A1", name="Alpha v2", unit="cx"))

        assert await Product.find_all().count() == 1
        record = await mongo_store.get_record("A1")
        assert record.name == "Alpha v2"
        assert record.unit == "cx"

    @pytest.mark.asyncio
    async def test_replace_attributes(self, mongo_store):
        await mongo_store.replace_attributes("A1", {"sku": "A1", "cor": "Azul"})
        await mongo_store.replace_attributes("A1", {"sku": "A1", "peso": None})

        assert await mongo_store.get_record_attributes("A1") == {"sku": "A1", "peso": None}

    @pytest.mark.asyncio
    async def test_header_order_round_trip(self, mongo_store):
        await mongo_store.set_header_order(list(reversed(HEADERS)))
        assert await mongo_store.get_header_order() == HEADERS

        await mongo_store.set_header_order([HeaderColumn(position=0, raw_header="SKU", key="sku")])
        assert [h.raw_header for h in await mongo_store.get_header_order()] == ["SKU"]

    @pytest.mark.asyncio
    async def test_clear_all_keeps_history(self, mongo_store):
        await mongo_store.upsert_record(CatalogRecord(code="A1", name="Alpha"))
        await mongo_store.replace_attributes("A1", {"sku": "A1"})
        await mongo_store.set_header_order(HEADERS)
        await mongo_store.add_import_batch(
            ImportBatchRecord(
                filename="a.xlsx",
                mode=ImportMode.OVERWRITE,
                status=ImportBatchStatus.COMPLETED,
                imported_at=datetime.now(timezone.utc),
            )
        )

        await mongo_store.clear_all()

        assert await mongo_store.count_records() == 0
        assert await ProductAttribute.find_all().count() == 0
        assert await CatalogHeader.find_all().count() == 0
        assert len(await mongo_store.list_import_batches()) == 1

    @pytest.mark.asyncio
    async def test_delete_record(self, mongo_store):
        await mongo_store.upsert_record(CatalogRecord(code="A1", name="Alpha"))
        await mongo_store.replace_attributes("A1", {"sku": "A1"})

        assert await mongo_store.delete_record("A1") is True
        assert await mongo_store.get_record("A1") is None
        assert await mongo_store.get_record_attributes("A1") == {}
        assert await mongo_store.delete_record("A1") is False

    @pytest.mark.asyncio
    async def test_duplicate_key_is_a_store_write_error(self, mongo_store):
        """A unique index violation surfaces as StoreWriteError."""
        clash = [
            HeaderColumn(position=0, raw_header="SKU", key="sku"),
            HeaderColumn(position=0, raw_header="Nome", key="nome"),
        ]

        with pytest.raises(StoreWriteError):
            await mongo_store.set_header_order(clash)

    @pytest.mark.asyncio
    async def test_duplicate_key_inside_transaction(self, mongo_store):
        clash = [
            HeaderColumn(position=0, raw_header="SKU", key="sku"),
            HeaderColumn(position=0, raw_header="Nome", key="nome"),
        ]

        with pytest.raises(StoreWriteError):
            async with mongo_store.transaction():
                await mongo_store.set_header_order(clash)


class TestMongoReads:
    """Tests for ordered and filtered reads."""

    @pytest.mark.asyncio
    async def test_list_records_by_name_then_code(self, mongo_store):
        for code, name in [("C", "Same"), ("A", "Zed"), ("B", "Same")]:
            await mongo_store.upsert_record(CatalogRecord(code=code, name=name))

        assert [r.code for r in await mongo_store.list_records()] == ["B", "C", "A"]

    @pytest.mark.asyncio
    async def test_get_attributes_filters_codes_and_keys(self, mongo_store):
        await mongo_store.replace_attributes("A1", {"sku": "A1", "nome": "Alpha", "peso": "1kg"})
        await mongo_store.replace_attributes("B2", {"sku": "B2", "nome": None})
        await mongo_store.replace_attributes("C3", {"sku": "C3"})

        result = await mongo_store.get_attributes(["A1", "B2", "Z9"], ["sku", "nome"])

        assert result == {
            "A1": {"sku": "A1", "nome": "Alpha"},
            "B2": {"sku": "B2", "nome": None},
        }
        assert await mongo_store.get_attributes([], ["sku"]) == {}

    @pytest.mark.asyncio
    async def test_import_history_newest_first(self, mongo_store):
        now = datetime.now(timezone.utc)
        for i in range(3):
            await mongo_store.add_import_batch(
                ImportBatchRecord(
                    filename=f"batch{i}.xlsx",
                    mode=ImportMode.APPEND,
                    status=ImportBatchStatus.COMPLETED,
                    imported_at=now + timedelta(minutes=i),
                    records_stored=i,
                )
            )

        batches = await mongo_store.list_import_batches(limit=2)

        assert [b.filename for b in batches] == ["batch2.xlsx", "batch1.xlsx"]
        assert batches[0].records_stored == 2


class TestMongoTransactions:
    """Tests for buffered transactions."""

    @pytest.mark.asyncio
    async def test_writes_are_hidden_until_commit(self, mongo_store):
        async with mongo_store.transaction():
            await mongo_store.upsert_record(CatalogRecord(code="A1", name="Alpha"))
            assert await Product.find_all().count() == 0

        assert await mongo_store.count_records() == 1

    @pytest.mark.asyncio
    async def test_failed_block_writes_nothing(self, mongo_store):
        await mongo_store.upsert_record(CatalogRecord(code="KEEP", name="Kept"))

        with pytest.raises(RuntimeError):
            async with mongo_store.transaction():
                await mongo_store.clear_all()
                await mongo_store.upsert_record(CatalogRecord(code="NEW", name="New"))
                raise RuntimeError("abort")

        assert [r.code for r in await mongo_store.list_records()] == ["KEEP"]

    @pytest.mark.asyncio
    async def test_failed_flush_restores_previous_catalog(self, mongo_store):
        """A write failing midway through an overwrite leaves the old catalog in place."""
        await mongo_store.upsert_record(CatalogRecord(code="KEEP", name="Kept"))
        await mongo_store.replace_attributes("KEEP", {"sku": "KEEP", "nome": "Kept"})
        await mongo_store.set_header_order(HEADERS)
        clash = [
            HeaderColumn(position=0, raw_header="SKU", key="sku"),
            HeaderColumn(position=0, raw_header="Nome", key="nome"),
        ]

        with pytest.raises(StoreWriteError):
            async with mongo_store.transaction():
                await mongo_store.clear_all()
                await mongo_store.upsert_record(CatalogRecord(code="NEW", name="New"))
                await mongo_store.replace_attributes("NEW", {"sku": "NEW"})
                await mongo_store.add_import_batch(
                    ImportBatchRecord(
                        filename="new.xlsx",
                        mode=ImportMode.OVERWRITE,
                        status=ImportBatchStatus.COMPLETED,
                        imported_at=datetime.now(timezone.utc),
                    )
                )
                await mongo_store.set_header_order(clash)

        assert [r.code for r in await mongo_store.list_records()] == ["KEEP"]
        assert await mongo_store.get_record_attributes("KEEP") == {"sku": "KEEP", "nome": "Kept"}
        assert await mongo_store.get_record_attributes("NEW") == {}
        assert await mongo_store.get_header_order() == HEADERS
        assert await mongo_store.list_import_batches() == []


class TestMongoPipeline:
    """The import and export pipelines on the MongoDB store."""

    @pytest.mark.asyncio
    async def test_import_export_round_trip(self, mongo_store):
        content = build_xlsx(
            [["Código", "Nome", "Preço"], [7, "Alpha", 1.5], ["B2", "Beta", None]],
            number_formats={"A2": "000"},
        )

        summary = await import_catalog(content, ImportMode.OVERWRITE, mongo_store)

        assert summary.records_stored == 2
        assert read_xlsx(await export_catalog_to_xlsx(mongo_store)) == [
            ["Código", "Nome", "Preço"],
            ["007", "Alpha", "1.5"],
            ["B2", "Beta", None],
        ]
        history = await mongo_store.list_import_batches()
        assert history[0].status is ImportBatchStatus.COMPLETED
