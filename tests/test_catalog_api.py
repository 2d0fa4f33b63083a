"""Tests for the catalog HTTP endpoints."""

import io

import pytest
from httpx import AsyncClient
from openpyxl import load_workbook

from catalogbox.config import reset_settings
from catalogbox.errors import StoreWriteError
from catalogbox.services.export_service import XLSX_CONTENT_TYPE
from tests.conftest import build_xlsx, read_xlsx


def _upload(content: bytes, filename: str = "products.xlsx") -> dict:
    return {"file": (filename, content, XLSX_CONTENT_TYPE)}


SAMPLE_ROWS = [
    ["Código de Barras", "Produto", "Nome", "Preço"],
    ["7891234567890", "CAF-01", "Café", 19.9],
    ["7890000000001", "DET-02", "Detergente", 2.49],
]


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["app_name"] == "CatalogBox"


class TestImportEndpoint:
    """Tests for POST /api/catalog/import."""

    @pytest.mark.asyncio
    async def test_import_overwrite(self, client: AsyncClient, memory_store) -> None:
        response = await client.post("/api/catalog/import", files=_upload(build_xlsx(SAMPLE_ROWS)))

        assert response.status_code == 200
        data = response.json()
        assert data["mode"] == "overwrite"
        assert data["records_stored"] == 2
        assert data["identifier_fallback"] is False
        assert [h["key"] for h in data["headers"]] == ["ean", "sku", "nome", "preco"]
        assert await memory_store.get_record("CAF-01") is not None

    @pytest.mark.asyncio
    async def test_import_append(self, client: AsyncClient, memory_store) -> None:
        await client.post("/api/catalog/import", files=_upload(build_xlsx(SAMPLE_ROWS)))
        extra = build_xlsx([["Produto", "Nome"], ["NEW-03", "Novo"]])

        response = await client.post(
            "/api/catalog/import", params={"mode": "append"}, files=_upload(extra)
        )

        assert response.status_code == 200
        assert response.json()["mode"] == "append"
        assert await memory_store.count_records() == 3

    @pytest.mark.asyncio
    async def test_import_invalid_mode(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/catalog/import", params={"mode": "merge"}, files=_upload(build_xlsx(SAMPLE_ROWS))
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_import_wrong_extension(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/catalog/import", files=_upload(b"SKU,Nome\nA1,Alpha\n", filename="products.csv")
        )
        assert response.status_code == 400
        assert "Unsupported file type" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_import_not_a_zip(self, client: AsyncClient) -> None:
        response = await client.post("/api/catalog/import", files=_upload(b"plain text"))
        assert response.status_code == 400
        assert "does not appear to be an XLSX" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_import_unreadable_workbook(self, client: AsyncClient, memory_store) -> None:
        """A zip that is not a workbook is rejected and recorded as failed."""
        response = await client.post("/api/catalog/import", files=_upload(b"PK\x03\x04broken"))

        assert response.status_code == 400
        assert await memory_store.count_records() == 0
        history = await client.get("/api/catalog/imports")
        assert history.json()[0]["status"] == "failed"

    @pytest.mark.asyncio
    async def test_import_too_large(self, client: AsyncClient, monkeypatch) -> None:
        monkeypatch.setenv("CATALOGBOX_STORAGE_MAX_UPLOAD_MB", "1")
        reset_settings()
        content = b"PK\x03\x04" + b"\0" * (1024 * 1024 + 1)

        response = await client.post("/api/catalog/import", files=_upload(content))

        assert response.status_code == 413

    @pytest.mark.asyncio
    async def test_import_store_failure(self, client: AsyncClient, memory_store, monkeypatch) -> None:
        async def failing(code, attributes):
            raise StoreWriteError("duplicate key")

        monkeypatch.setattr(memory_store, "replace_attributes", failing)

        response = await client.post("/api/catalog/import", files=_upload(build_xlsx(SAMPLE_ROWS)))

        assert response.status_code == 500
        assert "Import was not saved" in response.json()["detail"]
        assert await memory_store.count_records() == 0


class TestExportEndpoint:
    """Tests for GET /api/catalog/export."""

    @pytest.mark.asyncio
    async def test_export_download(self, client: AsyncClient) -> None:
        await client.post("/api/catalog/import", files=_upload(build_xlsx(SAMPLE_ROWS)))

        response = await client.get("/api/catalog/export")

        assert response.status_code == 200
        assert response.headers["content-type"] == XLSX_CONTENT_TYPE
        disposition = response.headers["content-disposition"]
        assert disposition.startswith("attachment; filename=catalogbox_products_")
        assert disposition.endswith(".xlsx")
        assert read_xlsx(response.content) == [
            ["Código de Barras", "Produto", "Nome", "Preço"],
            ["7891234567890", "CAF-01", "Café", "19.9"],
            ["7890000000001", "DET-02", "Detergente", "2.49"],
        ]
        assert load_workbook(io.BytesIO(response.content)).active.title == "Produtos"

    @pytest.mark.asyncio
    async def test_export_empty_catalog(self, client: AsyncClient) -> None:
        response = await client.get("/api/catalog/export")
        assert response.status_code == 200
        assert read_xlsx(response.content) in ([], [[None]])


class TestProductEndpoints:
    """Tests for header, product and history endpoints."""

    @pytest.mark.asyncio
    async def test_list_headers(self, client: AsyncClient) -> None:
        await client.post("/api/catalog/import", files=_upload(build_xlsx(SAMPLE_ROWS)))

        response = await client.get("/api/catalog/headers")

        assert response.status_code == 200
        assert response.json()[1] == {"position": 1, "raw_header": "Produto", "key": "sku"}

    @pytest.mark.asyncio
    async def test_list_products(self, client: AsyncClient) -> None:
        await client.post("/api/catalog/import", files=_upload(build_xlsx(SAMPLE_ROWS)))

        response = await client.get("/api/catalog/products")
        assert [p["code"] for p in response.json()] == ["CAF-01", "DET-02"]

        response = await client.get("/api/catalog/products", params={"skip": 1, "limit": 1})
        assert [p["code"] for p in response.json()] == ["DET-02"]

    @pytest.mark.asyncio
    async def test_get_product(self, client: AsyncClient) -> None:
        await client.post("/api/catalog/import", files=_upload(build_xlsx(SAMPLE_ROWS)))

        response = await client.get("/api/catalog/products/CAF-01")

        assert response.status_code == 200
        data = response.json()
        assert data["record"]["name"] == "Café"
        assert data["attributes"] == {
            "ean": "7891234567890",
            "sku": "CAF-01",
            "nome": "Café",
            "preco": "19.9",
        }

    @pytest.mark.asyncio
    async def test_get_missing_product(self, client: AsyncClient) -> None:
        response = await client.get("/api/catalog/products/NOPE")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_product(self, client: AsyncClient, memory_store) -> None:
        await client.post("/api/catalog/import", files=_upload(build_xlsx(SAMPLE_ROWS)))

        response = await client.delete("/api/catalog/products/CAF-01")
        assert response.status_code == 204
        assert await memory_store.get_record("CAF-01") is None

        response = await client.delete("/api/catalog/products/CAF-01")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_import_history(self, client: AsyncClient) -> None:
        await client.post(
            "/api/catalog/import", files=_upload(build_xlsx(SAMPLE_ROWS), filename="lista.xlsx")
        )

        response = await client.get("/api/catalog/imports")

        assert response.status_code == 200
        batches = response.json()
        assert len(batches) == 1
        assert batches[0]["filename"] == "lista.xlsx"
        assert batches[0]["status"] == "completed"
        assert batches[0]["records_stored"] == 2
