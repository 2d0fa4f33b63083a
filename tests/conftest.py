"""Pytest configuration and fixtures for CatalogBox tests."""

import io
import os
import uuid
from collections.abc import AsyncGenerator
from typing import Any, Callable, Sequence

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from openpyxl import Workbook, load_workbook
from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from catalogbox.config import reset_settings
from catalogbox.store import MemoryCatalogStore, MongoCatalogStore, get_catalog_store

# MongoDB connection URL for store tests (can be overridden with env var)
TEST_MONGODB_URL = os.environ.get("TEST_MONGODB_URL", "mongodb://localhost:27017")

Rows = Sequence[Sequence[Any]]


def build_xlsx(
    rows: Rows,
    number_formats: dict[str, str] | None = None,
    title: str = "Sheet1",
) -> bytes:
    """Build an XLSX workbook in memory.

    Args:
        rows: Sheet rows, first row usually the headers. None leaves a cell empty.
        number_formats: Cell coordinate (e.g. "A2") -> number format code.
        title: Worksheet title.
    """
    wb = Workbook()
    ws = wb.active
    ws.title = title
    for row_idx, row in enumerate(rows, 1):
        for col_idx, value in enumerate(row, 1):
            if value is not None:
                ws.cell(row=row_idx, column=col_idx, value=value)
    for coordinate, number_format in (number_formats or {}).items():
        ws[coordinate].number_format = number_format
    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


def read_xlsx(content: bytes) -> list[list[Any]]:
    """Read every row of the first sheet as cell values."""
    wb = load_workbook(io.BytesIO(content))
    ws = wb.worksheets[0]
    return [list(row) for row in ws.iter_rows(values_only=True)]


@pytest.fixture
def xlsx() -> Callable[..., bytes]:
    """Factory building XLSX bytes from rows."""
    return build_xlsx


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point storage at a temp directory and reload settings for each test."""
    monkeypatch.setenv("CATALOGBOX_STORAGE_DATA_DIR", str(tmp_path / "data"))
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def memory_store() -> MemoryCatalogStore:
    """Empty in-memory catalog store."""
    return MemoryCatalogStore()


@pytest_asyncio.fixture(scope="function")
async def mongo_client() -> AsyncGenerator[AsyncMongoClient, None]:
    """MongoDB client for store tests; skips the test when no server answers."""
    client = AsyncMongoClient(TEST_MONGODB_URL, serverSelectionTimeoutMS=1000)
    try:
        await client.admin.command("ping")
    except PyMongoError:
        await client.close()
        pytest.skip(f"MongoDB not reachable at {TEST_MONGODB_URL}")
    yield client
    await client.close()


@pytest_asyncio.fixture(scope="function")
async def init_test_db(mongo_client):
    """Initialize Beanie with a unique test database, dropped after the test."""
    from catalogbox.database import init_db

    db_name = f"test_catalogbox_{uuid.uuid4().hex[:8]}"
    await init_db(mongodb_database=db_name, mongo_client=mongo_client)
    yield mongo_client[db_name]
    await mongo_client.drop_database(db_name)


@pytest_asyncio.fixture(scope="function")
async def mongo_store(init_test_db, mongo_client) -> MongoCatalogStore:
    """MongoCatalogStore on the test database."""
    return MongoCatalogStore(mongo_client)


@pytest_asyncio.fixture(scope="function")
async def client(memory_store) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client for the API with the store swapped for a MemoryCatalogStore."""
    from catalogbox.main import create_app

    app = create_app(use_lifespan=False)
    app.dependency_overrides[get_catalog_store] = lambda: memory_store

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
