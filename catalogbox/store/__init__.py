"""Record store collaborators for the catalog import and export pipelines."""

from catalogbox.store.base import AttributeMap, CatalogStore
from catalogbox.store.memory import MemoryCatalogStore
from catalogbox.store.mongo import MongoCatalogStore

# Process-wide store; shared so its lock serialises imports and exports
_store: CatalogStore | None = None


def get_catalog_store() -> CatalogStore:
    """Get the application's catalog store (FastAPI dependency).

    Returns:
        A MongoCatalogStore bound to the client opened by ``init_db``.

    Raises:
        RuntimeError: If the database is not initialized.
    """
    global _store
    if _store is None:
        from catalogbox.config import settings
        from catalogbox.database import get_client

        _store = MongoCatalogStore(get_client(), use_transactions=settings.use_transactions)
    return _store


def reset_catalog_store() -> None:
    """Drop the cached store, e.g. after the database is closed."""
    global _store
    _store = None


__all__ = [
    "AttributeMap",
    "CatalogStore",
    "MemoryCatalogStore",
    "MongoCatalogStore",
    "get_catalog_store",
    "reset_catalog_store",
]
