"""CatalogHeader document model: the persisted export column layout."""

from beanie import Document, Indexed


class CatalogHeader(Document):
    """One column of the header order fixed by the last overwrite import."""

    position: Indexed(int, unique=True)
    raw_header: str  # Exactly as it appeared in the imported header row
    key: str  # Deduplicated canonical key used for attribute lookups

    class Settings:
        name = "catalog_headers"
