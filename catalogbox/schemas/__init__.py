"""Pydantic schemas for CatalogBox."""

from catalogbox.schemas.catalog import (
    CanonicalField,
    CatalogRecord,
    HeaderColumn,
    ImportBatchRecord,
    ImportBatchStatus,
    ImportMode,
    ImportSummary,
    ProductDetailResponse,
)

__all__ = [
    "CanonicalField",
    "CatalogRecord",
    "HeaderColumn",
    "ImportBatchRecord",
    "ImportBatchStatus",
    "ImportMode",
    "ImportSummary",
    "ProductDetailResponse",
]
