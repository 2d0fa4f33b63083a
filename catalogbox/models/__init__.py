"""MongoDB document models for CatalogBox."""

from catalogbox.models.catalog_header import CatalogHeader
from catalogbox.models.import_batch import ImportBatch
from catalogbox.models.product import Product, ProductAttribute

__all__ = [
    "CatalogHeader",
    "ImportBatch",
    "Product",
    "ProductAttribute",
]
