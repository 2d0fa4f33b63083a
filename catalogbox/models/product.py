"""Product and product attribute document models."""

from datetime import datetime, timezone
from typing import Optional

from beanie import Document, Indexed
from pydantic import Field
from pymongo import ASCENDING, IndexModel


class Product(Document):
    """A catalog product keyed by its code."""

    code: Indexed(str, unique=True)
    name: Indexed(str)
    description: Optional[str] = None
    category: Optional[str] = None
    unit: Optional[str] = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "products"

    def __repr__(self) -> str:
        return f"<Product(code={self.code}, name={self.name})>"


class ProductAttribute(Document):
    """One spreadsheet cell of a product, keyed by canonical header key."""

    product_code: Indexed(str)
    key: str
    value: Optional[str] = None  # Blank cells are stored as None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "product_attributes"
        indexes = [
            IndexModel(
                [("product_code", ASCENDING), ("key", ASCENDING)],
                unique=True,
            ),
        ]
