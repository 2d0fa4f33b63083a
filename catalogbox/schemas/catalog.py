"""Pydantic schemas for catalog records, header layout and import results."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class ImportMode(str, Enum):
    """How an import treats the data already in the store."""

    OVERWRITE = "overwrite"
    APPEND = "append"


class CanonicalField(str, Enum):
    """Well-known product fields a spreadsheet column can back."""

    IDENTIFIER = "identifier"
    NAME = "name"
    DESCRIPTION = "description"
    CATEGORY = "category"
    UNIT = "unit"


class CatalogRecord(BaseModel):
    """One catalog entry, keyed by its product code."""

    code: str
    name: str
    description: str | None = None
    category: str | None = None
    unit: str | None = None

    @field_validator("code")
    @classmethod
    def code_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Product code cannot be blank")
        return v


class HeaderColumn(BaseModel):
    """One entry of the persisted export layout.

    `raw_header` is the text exactly as it appeared in the header row;
    `key` is the deduplicated canonical key the attributes were stored under.
    """

    position: int = Field(ge=0)
    raw_header: str
    key: str


class ImportSummary(BaseModel):
    """Outcome of one import batch."""

    mode: ImportMode
    records_stored: int = 0
    rows_read: int = 0
    rows_skipped: int = 0
    duplicates_dropped: int = 0
    identifier_fallback: bool = False
    headers: list[HeaderColumn] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class ImportBatchStatus(str, Enum):
    """Final status of an import batch."""

    COMPLETED = "completed"
    FAILED = "failed"


class ImportBatchRecord(BaseModel):
    """History entry for an import batch."""

    filename: str
    mode: ImportMode
    status: ImportBatchStatus
    imported_at: datetime
    records_stored: int = 0
    rows_read: int = 0
    rows_skipped: int = 0
    duplicates_dropped: int = 0
    errors: list[str] = Field(default_factory=list)


class ProductDetailResponse(BaseModel):
    """A catalog record with its full attribute map."""

    record: CatalogRecord
    attributes: dict[str, str | None]
