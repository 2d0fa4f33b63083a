"""ImportBatch document model for tracking spreadsheet imports."""

from datetime import datetime, timezone

from beanie import Document
from pydantic import Field

from catalogbox.schemas.catalog import ImportBatchStatus, ImportMode


class ImportBatch(Document):
    """History entry for one run of the import pipeline."""

    filename: str
    mode: ImportMode
    status: ImportBatchStatus
    imported_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Processing results
    records_stored: int = 0
    rows_read: int = 0
    rows_skipped: int = 0
    duplicates_dropped: int = 0
    errors: list[str] = Field(default_factory=list)

    class Settings:
        name = "import_batches"
