"""Pydantic models for CatalogBox configuration.

These models define the structure of the config.toml file.
"""

from pathlib import Path

from pydantic import BaseModel, Field


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = "127.0.0.1"
    port: int = 8000
    # Store locks are per process
    workers: int = 1
    # CORS configuration - empty list means same-origin only
    cors_origins: list[str] = []


class DatabaseConfig(BaseModel):
    """MongoDB database configuration."""

    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_database: str = "catalogbox"
    # Connection pool settings
    min_pool_size: int = 10
    max_pool_size: int = 100
    # Multi-document transactions need a replica set
    use_transactions: bool = False


class StorageConfig(BaseModel):
    """File storage configuration."""

    data_dir: Path = Field(default_factory=lambda: Path("data"))
    max_upload_mb: int = 10
    archive_imports: bool = True

    @property
    def import_dir(self) -> Path:
        """Get the directory holding archived imported workbooks."""
        return self.data_dir / "import"

    @property
    def export_dir(self) -> Path:
        """Get the directory holding exported workbooks."""
        return self.data_dir / "export"

    @property
    def max_upload_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_mb * 1024 * 1024


class ImporterConfig(BaseModel):
    """Spreadsheet import/export engine configuration."""

    progress_interval: int = Field(default=100, ge=1)
    max_rows: int | None = Field(default=None, ge=1)
    synonyms_file: Path | None = None
    sheet_title: str = "Produtos"


class CatalogboxConfig(BaseModel):
    """Main CatalogBox configuration loaded from config.toml."""

    app_name: str = "CatalogBox"
    server: ServerConfig = Field(default_factory=ServerConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    importer: ImporterConfig = Field(default_factory=ImporterConfig)
