"""Workbook file storage: upload checks, import archive and saved exports."""

import logging
from datetime import datetime
from pathlib import Path

import aiofiles

from catalogbox.config import settings

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".xlsx"}

# XLSX is a ZIP container: local file header signature
XLSX_MAGIC = b"PK\x03\x04"


class InvalidFileTypeError(Exception):
    """Raised when an upload does not look like an XLSX workbook."""

    pass


class FileSizeExceededError(Exception):
    """Raised when an upload exceeds the size limit."""

    pass


def is_xlsx_content(content: bytes) -> bool:
    """Check the ZIP magic bytes every XLSX file starts with."""
    return content[: len(XLSX_MAGIC)] == XLSX_MAGIC


def validate_extension(filename: str | None) -> str:
    """Validate and return the upload's extension.

    Raises:
        InvalidFileTypeError: If the extension is not .xlsx.
    """
    ext = Path(filename or "").suffix.lower()
    if ext not in ALLOWED_EXTENSIONS:
        shown = ext or "(none)"
        raise InvalidFileTypeError(f"Unsupported file type '{shown}'. Allowed: XLSX")
    return ext


def validate_upload(filename: str | None, content: bytes, max_size_bytes: int | None = None) -> None:
    """Check extension, size and magic bytes of an uploaded workbook.

    Raises:
        InvalidFileTypeError: Wrong extension or not a ZIP container.
        FileSizeExceededError: Larger than ``max_size_bytes``.
    """
    validate_extension(filename)
    limit = max_size_bytes if max_size_bytes is not None else settings.max_upload_size_bytes
    if len(content) > limit:
        raise FileSizeExceededError(
            f"File size exceeds maximum allowed size of {limit / (1024 * 1024):.1f} MB"
        )
    if not is_xlsx_content(content):
        raise InvalidFileTypeError("Invalid file content. File does not appear to be an XLSX workbook.")


class CatalogFileStorage:
    """Keeps timestamped copies of imported and exported workbooks."""

    def __init__(
        self,
        import_dir: Path | None = None,
        export_dir: Path | None = None,
    ) -> None:
        """Initialize the storage.

        Args:
            import_dir: Directory for archived imports. Defaults to config setting.
            export_dir: Directory for saved exports. Defaults to config setting.
        """
        self.import_dir = Path(import_dir or settings.import_dir)
        self.export_dir = Path(export_dir or settings.export_dir)

    @staticmethod
    def _unique_path(directory: Path, stem: str, when: datetime) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        base = f"{stem}_{when.strftime('%Y%m%d%H%M%S')}"
        path = directory / f"{base}.xlsx"
        counter = 2
        while path.exists():
            path = directory / f"{base}_{counter}.xlsx"
            counter += 1
        return path

    async def _write(self, path: Path, content: bytes) -> Path:
        async with aiofiles.open(path, "wb") as f:
            await f.write(content)
        logger.info("Wrote %d bytes to %s", len(content), path)
        return path

    async def archive_import(self, content: bytes, when: datetime | None = None) -> Path:
        """Save the raw bytes of an imported workbook.

        Returns:
            Path of the archived copy, ``product_import_<timestamp>.xlsx``.
        """
        path = self._unique_path(self.import_dir, "product_import", when or datetime.now())
        return await self._write(path, content)

    async def save_export(self, content: bytes, when: datetime | None = None) -> Path:
        """Save an exported workbook.

        Returns:
            Path of the file, ``products_<timestamp>.xlsx``.
        """
        path = self._unique_path(self.export_dir, "products", when or datetime.now())
        return await self._write(path, content)
