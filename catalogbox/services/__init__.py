"""Services for CatalogBox application."""

from catalogbox.services.export_service import export_catalog_to_file, export_catalog_to_xlsx
from catalogbox.services.file_storage import CatalogFileStorage
from catalogbox.services.xlsx_import import import_catalog

__all__ = ["CatalogFileStorage", "export_catalog_to_file", "export_catalog_to_xlsx", "import_catalog"]
