"""API routers for CatalogBox."""

from catalogbox.routers import catalog

__all__ = ["catalog"]
