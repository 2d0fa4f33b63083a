"""CatalogBox - dynamic-schema product catalog import and export."""

__version__ = "0.1.0"
