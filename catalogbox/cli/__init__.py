"""Command line tools for CatalogBox."""
