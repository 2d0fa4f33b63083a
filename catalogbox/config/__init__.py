"""CatalogBox configuration module.

This module provides TOML-based configuration with environment variable overrides.

Configuration is loaded from the following locations (in order of priority):
1. Environment variables (highest priority)
2. ./config.toml (project root - for development)
3. ~/.config/catalogbox/config.toml (user config)
4. /etc/catalogbox/config.toml (system config)
"""

from catalogbox.config.schema import (
    CatalogboxConfig,
    DatabaseConfig,
    ImporterConfig,
    ServerConfig,
    StorageConfig,
)
from catalogbox.config.settings import get_settings, reset_settings, settings

__all__ = [
    "CatalogboxConfig",
    "DatabaseConfig",
    "ImporterConfig",
    "ServerConfig",
    "StorageConfig",
    "get_settings",
    "reset_settings",
    "settings",
]
