"""Configuration loader for CatalogBox.

Loads configuration from TOML files. Environment variables can override
any configuration value.
"""

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

from catalogbox.config.schema import CatalogboxConfig

logger = logging.getLogger(__name__)

# Keys coerced from environment strings
_INT_KEYS = ("port", "workers", "max_upload_mb", "min_pool_size", "max_pool_size",
             "progress_interval", "max_rows")
_BOOL_KEYS = ("use_transactions", "archive_imports")


def get_config_search_paths() -> list[Path]:
    """Get the list of paths to search for configuration files.

    Returns paths in priority order (first found wins):
    1. ./config.toml (project root - for development)
    2. ~/.config/catalogbox/config.toml (user config)
    3. /opt/catalogbox/config.toml (production install)
    4. /etc/catalogbox/config.toml (system config)
    """
    return [
        Path.cwd() / "config.toml",
        Path.home() / ".config" / "catalogbox" / "config.toml",
        Path("/opt/catalogbox/config.toml"),
        Path("/etc/catalogbox/config.toml"),
    ]


def find_config_file() -> Path | None:
    """Find the first existing config file from search paths."""
    for path in get_config_search_paths():
        if path.exists() and path.is_file():
            logger.debug("Found config file: %s", path)
            return path
    return None


def load_toml_file(path: Path) -> dict[str, Any]:
    """Load a TOML file and return its contents as a dictionary."""
    with open(path, "rb") as f:
        return tomllib.load(f)


def apply_env_overrides(config_dict: dict[str, Any], prefix: str = "CATALOGBOX") -> None:
    """Apply environment variable overrides to configuration dictionary.

    Environment variables are mapped as follows:
    - CATALOGBOX_SERVER_HOST -> config_dict["server"]["host"]
    - CATALOGBOX_DATABASE_MONGODB_URL -> config_dict["database"]["mongodb_url"]
    - etc.

    Note: This modifies config_dict in place.
    """
    env_mappings = {
        # Server
        f"{prefix}_SERVER_HOST": ("server", "host"),
        f"{prefix}_SERVER_PORT": ("server", "port"),
        f"{prefix}_SERVER_WORKERS": ("server", "workers"),
        f"{prefix}_HOST": ("server", "host"),  # Shorthand
        f"{prefix}_PORT": ("server", "port"),  # Shorthand
        # Database
        f"{prefix}_DATABASE_MONGODB_URL": ("database", "mongodb_url"),
        f"{prefix}_DATABASE_MONGODB_DATABASE": ("database", "mongodb_database"),
        f"{prefix}_DATABASE_USE_TRANSACTIONS": ("database", "use_transactions"),
        f"{prefix}_MONGODB_URL": ("database", "mongodb_url"),  # Shorthand
        f"{prefix}_MONGODB_DATABASE": ("database", "mongodb_database"),  # Shorthand
        # Storage
        f"{prefix}_STORAGE_DATA_DIR": ("storage", "data_dir"),
        f"{prefix}_STORAGE_MAX_UPLOAD_MB": ("storage", "max_upload_mb"),
        f"{prefix}_STORAGE_ARCHIVE_IMPORTS": ("storage", "archive_imports"),
        # Importer
        f"{prefix}_IMPORTER_PROGRESS_INTERVAL": ("importer", "progress_interval"),
        f"{prefix}_IMPORTER_MAX_ROWS": ("importer", "max_rows"),
        f"{prefix}_IMPORTER_SYNONYMS_FILE": ("importer", "synonyms_file"),
        f"{prefix}_IMPORTER_SHEET_TITLE": ("importer", "sheet_title"),
    }

    for env_var, path in env_mappings.items():
        value = os.environ.get(env_var)
        if value is not None:
            section, key = path

            # Ensure section exists
            if section not in config_dict:
                config_dict[section] = {}

            # Convert value to appropriate type
            if key in _INT_KEYS:
                config_dict[section][key] = int(value)
            elif key in _BOOL_KEYS:
                config_dict[section][key] = value.lower() in ("true", "1", "yes")
            else:
                config_dict[section][key] = value


def load_config(config_file: Path | None = None) -> CatalogboxConfig:
    """Load configuration from TOML file with environment variable overrides.

    Args:
        config_file: Optional path to config file. If not provided,
                     searches default locations.

    Returns:
        CatalogboxConfig instance with all settings loaded.
    """
    config_dict: dict[str, Any] = {}

    if config_file is None:
        config_file = find_config_file()

    if config_file and config_file.exists():
        logger.info("Loading config from: %s", config_file)
        config_dict = load_toml_file(config_file)
    else:
        logger.info("No config file found, using defaults with env overrides")

    apply_env_overrides(config_dict)

    return CatalogboxConfig(**config_dict)
