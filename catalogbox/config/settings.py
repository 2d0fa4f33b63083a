"""Global settings instance for CatalogBox.

The settings object provides a flat interface over the structured
configuration loaded from config.toml and environment variables.
"""

from pathlib import Path

from catalogbox.config.loader import load_config
from catalogbox.config.schema import CatalogboxConfig


class Settings:
    """Flat accessor over CatalogboxConfig."""

    def __init__(self, config: CatalogboxConfig | None = None):
        """Initialize settings.

        Args:
            config: Optional CatalogboxConfig instance. If not provided, loads from file.
        """
        self._config = config or load_config()

    @property
    def config(self) -> CatalogboxConfig:
        """Get the full configuration object."""
        return self._config

    # Application
    @property
    def app_name(self) -> str:
        return self._config.app_name

    # Server
    @property
    def host(self) -> str:
        return self._config.server.host

    @property
    def port(self) -> int:
        return self._config.server.port

    @property
    def workers(self) -> int:
        return self._config.server.workers

    @property
    def cors_origins(self) -> list[str]:
        return self._config.server.cors_origins

    # Database
    @property
    def mongodb_url(self) -> str:
        return self._config.database.mongodb_url

    @property
    def mongodb_database(self) -> str:
        return self._config.database.mongodb_database

    @property
    def min_pool_size(self) -> int:
        return self._config.database.min_pool_size

    @property
    def max_pool_size(self) -> int:
        return self._config.database.max_pool_size

    @property
    def use_transactions(self) -> bool:
        return self._config.database.use_transactions

    # Storage
    @property
    def data_dir(self) -> Path:
        return self._config.storage.data_dir

    @property
    def import_dir(self) -> Path:
        return self._config.storage.import_dir

    @property
    def export_dir(self) -> Path:
        return self._config.storage.export_dir

    @property
    def archive_imports(self) -> bool:
        return self._config.storage.archive_imports

    @property
    def max_upload_size_bytes(self) -> int:
        return self._config.storage.max_upload_bytes

    # Importer
    @property
    def progress_interval(self) -> int:
        return self._config.importer.progress_interval

    @property
    def max_rows(self) -> int | None:
        return self._config.importer.max_rows

    @property
    def synonyms_file(self) -> Path | None:
        return self._config.importer.synonyms_file

    @property
    def sheet_title(self) -> str:
        return self._config.importer.sheet_title


# Global settings instance - lazily initialized
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance.

    The settings are loaded once and cached for subsequent calls.

    Returns:
        The global Settings instance.
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset the global settings instance.

    This is primarily useful for testing to reload configuration.
    """
    global _settings
    _settings = None


class _SettingsProxy:
    """Proxy object that lazily loads settings on first access."""

    def __getattr__(self, name: str):
        return getattr(get_settings(), name)

    def __repr__(self) -> str:
        return repr(get_settings())


settings = _SettingsProxy()
