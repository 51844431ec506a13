"""Application configuration helpers."""

from __future__ import annotations

from .env import require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http import FetchConfig, RetryPolicy, get_fetch_config
from .ingest import ImportConfig, get_import_config
from .logging import configure_logging
from .storage import DatabaseConfig, default_data_dir, get_database_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "FetchConfig",
    "ImportConfig",
    "MissingConfigurationError",
    "RetryPolicy",
    "configure_logging",
    "default_data_dir",
    "get_database_config",
    "get_fetch_config",
    "get_import_config",
    "require_env_vars",
]
