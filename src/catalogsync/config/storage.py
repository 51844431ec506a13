"""Location of the catalog snapshot database."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .errors import MissingConfigurationError

DATABASE_URI_ENV: Final[str] = "DATABASE_URI"
DATA_DIR_ENV: Final[str] = "CATALOGSYNC_DATA_DIR"
SNAPSHOT_DB_FILENAME: Final[str] = "catalogs.db"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str
    # Set when the snapshots live in a local SQLite file.
    path: Path | None = None


def _sqlite_file(path: Path) -> DatabaseConfig:
    resolved = path.expanduser().resolve()
    resolved.parent.mkdir(parents=True, exist_ok=True)
    return DatabaseConfig(uri=f"sqlite+pysqlite:///{resolved}", path=resolved)


def default_data_dir() -> Path:
    """``$CATALOGSYNC_DATA_DIR``, else ``catalogsync`` under the XDG data home."""

    explicit = (os.getenv(DATA_DIR_ENV) or "").strip()
    if explicit:
        return Path(explicit)
    data_home = (os.getenv("XDG_DATA_HOME") or "").strip()
    base = Path(data_home) if data_home else Path.home() / ".local" / "share"
    return base / "catalogsync"


def get_database_config() -> DatabaseConfig:
    """Resolve where catalog snapshots are stored.

    ``DATABASE_URI`` may hold a SQLAlchemy URL or a plain path to a SQLite file.
    Without it the snapshots go to ``catalogs.db`` in :func:`default_data_dir`,
    which is created on demand.
    """

    override = os.getenv(DATABASE_URI_ENV)
    if override is None:
        return _sqlite_file(default_data_dir() / SNAPSHOT_DB_FILENAME)
    value = override.strip()
    if not value:
        raise MissingConfigurationError(f"{DATABASE_URI_ENV} is set but blank")
    if "://" in value:
        return DatabaseConfig(uri=value)
    return _sqlite_file(Path(value))
