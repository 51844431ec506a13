"""SQLAlchemy adapter package for catalogsync."""

from __future__ import annotations

from .codec import decode_catalog, encode_catalog
from .mappings import (
    CatalogSnapshot,
    catalog_snapshot_table,
    create_all_tables,
    mapper_registry,
    start_mappers,
)
from .repositories import SqlAlchemyCatalogRepository
from .unit_of_work import SqlAlchemyUnitOfWork, StartupError, shutdown, startup

__all__ = [
    "CatalogSnapshot",
    "SqlAlchemyCatalogRepository",
    "SqlAlchemyUnitOfWork",
    "StartupError",
    "catalog_snapshot_table",
    "create_all_tables",
    "decode_catalog",
    "encode_catalog",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
