"""SQLAlchemy table metadata for catalog snapshots."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, Column, DateTime, Dialect, String, Table, TypeDecorator, orm

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


@dataclass(kw_only=True)
class CatalogSnapshot:
    """Stored form of one catalog: indexed header columns plus the encoded catalog."""

    id: str
    name: str
    source_url: str | None
    date_modified: datetime
    payload: dict[str, Any]


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "pk": "pk_%(table_name)s",
}

catalog_snapshot_table = Table(
    "catalog_snapshot",
    mapper_registry.metadata,
    Column("id", String, primary_key=True),
    Column("name", String, nullable=False),
    Column("source_url", String, nullable=True, index=True),
    Column("date_modified", UTCDateTime(), nullable=False),
    Column("payload", JSON, nullable=False),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for snapshot records."""

    log.info("Starting SQLAlchemy mappers")
    mapper_registry.map_imperatively(CatalogSnapshot, catalog_snapshot_table)
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
