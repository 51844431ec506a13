"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select

from catalogsync.adapters.sqlalchemy.codec import decode_catalog, encode_catalog
from catalogsync.adapters.sqlalchemy.mappings import CatalogSnapshot, catalog_snapshot_table

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from catalogsync.domain.model import Catalog


class SqlAlchemyCatalogRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Catalog) -> None:
        payload = encode_catalog(entity)
        snapshot = self.session.get(CatalogSnapshot, entity.id)
        if snapshot is None:
            self.session.add(
                CatalogSnapshot(
                    id=entity.id,
                    name=entity.name,
                    source_url=entity.metadata.source_url,
                    date_modified=entity.date_modified,
                    payload=payload,
                )
            )
            return
        snapshot.name = entity.name
        snapshot.source_url = entity.metadata.source_url
        snapshot.date_modified = entity.date_modified
        snapshot.payload = payload

    def get(self, catalog_id: str) -> Catalog | None:
        snapshot = self.session.get(CatalogSnapshot, catalog_id)
        return decode_catalog(snapshot.payload) if snapshot is not None else None

    def get_by_source_url(self, source_url: str) -> Catalog | None:
        stmt = (
            select(CatalogSnapshot)
            .where(catalog_snapshot_table.c.source_url == source_url)
            .order_by(catalog_snapshot_table.c.date_modified.desc())
            .limit(1)
        )
        snapshot = self.session.execute(stmt).scalar_one_or_none()
        return decode_catalog(snapshot.payload) if snapshot is not None else None

    def list_all(self) -> list[Catalog]:
        stmt = select(CatalogSnapshot).order_by(catalog_snapshot_table.c.date_modified.desc())
        return [decode_catalog(snapshot.payload) for snapshot in self.session.scalars(stmt)]
