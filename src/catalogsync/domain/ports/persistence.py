"""Ports for persisting catalog snapshots."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from catalogsync.domain.model import Catalog


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class CatalogRepository(Repository["Catalog"], Protocol):
    """Stores whole catalogs; ``add`` replaces an existing catalog with the same id."""

    def get(self, catalog_id: str) -> Catalog | None: ...

    def get_by_source_url(self, source_url: str) -> Catalog | None: ...

    def list_all(self) -> list[Catalog]: ...
