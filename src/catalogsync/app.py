"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
import dataclasses
from dataclasses import dataclass
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import unquote, urlparse

from catalogsync.adapters.http_fetch import HttpDocumentFetcher
from catalogsync.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork, is_started, startup
from catalogsync.adapters.yml import render_catalog
from catalogsync.config import ImportConfig, get_import_config
from catalogsync.domain.deduplication import (
    DuplicatesAnalysis,
    analyze_duplicates,
    merge_duplicates,
)
from catalogsync.domain.ingest import (
    BuildOptions,
    build_catalog,
    build_catalog_batched,
    decode_document,
)
from catalogsync.domain.ports.unit_of_work import CatalogUnitOfWork
from catalogsync.domain.reconciliation import RuleSet, apply_diff, diff_catalogs

if TYPE_CHECKING:
    from collections.abc import Iterable

    from catalogsync.domain.model import Catalog
    from catalogsync.domain.ports.fetching import DocumentFetcher
    from catalogsync.domain.reconciliation import FieldSelection, ProductDiff

UnitOfWorkFactory = Callable[[], CatalogUnitOfWork]


log = getLogger(__name__)


class CatalogNotFoundError(LookupError):
    """Raised when no stored catalog has the requested id."""


@dataclass(slots=True, kw_only=True)
class RefreshPreview:
    old: Catalog
    new: Catalog
    diffs: list[ProductDiff]


def _default_unit_of_work_factory() -> UnitOfWorkFactory:
    if not is_started():
        startup()
    return SqlAlchemyUnitOfWork


def read_document(
    source: str,
    *,
    fetcher: DocumentFetcher | None = None,
) -> tuple[bytes, str]:
    """Return the document bytes and the URL they were read from.

    ``source`` is an ``http(s)://`` URL, a ``file://`` URI or a filesystem path.
    """

    parsed = urlparse(source)
    if parsed.scheme in {"http", "https"}:
        return (fetcher or HttpDocumentFetcher())(source), source
    path = Path(unquote(parsed.path)) if parsed.scheme == "file" else Path(source)
    resolved = path.expanduser().resolve()
    return resolved.read_bytes(), resolved.as_uri()


def _default_display_name(source_url: str) -> str:
    parsed = urlparse(source_url)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path)).stem
    return parsed.netloc or source_url


def _log_progress(processed: int, total: int) -> None:
    log.info("Imported %d/%d offers", processed, total)


def load_catalog(
    source: str,
    *,
    display_name: str | None = None,
    identity_scope: str | None = None,
    fetcher: DocumentFetcher | None = None,
    config: ImportConfig | None = None,
) -> Catalog:
    """Read and build a catalog without storing it.

    Documents larger than ``config.large_document_bytes`` go through the batched
    builder.
    """

    effective_config = config or get_import_config()
    data, source_url = read_document(source, fetcher=fetcher)
    name = display_name or _default_display_name(source_url)
    text = decode_document(data)
    options = BuildOptions(
        default_currency=effective_config.default_currency,
        identity_scope=identity_scope,
    )
    if effective_config.is_large(len(data)):
        log.info("Document is %d bytes, building in batches", len(data))
        return asyncio.run(
            build_catalog_batched(
                text,
                name,
                source_url,
                batch_size=effective_config.batch_size,
                on_progress=_log_progress,
                options=options,
            )
        )
    return build_catalog(text, name, source_url, options=options)


def _get_catalog(uow: CatalogUnitOfWork, catalog_id: str) -> Catalog:
    catalog = uow.repositories.catalogs.get(catalog_id)
    if catalog is None:
        raise CatalogNotFoundError(f"No catalog with id {catalog_id}")
    return catalog


def import_catalog(
    source: str,
    *,
    display_name: str | None = None,
    fetcher: DocumentFetcher | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: ImportConfig | None = None,
) -> Catalog:
    """Build a catalog from ``source`` and store it.

    A source that was imported before keeps its catalog id and creation date, so
    the new snapshot replaces the stored one.
    """

    effective_uow = unit_of_work_factory or _default_unit_of_work_factory()
    log.info("Starting import: source=%s", source)
    catalog = load_catalog(source, display_name=display_name, fetcher=fetcher, config=config)
    with effective_uow() as uow:
        source_url = catalog.metadata.source_url
        existing = uow.repositories.catalogs.get_by_source_url(source_url) if source_url else None
        if existing is not None:
            log.info("Re-importing %s into catalog %s", source_url, existing.id)
            catalog = dataclasses.replace(
                catalog, id=existing.id, date_created=existing.date_created
            )
        uow.repositories.catalogs.add(catalog)
        uow.commit()
    log.info("Finished import: id=%s, products=%d", catalog.id, len(catalog.products))
    return catalog


def list_catalogs(*, unit_of_work_factory: UnitOfWorkFactory | None = None) -> list[Catalog]:
    effective_uow = unit_of_work_factory or _default_unit_of_work_factory()
    with effective_uow() as uow:
        return uow.repositories.catalogs.list_all()


def analyze_catalog_duplicates(
    catalog_id: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> DuplicatesAnalysis:
    effective_uow = unit_of_work_factory or _default_unit_of_work_factory()
    with effective_uow() as uow:
        catalog = _get_catalog(uow, catalog_id)
    return analyze_duplicates(catalog)


def merge_catalog_duplicates(
    catalog_id: str,
    *,
    attribute_names: Iterable[str] | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> Catalog:
    """Merge duplicate listings of a stored catalog and store the result in its place."""

    effective_uow = unit_of_work_factory or _default_unit_of_work_factory()
    with effective_uow() as uow:
        catalog = _get_catalog(uow, catalog_id)
        merged = merge_duplicates(catalog, attribute_names)
        uow.repositories.catalogs.add(merged)
        uow.commit()
    return merged


def preview_refresh(
    catalog_id: str,
    *,
    source: str | None = None,
    rules: RuleSet | None = None,
    fetcher: DocumentFetcher | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: ImportConfig | None = None,
) -> RefreshPreview:
    """Re-read a stored catalog's source and compute the differences.

    ``source`` defaults to the URL the catalog was originally read from. Product
    ids are derived in the stored catalog's scope so unchanged items line up.
    """

    effective_uow = unit_of_work_factory or _default_unit_of_work_factory()
    with effective_uow() as uow:
        old = _get_catalog(uow, catalog_id)

    effective_source = source or old.metadata.source_url
    if not effective_source:
        raise ValueError(f"Catalog {catalog_id} has no source URL, pass a source explicitly")

    new = load_catalog(
        effective_source,
        display_name=old.name,
        identity_scope=old.metadata.source_url or old.name,
        fetcher=fetcher,
        config=config,
    )
    diffs = diff_catalogs(old, new, rules)
    return RefreshPreview(old=old, new=new, diffs=diffs)


def apply_refresh(
    preview: RefreshPreview,
    field_selection: FieldSelection,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> Catalog:
    """Apply the approved part of ``preview`` and store the updated catalog."""

    effective_uow = unit_of_work_factory or _default_unit_of_work_factory()
    updated = apply_diff(preview.old, preview.diffs, field_selection, preview.new.categories)
    with effective_uow() as uow:
        uow.repositories.catalogs.add(updated)
        uow.commit()
    return updated


def export_catalog(
    catalog_id: str,
    *,
    destination: Path | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> str:
    """Render a stored catalog as YML, writing it to ``destination`` when given."""

    effective_uow = unit_of_work_factory or _default_unit_of_work_factory()
    with effective_uow() as uow:
        catalog = _get_catalog(uow, catalog_id)
    markup = render_catalog(catalog)
    if destination is not None:
        destination.write_text(markup, encoding="utf-8")
        log.info("Wrote %s", destination)
    return markup
