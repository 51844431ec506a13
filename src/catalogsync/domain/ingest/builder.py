"""Assemble a :class:`~catalogsync.domain.model.Catalog` from raw catalog markup."""

from __future__ import annotations

import asyncio
import re
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from logging import getLogger
from typing import Final

from catalogsync.config.ingest import DEFAULT_BATCH_SIZE, DEFAULT_CURRENCY
from catalogsync.domain.model import (
    Catalog,
    CatalogMetadata,
    Category,
    Product,
    ProductAttribute,
)

from .document import CATALOG_ROOT, DOCUMENT_DATE_FORMAT, parse_document
from .normalizers import (
    normalize_availability,
    normalize_old_price,
    normalize_params,
    normalize_price,
    normalize_string_list,
    normalize_text,
)
from .schema import CatalogRootAttributes, ShopHeader
from .structure import ResolvedStructure, find_categories, find_offers, resolve_structure
from .tree import RawNode, RawRecord, attribute, first_present

log = getLogger(__name__)

type ProgressCallback = Callable[[int, int], None]
type IdFactory = Callable[[], str]
type Clock = Callable[[], datetime]

UNKNOWN_SHOP: Final[str] = "Unknown Shop"
UNKNOWN_PRODUCT: Final[str] = "Unknown Product"
PRODUCT_ID_NAMESPACE: Final[uuid.UUID] = uuid.uuid5(uuid.NAMESPACE_URL, "catalogsync:product")

DEFAULT_FIELD_SOURCES: Final[Mapping[str, tuple[str, ...]]] = {
    "id": ("@_id", "id"),
    "name": ("name", "n", "title"),
    "description": ("description", "desc"),
    "price": ("price",),
    "old_price": ("oldprice", "old_price"),
    "currency": ("currencyId", "currency"),
    "category_id": ("categoryId", "category_id"),
    "url": ("url",),
    "pictures": ("picture", "pictures", "images", "image"),
    "vendor": ("vendor", "brand"),
    "vendor_code": ("vendorCode", "vendor_code", "article"),
    "attributes": ("param", "params", "attributes"),
}

_WHITESPACE = re.compile(r"\s+")
_CANONICAL_UUID = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE
)


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _is_uuid(value: str | None) -> bool:
    """Only the hyphenated 8-4-4-4-12 form counts as a UUID."""
    if not value:
        return False
    return _CANONICAL_UUID.fullmatch(value) is not None


@dataclass(slots=True, kw_only=True, frozen=True)
class BuildOptions:
    """Knobs for one build.

    ``identity_scope`` fixes the namespace of product ids; it defaults to the source
    URL, then the display name, so refreshing a catalog from another location can
    keep its ids. ``field_mapping`` maps a canonical product field to a raw key
    tried before the built-in sources, for feeds using their own naming. ``id_factory``
    and ``clock`` supply fresh category/catalog ids and timestamps.
    """

    default_currency: str = DEFAULT_CURRENCY
    identity_scope: str | None = None
    field_mapping: Mapping[str, str] = field(default_factory=dict[str, str])
    id_factory: IdFactory = _new_id
    clock: Clock = _utcnow

    def __post_init__(self) -> None:
        unknown = sorted(set(self.field_mapping) - set(DEFAULT_FIELD_SOURCES))
        if unknown:
            raise ValueError(f"Unknown product field(s) in field mapping: {', '.join(unknown)}")

    def sources(self, field_name: str) -> tuple[str, ...]:
        defaults = DEFAULT_FIELD_SOURCES[field_name]
        override = self.field_mapping.get(field_name)
        return (override, *defaults) if override else defaults


@dataclass(slots=True)
class ExternalIdRegistry:
    """External ids handed out during one build; collisions get ``_1``, ``_2``, ... suffixes."""

    _claimed: set[str] = field(default_factory=set[str])

    def claim(self, candidate: str) -> str:
        unique = candidate
        suffix = 0
        while unique in self._claimed:
            suffix += 1
            unique = f"{candidate}_{suffix}"
        if suffix:
            log.debug("External id %r already used, assigned %r", candidate, unique)
        self._claimed.add(unique)
        return unique


def product_id_for(scope: str, external_id: str) -> str:
    """Internal product id, stable for the same source and external id."""
    return str(uuid.uuid5(PRODUCT_ID_NAMESPACE, f"{scope}\x1f{external_id}"))


class _CatalogAssembler:
    def __init__(
        self,
        raw_document: str,
        display_name: str,
        source_url: str | None,
        options: BuildOptions,
    ) -> None:
        self.options = options
        self.display_name = display_name.strip()
        self.source_url = source_url
        self.now = options.clock()
        parsed = parse_document(raw_document, now=self.now)
        self.structure: ResolvedStructure = resolve_structure(parsed.tree)
        self.offers: list[RawRecord] = find_offers(self.structure.shop)
        self.scope = options.identity_scope or source_url or self.display_name
        self.registry = ExternalIdRegistry()
        self.products: list[Product] = []

    @property
    def total(self) -> int:
        return len(self.offers)

    def add_products(self, start: int, stop: int) -> None:
        for index in range(start, stop):
            self.products.append(self._product(index, self.offers[index]))

    def finish(self) -> Catalog:
        metadata = self._metadata()
        categories = self._categories()
        if not categories:
            categories = self._orphan_categories()
        catalog = Catalog(
            id=self.options.id_factory(),
            name=self.display_name or metadata.shop_name,
            metadata=metadata,
            categories=categories,
            products=self.products,
            date_created=self.now,
            date_modified=self.now,
        )
        log.info(
            "Built catalog %r via %s: %d product(s), %d categor(ies)",
            catalog.name,
            self.structure.path,
            len(catalog.products),
            len(catalog.categories),
        )
        return catalog

    def _first(self, record: RawRecord, field_name: str) -> RawNode:
        return first_present(record, *self.options.sources(field_name))

    def _text(self, record: RawRecord, field_name: str) -> str | None:
        return normalize_text(self._first(record, field_name)) or None

    def _metadata(self) -> CatalogMetadata:
        header = ShopHeader.model_validate(self.structure.shop)
        root = self.structure.root.get(CATALOG_ROOT)
        declared_date = (
            CatalogRootAttributes.model_validate(root).date if isinstance(root, dict) else None
        )
        return CatalogMetadata(
            shop_name=header.name or self.display_name or UNKNOWN_SHOP,
            company=header.company,
            source_url=self.source_url,
            shop_url=header.url,
            date=declared_date or self.now.strftime(DOCUMENT_DATE_FORMAT),
        )

    def _categories(self) -> list[Category]:
        declared: list[tuple[str | None, str, str | None]] = []
        for node in find_categories(self.structure.shop):
            if isinstance(node, dict):
                external_id = normalize_text(first_present(node, "@_id", "id")) or None
                name = normalize_text(first_present(node, "#text", "_", "name", "title", "text"))
                parent = normalize_text(first_present(node, "@_parentId", "parentId", "parent_id"))
            else:
                external_id, name, parent = None, normalize_text(node), ""
            if not name and external_id is None:
                continue
            declared.append((external_id, name or f"Category {external_id}", parent or None))

        internal_ids: dict[str, str] = {}
        assigned: list[str] = []
        for external_id, _, _ in declared:
            internal = external_id if _is_uuid(external_id) else self.options.id_factory()
            assigned.append(internal)
            if external_id is not None:
                internal_ids.setdefault(external_id, internal)

        categories: list[Category] = []
        for (external_id, name, parent), internal in zip(declared, assigned, strict=True):
            parent_id = internal_ids.get(parent) if parent else None
            if parent_id is None and _is_uuid(parent):
                parent_id = parent
            categories.append(
                Category(id=internal, external_id=external_id, name=name, parent_id=parent_id)
            )
        return categories

    def _orphan_categories(self) -> list[Category]:
        referenced = dict.fromkeys(
            product.category_id for product in self.products if product.category_id
        )
        if referenced:
            log.info(
                "No categories declared, synthesising %d from product references", len(referenced)
            )
        return [
            Category(id=self.options.id_factory(), external_id=ref, name=f"Category {ref}")
            for ref in referenced
        ]

    def _product_name(self, record: RawRecord) -> str:
        name = self._text(record, "name")
        if name:
            return name
        if "model" in record or attribute(record, "type") == "vendor.model":
            parts = (normalize_text(record.get(key)) for key in ("typePrefix", "vendor", "model"))
            composed = " ".join(part for part in parts if part)
            if composed:
                return composed
        return UNKNOWN_PRODUCT

    def _product(self, index: int, record: RawRecord) -> Product:
        name = self._product_name(record)
        declared_id = self._text(record, "id")
        if declared_id is None:
            declared_id = f"ext_{index}_{_WHITESPACE.sub('_', name[:20])}"
            log.debug("Offer #%d has no id, generated %r", index, declared_id)
        external_id = self.registry.claim(declared_id)
        product_id = product_id_for(self.scope, external_id)

        attributes = [
            ProductAttribute(id=f"{external_id}_param_{position}", name=attr_name, value=value)
            for position, (attr_name, value) in enumerate(
                normalize_params(self._first(record, "attributes"))
            )
        ]
        return Product(
            id=product_id,
            external_id=external_id,
            name=name,
            description=normalize_text(self._first(record, "description")),
            price=normalize_price(self._first(record, "price")),
            old_price=normalize_old_price(self._first(record, "old_price")),
            currency=self._text(record, "currency") or self.options.default_currency,
            category_id=self._text(record, "category_id"),
            url=self._text(record, "url"),
            pictures=normalize_string_list(self._first(record, "pictures")),
            vendor=self._text(record, "vendor"),
            vendor_code=self._text(record, "vendor_code"),
            available=normalize_availability(record),
            attributes=attributes,
            raw=dict(record),
        )


def build_catalog(
    raw_document: str,
    display_name: str,
    source_url: str | None = None,
    *,
    options: BuildOptions | None = None,
) -> Catalog:
    """Parse ``raw_document`` and build a catalog in one pass.

    Raises:
        MalformedDocumentError: the markup could not be parsed even after repair.
        StructureNotFoundError: no shop node or offer collection was found.
    """

    assembler = _CatalogAssembler(raw_document, display_name, source_url, options or BuildOptions())
    assembler.add_products(0, assembler.total)
    return assembler.finish()


async def build_catalog_batched(
    raw_document: str,
    display_name: str,
    source_url: str | None = None,
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
    on_progress: ProgressCallback | None = None,
    options: BuildOptions | None = None,
) -> Catalog:
    """Build like :func:`build_catalog`, yielding to the event loop between batches.

    Batches run one after another so generated external ids match the single-pass
    build. ``on_progress(processed, total)`` is called after every batch.
    """

    if batch_size < 1:
        raise ValueError(f"batch_size must be positive, got {batch_size}")

    assembler = _CatalogAssembler(raw_document, display_name, source_url, options or BuildOptions())
    total = assembler.total
    for start in range(0, total, batch_size):
        stop = min(start + batch_size, total)
        assembler.add_products(start, stop)
        log.debug("Processed %d/%d offers", stop, total)
        if on_progress is not None:
            on_progress(stop, total)
        await asyncio.sleep(0)
    return assembler.finish()
