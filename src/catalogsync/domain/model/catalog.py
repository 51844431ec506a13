"""Canonical catalog aggregates produced by ingestion."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime  # noqa: TC003
from typing import Any

type MergeIdentityMap = dict[str, str]


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True, kw_only=True)
class ProductAttribute:
    id: str
    name: str
    value: str


@dataclass(slots=True, kw_only=True)
class Category:
    id: str
    name: str
    external_id: str | None = None
    parent_id: str | None = None

    @property
    def reference(self) -> str:
        """Identifier products use to point at this category."""
        return self.external_id or self.id


@dataclass(slots=True, kw_only=True)
class Product:
    """One sellable listing.

    ``generated_*`` fields are overlays written by external enrichment. They never
    replace the source values; exports prefer them when present.
    """

    id: str
    external_id: str
    name: str
    description: str = ""
    price: float = 0.0
    old_price: float | None = None
    currency: str = "RUB"
    category_id: str | None = None
    url: str | None = None
    pictures: list[str] = field(default_factory=list[str])
    vendor: str | None = None
    vendor_code: str | None = None
    available: bool = True
    attributes: list[ProductAttribute] = field(default_factory=list["ProductAttribute"])
    generated_name: str | None = None
    generated_description: str | None = None
    generated_url: str | None = None
    merged_from_variants: int | None = None
    merged_attribute_names: list[str] | None = None
    merged_sizes: list[str] | None = None
    merged_colors: list[str] | None = None
    include_in_export: bool = True
    raw: dict[str, Any] = field(default_factory=dict[str, Any])

    @property
    def export_name(self) -> str:
        return self.generated_name or self.name

    @property
    def export_description(self) -> str:
        return self.generated_description or self.description

    @property
    def export_url(self) -> str | None:
        return self.url or self.generated_url

    @property
    def grouping_key(self) -> str | None:
        """Listings sharing this key are variants of one product."""
        return self.url or self.generated_url or None


@dataclass(slots=True, kw_only=True)
class CatalogMetadata:
    shop_name: str
    company: str | None = None
    source_url: str | None = None
    shop_url: str | None = None
    date: str | None = None
    merged_id_map: dict[str, str] = field(default_factory=dict[str, str])


@dataclass(slots=True, kw_only=True)
class Catalog:
    id: str
    name: str
    metadata: CatalogMetadata
    categories: list[Category] = field(default_factory=list["Category"])
    products: list[Product] = field(default_factory=list["Product"])
    date_created: datetime = field(default_factory=_utcnow)
    date_modified: datetime = field(default_factory=_utcnow)
    version: str = "1.0"
    source: str = "xml"

    def product_by_id(self) -> dict[str, Product]:
        return {product.id: product for product in self.products}

    def category_for(self, product: Product) -> Category | None:
        if product.category_id is None:
            return None
        for category in self.categories:
            if product.category_id in (category.id, category.external_id):
                return category
        return None
