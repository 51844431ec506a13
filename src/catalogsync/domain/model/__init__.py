"""Canonical catalog model."""

from __future__ import annotations

from .catalog import (
    Catalog,
    CatalogMetadata,
    Category,
    MergeIdentityMap,
    Product,
    ProductAttribute,
)

__all__ = [
    "Catalog",
    "CatalogMetadata",
    "Category",
    "MergeIdentityMap",
    "Product",
    "ProductAttribute",
]
