"""Shared reconciliation contract components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Collection, Mapping

    from catalogsync.domain.model import Product


class DiffKind(StrEnum):
    NEW = "new"
    CHANGED = "changed"


class ProductField(StrEnum):
    """Product fields the reconciliation engine can compare and copy."""

    NAME = "name"
    DESCRIPTION = "description"
    PRICE = "price"
    AVAILABLE = "available"
    ATTRIBUTES = "attributes"


@dataclass(slots=True, frozen=True, kw_only=True)
class RuleSet:
    """Which fields are compared and how unmatched ids are reported."""

    compare_name: bool = False
    compare_description: bool = False
    compare_price: bool = True
    compare_availability: bool = True
    compare_attributes: bool = True
    treat_new_as_new: bool = True
    ignore_ids_in_merge_map: bool = True

    def compared_fields(self) -> tuple[ProductField, ...]:
        flags = (
            (self.compare_name, ProductField.NAME),
            (self.compare_description, ProductField.DESCRIPTION),
            (self.compare_price, ProductField.PRICE),
            (self.compare_availability, ProductField.AVAILABLE),
            (self.compare_attributes, ProductField.ATTRIBUTES),
        )
        return tuple(product_field for enabled, product_field in flags if enabled)


@dataclass(slots=True, frozen=True)
class FieldChange:
    old: object
    new: object


@dataclass(slots=True, kw_only=True)
class ProductDiff:
    """One product that is new or differs between two catalog snapshots."""

    product_id: str
    kind: DiffKind
    new_product: Product
    old_product: Product | None = None
    changes: dict[ProductField, FieldChange] = field(
        default_factory=dict["ProductField", "FieldChange"]
    )


type FieldSelection = Mapping[str, Collection[str]]
"""Operator approval per product id.

For changed products the collection names the approved fields. A new product is
approved by the presence of its id as a key.
"""
