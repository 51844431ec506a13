"""Field-level comparison of two catalog snapshots."""

from __future__ import annotations

import copy
from logging import getLogger
from typing import TYPE_CHECKING

from .contracts import DiffKind, FieldChange, ProductDiff, ProductField, RuleSet

if TYPE_CHECKING:
    from collections.abc import Iterable

    from catalogsync.domain.model import Catalog, MergeIdentityMap, Product, ProductAttribute

log = getLogger(__name__)


def attribute_signature(attributes: Iterable[ProductAttribute]) -> tuple[tuple[str, str], ...]:
    """Order-independent identity of an attribute list."""
    return tuple(sorted((attribute.name, attribute.value) for attribute in attributes))


def _field_value(product: Product, product_field: ProductField) -> object:
    match product_field:
        case ProductField.NAME:
            return product.name
        case ProductField.DESCRIPTION:
            return product.description
        case ProductField.PRICE:
            return product.price
        case ProductField.AVAILABLE:
            return product.available
        case ProductField.ATTRIBUTES:
            return copy.deepcopy(product.attributes)


def compare_products(
    old: Product, new: Product, rules: RuleSet
) -> dict[ProductField, FieldChange]:
    changes: dict[ProductField, FieldChange] = {}
    for product_field in rules.compared_fields():
        if product_field is ProductField.ATTRIBUTES:
            differs = attribute_signature(old.attributes) != attribute_signature(new.attributes)
        else:
            differs = _field_value(old, product_field) != _field_value(new, product_field)
        if differs:
            changes[product_field] = FieldChange(
                old=_field_value(old, product_field),
                new=_field_value(new, product_field),
            )
    return changes


def diff_catalogs(
    old: Catalog,
    new: Catalog,
    rules: RuleSet | None = None,
    merge_map: MergeIdentityMap | None = None,
) -> list[ProductDiff]:
    """List products of ``new`` that are new or differ from ``old``.

    ``merge_map`` defaults to the map recorded on ``old`` by a previous merge; ids
    it folded away are not reported as new when they reappear. Entries follow the
    order of ``new``; products without differences are omitted.
    """

    effective_rules = rules or RuleSet()
    effective_map = old.metadata.merged_id_map if merge_map is None else merge_map
    old_by_id = old.product_by_id()

    diffs: list[ProductDiff] = []
    seen: set[str] = set()
    ignored = 0
    for product in new.products:
        if product.id in seen:
            continue
        seen.add(product.id)

        previous = old_by_id.get(product.id)
        if previous is None:
            if effective_rules.ignore_ids_in_merge_map and product.id in effective_map:
                ignored += 1
                continue
            if effective_rules.treat_new_as_new:
                diffs.append(
                    ProductDiff(product_id=product.id, kind=DiffKind.NEW, new_product=product)
                )
            continue

        changes = compare_products(previous, product, effective_rules)
        if changes:
            diffs.append(
                ProductDiff(
                    product_id=product.id,
                    kind=DiffKind.CHANGED,
                    new_product=product,
                    old_product=previous,
                    changes=changes,
                )
            )

    log.info(
        "Diff computed: %d new, %d changed, %d ignored as merged variants",
        sum(1 for diff in diffs if diff.kind is DiffKind.NEW),
        sum(1 for diff in diffs if diff.kind is DiffKind.CHANGED),
        ignored,
    )
    return diffs
