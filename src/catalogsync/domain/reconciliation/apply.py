"""Apply operator-approved differences onto the previously imported catalog.

Every approved change is planned before the first mutation, so a failure while
planning leaves the catalog untouched.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, cast

from .contracts import DiffKind, ProductField
from .diff import attribute_signature

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from catalogsync.domain.model import Catalog, Category, Product, ProductAttribute

    from .contracts import FieldSelection, ProductDiff

log = getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True, frozen=True)
class _FieldUpdate:
    target: Product
    product_field: ProductField
    value: object


def _set_field(update: _FieldUpdate) -> None:
    target = update.target
    match update.product_field:
        case ProductField.NAME:
            target.name = cast(str, update.value)
        case ProductField.DESCRIPTION:
            target.description = cast(str, update.value)
        case ProductField.PRICE:
            target.price = cast(float, update.value)
        case ProductField.AVAILABLE:
            target.available = cast(bool, update.value)
        case ProductField.ATTRIBUTES:
            incoming = cast("list[ProductAttribute]", update.value)
            present = set(attribute_signature(target.attributes))
            for attribute in incoming:
                key = (attribute.name, attribute.value)
                if key not in present:
                    target.attributes.append(copy.deepcopy(attribute))
                    present.add(key)


def _plan(
    old: Catalog,
    diffs: Iterable[ProductDiff],
    field_selection: FieldSelection,
) -> tuple[list[_FieldUpdate], list[Product], int]:
    old_by_id = old.product_by_id()
    present = set(old_by_id)
    updates: list[_FieldUpdate] = []
    additions: list[Product] = []
    skipped = 0

    for diff in diffs:
        approved = field_selection.get(diff.product_id)
        if approved is None:
            continue
        if diff.kind is DiffKind.NEW:
            if diff.product_id in present:
                skipped += 1
                continue
            additions.append(copy.deepcopy(diff.new_product))
            present.add(diff.product_id)
            continue

        target = old_by_id.get(diff.product_id)
        if target is None:
            log.debug("Approved change for unknown product %s ignored", diff.product_id)
            skipped += 1
            continue
        approved_fields = {str(name) for name in approved}
        updates.extend(
            _FieldUpdate(target=target, product_field=product_field, value=change.new)
            for product_field, change in diff.changes.items()
            if product_field in approved_fields
        )
    return updates, additions, skipped


def apply_diff(
    old: Catalog,
    diffs: Iterable[ProductDiff],
    field_selection: FieldSelection,
    new_categories: Iterable[Category],
    *,
    clock: Callable[[], datetime] = _utcnow,
) -> Catalog:
    """Copy the approved fields onto ``old`` in place and return it.

    Approved attribute changes add the new ``(name, value)`` pairs to the existing
    attributes instead of replacing them. Approved new products are appended. The
    category list is replaced by ``new_categories``; metadata, including the
    source URL, is kept. Ids that are unknown or already present are skipped.
    """

    updates, additions, skipped = _plan(old, diffs, field_selection)
    categories = copy.deepcopy(list(new_categories))

    for update in updates:
        _set_field(update)
    old.products.extend(additions)
    old.categories = categories
    old.date_modified = clock()

    log.info(
        "Applied refresh: %d field update(s), %d new product(s), %d skipped",
        len(updates),
        len(additions),
        skipped,
    )
    return old


def select_all(diffs: Iterable[ProductDiff]) -> dict[str, set[str]]:
    """Approve every change and every new product in ``diffs``."""
    return {diff.product_id: {str(name) for name in diff.changes} for diff in diffs}
