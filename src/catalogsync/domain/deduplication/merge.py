"""Fold duplicate listings into one master product per group."""

from __future__ import annotations

import copy
import dataclasses
import re
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from logging import getLogger

from catalogsync.domain.model import Catalog, Product, ProductAttribute

from .analysis import ProductGroup, group_products, suggest_merge_attributes

log = getLogger(__name__)

_SPACES = re.compile(r"\s+")


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _combined_attribute_id(name: str) -> str:
    return "combined_" + _SPACES.sub("_", name.strip().lower())


def _merge_group(group: ProductGroup, merge_names: list[str]) -> Product:
    master = group.master
    selected = {name.casefold() for name in merge_names}

    attributes = [
        attribute for attribute in master.attributes if attribute.name.casefold() not in selected
    ]
    for name in merge_names:
        values = group.values_for(name)
        if not values:
            continue
        display_name = next(
            (key for key in group.attribute_values if key.casefold() == name.casefold()), name
        )
        attributes.append(
            ProductAttribute(
                id=_combined_attribute_id(display_name),
                name=display_name,
                value=", ".join(values),
            )
        )

    return dataclasses.replace(
        master,
        attributes=attributes,
        available=any(member.available for member in group.products),
        merged_from_variants=len(group.products),
        merged_attribute_names=list(merge_names),
        merged_sizes=group.sizes,
        merged_colors=group.colors,
    )


def _dedupe_names(names: Iterable[str]) -> list[str]:
    seen: dict[str, str] = {}
    for name in names:
        stripped = name.strip()
        if stripped:
            seen.setdefault(stripped.casefold(), stripped)
    return list(seen.values())


def merge_duplicates(
    catalog: Catalog,
    merge_attribute_names: Iterable[str] | None = None,
    *,
    clock: Callable[[], datetime] = _utcnow,
) -> Catalog:
    """Return a new catalog in which every URL group is reduced to its master.

    The first listing of a group is the master. Attributes named in
    ``merge_attribute_names`` (case-insensitive) are combined across the group;
    other attributes come from the master alone. When no names are given, size
    and color attributes are merged. Every folded id, the master's included, is
    recorded in ``metadata.merged_id_map``. The input catalog is not modified.
    """

    source = copy.deepcopy(catalog)
    groups = group_products(source.products)

    if merge_attribute_names is None:
        names = [name for group in groups for name in group.attribute_values]
        merge_names = _dedupe_names(suggest_merge_attributes(names))
    else:
        merge_names = _dedupe_names(merge_attribute_names)

    merged_id_map = dict(source.metadata.merged_id_map)
    group_by_key = {group.key: group for group in groups}
    products: list[Product] = []
    emitted: set[str] = set()
    for product in source.products:
        key = product.grouping_key
        group = group_by_key.get(key) if key else None
        if group is None:
            products.append(product)
            continue
        if group.key in emitted:
            continue
        emitted.add(group.key)

        master = _merge_group(group, merge_names)
        member_ids = {member.id for member in group.products}
        for original_id, target_id in merged_id_map.items():
            if target_id in member_ids:
                merged_id_map[original_id] = master.id
        for member in group.products:
            merged_id_map[member.id] = master.id
        products.append(master)

    log.info(
        "Merged %d duplicate group(s) on %s: %d -> %d products",
        len(groups),
        ", ".join(merge_names) or "no attributes",
        len(source.products),
        len(products),
    )
    return dataclasses.replace(
        source,
        products=products,
        metadata=dataclasses.replace(source.metadata, merged_id_map=merged_id_map),
        date_modified=clock(),
    )
