"""Detect listings that are variants of one product."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from catalogsync.domain.model import Catalog, Product

SIZE_NAMES: Final[frozenset[str]] = frozenset({"size", "размер"})
COLOR_NAMES: Final[frozenset[str]] = frozenset({"color", "colour", "цвет"})


def is_size_attribute(name: str) -> bool:
    return name.strip().casefold() in SIZE_NAMES


def is_color_attribute(name: str) -> bool:
    return name.strip().casefold() in COLOR_NAMES


def suggest_merge_attributes(names: Iterable[str]) -> list[str]:
    """Attribute names merged when the operator does not choose any."""
    return [name for name in names if is_size_attribute(name) or is_color_attribute(name)]


@dataclass(slots=True, kw_only=True)
class ProductGroup:
    key: str
    products: list[Product]
    attribute_values: dict[str, list[str]] = field(default_factory=dict[str, list[str]])

    @property
    def master(self) -> Product:
        return self.products[0]

    @property
    def variants(self) -> list[Product]:
        return self.products[1:]

    @property
    def sizes(self) -> list[str]:
        return _values_matching(self.attribute_values, is_size_attribute)

    @property
    def colors(self) -> list[str]:
        return _values_matching(self.attribute_values, is_color_attribute)

    def values_for(self, name: str) -> list[str]:
        wanted = name.casefold()
        for attribute_name, values in self.attribute_values.items():
            if attribute_name.casefold() == wanted:
                return values
        return []


@dataclass(slots=True, kw_only=True)
class DuplicatesAnalysis:
    groups: list[ProductGroup]
    unique_attribute_names: list[str]
    suggested_merge_attributes: list[str]
    original_product_count: int

    @property
    def merged_product_count(self) -> int:
        folded = sum(len(group.variants) for group in self.groups)
        return self.original_product_count - folded


def _values_matching(
    values: dict[str, list[str]], predicate: Callable[[str], bool]
) -> list[str]:
    collected: list[str] = []
    for name, name_values in values.items():
        if predicate(name):
            collected.extend(value for value in name_values if value not in collected)
    return collected


def collect_attribute_values(products: Iterable[Product]) -> dict[str, list[str]]:
    """Distinct non-empty values per attribute name, in first-seen order.

    Names are compared case-insensitively; the first spelling seen is kept.
    """

    by_key: dict[str, tuple[str, list[str]]] = {}
    for product in products:
        for attribute in product.attributes:
            value = attribute.value.strip()
            name, values = by_key.setdefault(attribute.name.casefold(), (attribute.name, []))
            if value and value not in values:
                values.append(value)
    return dict(by_key.values())


def group_products(products: Iterable[Product]) -> list[ProductGroup]:
    """Group listings by their grouping key; products without a URL never group."""

    members: dict[str, list[Product]] = {}
    for product in products:
        key = product.grouping_key
        if key:
            members.setdefault(key, []).append(product)
    return [
        ProductGroup(
            key=key,
            products=grouped,
            attribute_values=collect_attribute_values(grouped),
        )
        for key, grouped in members.items()
        if len(grouped) > 1
    ]


def analyze_duplicates(catalog: Catalog) -> DuplicatesAnalysis:
    groups = group_products(catalog.products)
    names: dict[str, str] = {}
    for group in groups:
        for name in group.attribute_values:
            names.setdefault(name.casefold(), name)
    unique_names = list(names.values())
    return DuplicatesAnalysis(
        groups=groups,
        unique_attribute_names=unique_names,
        suggested_merge_attributes=suggest_merge_attributes(unique_names),
        original_product_count=len(catalog.products),
    )
