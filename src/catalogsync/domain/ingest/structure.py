"""Locate the shop node, offers and categories inside an arbitrarily shaped tree."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from typing import Final

from catalogsync.domain.errors import StructureNotFoundError

from .document import CATALOG_ROOT
from .tree import RawNode, RawRecord, as_list, records

log = getLogger(__name__)

MAX_SEARCH_DEPTH: Final[int] = 32
OFFER_CONTAINERS: Final[tuple[str, ...]] = ("offers", "items", "products")
RECORD_MARKERS: Final[tuple[str, ...]] = ("name", "title", "price")
DEEP_RECORD_MARKERS: Final[tuple[str, ...]] = ("price", "name", "title", "id")
CATEGORY_HINTS: Final[tuple[str, ...]] = ("categor", "категор")

type Finder = Callable[[RawRecord], list[RawNode] | None]


class ResolutionPath(StrEnum):
    """Which rule located the shop node."""

    CATALOG_SHOP = "catalog_shop"
    ROOT_SHOP = "root_shop"
    NESTED_SHOP = "nested_shop"
    RECORD_ARRAY = "record_array"
    OFFER_CONTAINER = "offer_container"
    DEEP_SEARCH = "deep_search"


@dataclass(slots=True, frozen=True)
class ResolvedStructure:
    shop: RawRecord
    root: RawRecord
    path: ResolutionPath


def _looks_like_category_key(key: str) -> bool:
    lowered = key.lower()
    return any(hint in lowered for hint in CATEGORY_HINTS)


def _is_record_array(node: RawNode, markers: tuple[str, ...]) -> bool:
    if not isinstance(node, list) or not node:
        return False
    first = node[0]
    return isinstance(first, dict) and any(marker in first for marker in markers)


def _nested_collection(node: RawRecord, container: str, member: str) -> list[RawNode] | None:
    holder = node.get(container)
    if isinstance(holder, dict):
        found = as_list(holder.get(member))
        return found or None
    return None


# Offers -------------------------------------------------------------------------


def _offers_offer(node: RawRecord) -> list[RawNode] | None:
    return _nested_collection(node, "offers", "offer")


def _bare_offers(node: RawRecord) -> list[RawNode] | None:
    offers = node.get("offers")
    return offers if isinstance(offers, list) and offers else None


def _items_item(node: RawRecord) -> list[RawNode] | None:
    return _nested_collection(node, "items", "item")


def _products_product(node: RawRecord) -> list[RawNode] | None:
    return _nested_collection(node, "products", "product")


def _record_array(node: RawRecord) -> list[RawNode] | None:
    for key, value in node.items():
        if _looks_like_category_key(key):
            continue
        if _is_record_array(value, DEEP_RECORD_MARKERS):
            return as_list(value)
    return None


OFFER_FINDERS: Final[tuple[Finder, ...]] = (
    _offers_offer,
    _bare_offers,
    _items_item,
    _products_product,
    _record_array,
)


# Categories ---------------------------------------------------------------------


def _categories_category(node: RawRecord) -> list[RawNode] | None:
    return _nested_collection(node, "categories", "category")


def _bare_categories(node: RawRecord) -> list[RawNode] | None:
    categories = node.get("categories")
    return categories if isinstance(categories, list) and categories else None


def _category_like_member(node: RawRecord) -> list[RawNode] | None:
    categories = node.get("categories")
    if not isinstance(categories, dict):
        return None
    for key, value in categories.items():
        if isinstance(value, list) or _looks_like_category_key(key):
            found = as_list(value)
            if found:
                return found
    return None


def _bare_category(node: RawRecord) -> list[RawNode] | None:
    return as_list(node.get("category")) or None


CATEGORY_FINDERS: Final[tuple[Finder, ...]] = (
    _categories_category,
    _bare_categories,
    _category_like_member,
    _bare_category,
)


def _first_match(node: RawRecord, finders: tuple[Finder, ...]) -> list[RawNode] | None:
    for finder in finders:
        found = finder(node)
        if found:
            return found
    return None


def search_tree(
    node: RawNode,
    finders: tuple[Finder, ...],
    *,
    depth: int = 0,
    max_depth: int = MAX_SEARCH_DEPTH,
) -> list[RawNode] | None:
    """Depth-first search returning the first collection any finder accepts."""

    if depth > max_depth:
        return None
    match node:
        case dict():
            found = _first_match(node, finders)
            if found:
                return found
            children = list(node.values())
        case list():
            children = node
        case _:
            return None
    for child in children:
        found = search_tree(child, finders, depth=depth + 1, max_depth=max_depth)
        if found:
            return found
    return None


def find_offers(shop: RawRecord) -> list[RawRecord]:
    """Return the offer records of ``shop``, searching nested nodes when needed."""
    return records(search_tree(shop, OFFER_FINDERS))


def find_categories(shop: RawRecord) -> list[RawNode]:
    return _first_match(shop, CATEGORY_FINDERS) or []


def _scopes(tree: RawRecord) -> list[RawRecord]:
    scopes = [tree]
    catalog = tree.get(CATALOG_ROOT)
    if isinstance(catalog, dict):
        scopes.append(catalog)
    return scopes


def _locate_shop(tree: RawRecord) -> tuple[RawRecord, ResolutionPath] | None:
    catalog = tree.get(CATALOG_ROOT)
    if isinstance(catalog, dict) and isinstance(catalog.get("shop"), dict):
        return catalog["shop"], ResolutionPath.CATALOG_SHOP

    scopes = _scopes(tree)
    for scope in scopes:
        if isinstance(scope.get("shop"), dict):
            return scope["shop"], ResolutionPath.ROOT_SHOP

    for scope in scopes:
        nested = [
            value["shop"]
            for value in scope.values()
            if isinstance(value, dict) and isinstance(value.get("shop"), dict)
        ]
        if len(nested) == 1:
            return nested[0], ResolutionPath.NESTED_SHOP

    for scope in scopes:
        for value in scope.values():
            if _is_record_array(value, RECORD_MARKERS):
                return {"offers": {"offer": value}}, ResolutionPath.RECORD_ARRAY

    for scope in scopes:
        for value in scope.values():
            if isinstance(value, dict) and any(key in value for key in OFFER_CONTAINERS):
                return value, ResolutionPath.OFFER_CONTAINER

    return None


def resolve_structure(tree: RawRecord) -> ResolvedStructure:
    """Find the shop-like node of a parsed document.

    Shapes are tried in a fixed order and the first hit wins. When no shop node
    exists the whole tree is searched for offers and categories, which are then
    wrapped in a synthetic shop.
    """

    located = _locate_shop(tree)
    if located is not None:
        shop, path = located
        log.debug("Resolved shop node via %s", path)
        return ResolvedStructure(shop=shop, root=tree, path=path)

    offers = search_tree(tree, OFFER_FINDERS)
    categories = search_tree(tree, CATEGORY_FINDERS)
    if not offers and not categories:
        raise StructureNotFoundError(
            (
                f"{CATALOG_ROOT}.shop",
                "shop",
                "<key>.shop",
                "first-level record arrays",
                "offers/items/products containers",
                f"recursive offer and category search (depth {MAX_SEARCH_DEPTH})",
            )
        )

    shop: RawRecord = {
        "offers": {"offer": offers or []},
        "categories": {"category": categories or []},
    }
    log.info(
        "No shop node found, synthesised one from %d offer(s) and %d category node(s)",
        len(offers or []),
        len(categories or []),
    )
    return ResolvedStructure(shop=shop, root=tree, path=ResolutionPath.DEEP_SEARCH)
