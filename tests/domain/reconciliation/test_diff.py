from __future__ import annotations

import pytest

from catalogsync.domain.reconciliation import (
    DiffKind,
    FieldChange,
    ProductField,
    RuleSet,
    attribute_signature,
    compare_products,
    diff_catalogs,
)
from tests.helpers.catalogs import make_attributes, make_catalog, make_product


def test_price_change_is_reported() -> None:
    old = make_catalog([make_product("p1", price=100.0)])
    new = make_catalog([make_product("p1", price=120.0)])

    (diff,) = diff_catalogs(old, new)

    assert diff.product_id == "p1"
    assert diff.kind is DiffKind.CHANGED
    assert diff.changes == {ProductField.PRICE: FieldChange(old=100.0, new=120.0)}
    assert diff.old_product is old.products[0]
    assert diff.new_product is new.products[0]


def test_catalog_compared_with_itself_has_no_differences() -> None:
    catalog = make_catalog(
        [
            make_product("p1", attributes=[("Size", "S")]),
            make_product("p2", available=False),
        ]
    )

    assert diff_catalogs(catalog, catalog) == []


def test_new_products_follow_document_order() -> None:
    old = make_catalog([make_product("p1")])
    new = make_catalog([make_product("n2"), make_product("p1"), make_product("n1")])

    diffs = diff_catalogs(old, new)

    assert [(diff.product_id, diff.kind) for diff in diffs] == [
        ("n2", DiffKind.NEW),
        ("n1", DiffKind.NEW),
    ]
    assert diffs[0].old_product is None
    assert diffs[0].changes == {}


def test_new_products_can_be_suppressed() -> None:
    old = make_catalog([make_product("p1")])
    new = make_catalog([make_product("p1"), make_product("n1")])

    assert diff_catalogs(old, new, RuleSet(treat_new_as_new=False)) == []


def test_ids_folded_by_merge_are_not_reported_as_new() -> None:
    old = make_catalog([make_product("p1")], merged_id_map={"p1": "p1", "p2": "p1"})
    new = make_catalog([make_product("p1"), make_product("p2")])

    assert diff_catalogs(old, new) == []

    (diff,) = diff_catalogs(old, new, RuleSet(ignore_ids_in_merge_map=False))
    assert (diff.product_id, diff.kind) == ("p2", DiffKind.NEW)


def test_explicit_merge_map_overrides_stored_one() -> None:
    old = make_catalog([make_product("p1")], merged_id_map={"p2": "p1"})
    new = make_catalog([make_product("p1"), make_product("p2"), make_product("p3")])

    diffs = diff_catalogs(old, new, merge_map={"p3": "p1"})

    assert [diff.product_id for diff in diffs] == ["p2"]


def test_duplicate_ids_in_new_catalog_are_reported_once() -> None:
    old = make_catalog([make_product("p1", price=1.0)])
    new = make_catalog([make_product("p1", price=2.0), make_product("p1", price=3.0)])

    (diff,) = diff_catalogs(old, new)

    assert diff.changes[ProductField.PRICE].new == 2.0


@pytest.mark.parametrize(
    ("rules", "expected"),
    [
        (RuleSet(), {ProductField.PRICE, ProductField.AVAILABLE, ProductField.ATTRIBUTES}),
        (
            RuleSet(compare_name=True, compare_description=True, compare_price=False),
            {
                ProductField.NAME,
                ProductField.DESCRIPTION,
                ProductField.AVAILABLE,
                ProductField.ATTRIBUTES,
            },
        ),
        (
            RuleSet(compare_price=False, compare_availability=False, compare_attributes=False),
            set(),
        ),
    ],
)
def test_compare_products_respects_rules(rules: RuleSet, expected: set[ProductField]) -> None:
    old = make_product("p1", name="Old", description="a", price=1.0, attributes=[("Size", "S")])
    new = make_product(
        "p1",
        name="New",
        description="b",
        price=2.0,
        available=False,
        attributes=[("Size", "M")],
    )

    assert set(compare_products(old, new, rules)) == expected


def test_attribute_order_and_ids_do_not_count_as_changes() -> None:
    old = make_product("p1", attributes=[("Size", "S"), ("Color", "Red")])
    new = make_product("p1", attributes=[("Color", "Red"), ("Size", "S")])
    new.attributes[0].id = "renumbered"

    assert compare_products(old, new, RuleSet()) == {}


def test_attribute_change_carries_copies_of_both_lists() -> None:
    old = make_product("p1", attributes=[("Size", "S")])
    new = make_product("p1", attributes=[("Size", "S"), ("Size", "M")])

    change = compare_products(old, new, RuleSet())[ProductField.ATTRIBUTES]

    assert change.new == new.attributes
    assert change.new is not new.attributes
    assert change.old == old.attributes


def test_attribute_signature_is_order_independent() -> None:
    first = make_attributes([("b", "2"), ("a", "1")])
    second = make_attributes([("a", "1"), ("b", "2")], prefix="x")

    assert attribute_signature(first) == attribute_signature(second) == (("a", "1"), ("b", "2"))
