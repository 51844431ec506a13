from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from catalogsync.domain.ingest.normalizers import (
    COMPLEX_VALUE_PLACEHOLDER,
    normalize_attribute_value,
    normalize_availability,
    normalize_old_price,
    normalize_param,
    normalize_params,
    normalize_price,
    normalize_string_list,
    normalize_text,
)

if TYPE_CHECKING:
    from catalogsync.domain.ingest.tree import RawNode, RawRecord


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (None, ""),
        ("  plain  ", "plain"),
        (5, "5"),
        (5.0, "5"),
        (2.5, "2.5"),
        (True, "true"),
        ({"__cdata": "<b>bold</b>", "#text": "ignored"}, "<b>bold</b>"),
        ({"#text": "element text"}, "element text"),
        ({"text": "keyed text"}, "keyed text"),
        ({"size": 1}, '{"size":1}'),
        (["first", None, "", "second"], "first\nsecond"),
        ({}, ""),
    ],
)
def test_normalize_text(raw: RawNode, expected: str) -> None:
    assert normalize_text(raw) == expected


def test_normalize_text_keeps_non_ascii_in_fallback_rendering() -> None:
    assert normalize_text({"цвет": "красный"}) == '{"цвет":"красный"}'


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (None, []),
        ("https://img/1.jpg", ["https://img/1.jpg"]),
        ("   ", []),
        (0, []),
        (["a", "", None, ["b", ["c"]]], ["a", "b", "c"]),
        ({"#text": "https://img/2.jpg"}, ["https://img/2.jpg"]),
        ({"@_alt": "front", "url": "a", "more": ["b"]}, ["a", "b"]),
    ],
)
def test_normalize_string_list(raw: RawNode, expected: list[str]) -> None:
    assert normalize_string_list(raw) == expected


@pytest.mark.parametrize(
    ("record", "expected"),
    [
        ({"stock": "0"}, False),
        ({"price": 10}, True),
        ({"@_available": "yes"}, True),
        ({"@_available": "TRUE"}, True),
        ({"@_available": "no"}, False),
        ({"@_available": "false", "stock": "5"}, False),
        ({"available": 0}, False),
        ({"available": True}, True),
        ({"available": "", "stock": "0"}, False),
        ({"@_available": "", "price": "10"}, False),
        ({"available": "  ", "stock": "5"}, False),
        ({"stock": "3 pcs"}, True),
        ({"stock": "yes"}, True),
        ({"stock": -1}, False),
        ({"stock_quantity": 2}, True),
        ({"@_type": "vendor.model"}, True),
        ({"price": "0"}, True),
        ({}, True),
    ],
)
def test_normalize_availability(record: RawRecord, expected: bool) -> None:
    assert normalize_availability(record) is expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("990", 990.0),
        (" 1 299,90 ", 1299.9),
        ("1,234.50", 1234.5),
        ("12abc", 12.0),
        ("abc", 0.0),
        ("inf", 0.0),
        (None, 0.0),
        (-5, 0.0),
        (True, 0.0),
        ({"#text": "10"}, 10.0),
        (["7", "8"], 7.0),
    ],
)
def test_normalize_price(raw: RawNode, expected: float) -> None:
    assert normalize_price(raw) == expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("1500", 1500.0), ("0", None), ("", None), (None, None), ("n/a", None)],
)
def test_normalize_old_price(raw: RawNode, expected: float | None) -> None:
    assert normalize_old_price(raw) == expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (0, "0"),
        ("0", "0"),
        (None, ""),
        (True, "true"),
        ({"value": "Red"}, "Red"),
        ({"label": "L", "id": 3}, "L"),
        ({"id": 0}, "0"),
        ({"nested": [1], "plain": "x"}, "x"),
        ({"nested": {"deep": 1}}, '{"nested":{"deep":1}}'),
        (["S", "M", ""], "S, M"),
        ({}, ""),
    ],
)
def test_normalize_attribute_value(raw: RawNode, expected: str) -> None:
    assert normalize_attribute_value(raw) == expected


def test_normalize_attribute_value_falls_back_to_placeholder() -> None:
    cyclic: dict[str, RawNode] = {}
    cyclic["self"] = cyclic

    assert normalize_attribute_value(cyclic) == COMPLEX_VALUE_PLACEHOLDER


@pytest.mark.parametrize(
    "raw",
    [None, "", 0, -1.5, False, [], {}, [[[]]], [{"a": None}], {"a": {"b": {"c": [None]}}}],
)
def test_normalize_attribute_value_always_returns_a_string(raw: RawNode) -> None:
    assert isinstance(normalize_attribute_value(raw), str)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ({"@_name": "Размер", "#text": "S"}, ("Размер", "S")),
        ({"@_name": "Weight", "@_unit": "kg", "#text": "1.5"}, ("Weight", "1.5")),
        ({"#text": "orphan"}, ("parameter", "orphan")),
        ({"@_name": "Empty"}, ("Empty", "")),
        ({"name": "Color", "value": {"label": "Red"}}, ("Color", "Red")),
        ({"@_name": "Count", "value": 0}, ("Count", "0")),
        ("plain", ("parameter", "plain")),
    ],
)
def test_normalize_param(raw: RawNode, expected: tuple[str, str]) -> None:
    assert normalize_param(raw) == expected


def test_normalize_params_accepts_lists_mappings_and_containers() -> None:
    params: RawNode = [{"@_name": "A", "#text": "1"}, {"@_name": "B", "#text": "2"}]

    assert normalize_params(params) == [("A", "1"), ("B", "2")]
    assert normalize_params({"param": params}) == [("A", "1"), ("B", "2")]
    assert normalize_params({"color": "red", "size": 42}) == [("color", "red"), ("size", "42")]
    assert normalize_params(None) == []
