"""Coerce raw document values into the canonical field types.

All normalizers are total: malformed input degrades to a best-effort value
(empty string, empty list, ``True`` availability, zero price) and is reported at
debug level only.
"""

from __future__ import annotations

import json
import math
import re
from logging import getLogger
from typing import Final

from .tree import CDATA_KEY, TEXT_KEY, RawNode, RawRecord, first_present, is_blank

log = getLogger(__name__)

COMPLEX_VALUE_PLACEHOLDER: Final[str] = "Complex value"
DEFAULT_PARAM_NAME: Final[str] = "parameter"

_TRUTHY_FLAGS: Final[frozenset[str]] = frozenset({"true", "yes", "1"})
_TEXT_KEYS: Final[tuple[str, ...]] = (CDATA_KEY, TEXT_KEY, "text")
_ATTRIBUTE_VALUE_KEYS: Final[tuple[str, ...]] = ("value", "text", "name", "label", "id")
_PARAM_VALUE_KEYS: Final[tuple[str, ...]] = (TEXT_KEY, CDATA_KEY, "_", "value", "@_value")
_PARAM_META_KEYS: Final[frozenset[str]] = frozenset({"@_name", "name", "@_unit", "unit"})
_LEADING_NUMBER = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
_LEADING_INTEGER = re.compile(r"^[+-]?\d+")
_NUMBER_NOISE = re.compile(r"\s")


def stringify(value: str | int | float | bool) -> str:
    match value:
        case bool():
            return "true" if value else "false"
        case float() if value.is_integer():
            return str(int(value))
        case _:
            return str(value)


def compact_json(node: RawNode) -> str:
    return json.dumps(node, ensure_ascii=False, separators=(",", ":"), default=str)


def normalize_text(raw: RawNode) -> str:
    """Reduce any raw node to plain text; ``None`` yields an empty string."""

    match raw:
        case None:
            return ""
        case str():
            return raw.strip()
        case bool() | int() | float():
            return stringify(raw)
        case list():
            parts = (normalize_text(item) for item in raw)
            return "\n".join(part for part in parts if part)
        case dict():
            for key in _TEXT_KEYS:
                if not is_blank(raw.get(key)):
                    return normalize_text(raw[key])
            return compact_json(raw) if raw else ""


def normalize_string_list(raw: RawNode) -> list[str]:
    """Flatten picture-like values into an ordered list of non-empty strings."""

    match raw:
        case None:
            return []
        case str():
            value = raw.strip()
            return [value] if value else []
        case bool() | int() | float():
            return [stringify(raw)] if raw else []
        case list():
            return [value for item in raw for value in normalize_string_list(item)]
        case dict():
            for key in (CDATA_KEY, TEXT_KEY):
                if key in raw:
                    return normalize_string_list(raw[key])
            return [
                value
                for key, item in raw.items()
                if not key.startswith("@_")
                for value in normalize_string_list(item)
            ]


def _flag(value: RawNode) -> bool:
    match value:
        case str():
            return value.strip().lower() in _TRUTHY_FLAGS
        case bool():
            return value
        case int() | float():
            return value != 0
        case list():
            return bool(value) and _flag(value[0])
        case dict():
            return _flag(normalize_text(value))
        case None:
            return False


def _stock(value: RawNode) -> bool:
    match value:
        case bool():
            return value
        case int() | float():
            return value > 0
        case str():
            text = value.strip().lower()
            if text in _TRUTHY_FLAGS:
                return True
            match_ = _LEADING_INTEGER.match(text)
            return match_ is not None and int(match_.group()) > 0
        case list():
            return bool(value) and _stock(value[0])
        case dict():
            return _stock(normalize_text(value))
        case None:
            return False


def normalize_availability(record: RawRecord) -> bool:
    """Decide availability from the strongest signal present on an offer record.

    Order: explicit ``available`` flag, stock count, ``vendor.model`` type marker,
    positive price, then ``True``. A present but blank flag means unavailable.
    """

    for key in ("@_available", "available"):
        if key in record:
            return _flag(record[key])

    stock = first_present(record, "stock", "stock_quantity")
    if stock is not None:
        return _stock(stock)

    # a vendor.model marker, a positive price and the absence of any signal all
    # resolve to available
    return True


def _parse_number(raw: RawNode) -> float | None:
    match raw:
        case bool() | None:
            return None
        case int() | float():
            return float(raw)
        case list():
            return _parse_number(raw[0]) if raw else None
        case dict():
            return _parse_number(normalize_text(raw))
        case str():
            text = _NUMBER_NOISE.sub("", raw)
            if "," in text:
                text = text.replace(",", "") if "." in text else text.replace(",", ".")
            match_ = _LEADING_NUMBER.match(text)
            if match_ is None:
                return None
            return float(match_.group())


def normalize_price(raw: RawNode) -> float:
    value = _parse_number(raw)
    if value is None or not math.isfinite(value) or value < 0:
        if not is_blank(raw):
            log.debug("Unusable price %r, defaulting to 0", raw)
        return 0.0
    return value


def normalize_old_price(raw: RawNode) -> float | None:
    value = _parse_number(raw)
    if value is None or not math.isfinite(value) or value <= 0:
        return None
    return value


def _attribute_value(raw: RawNode) -> str:
    match raw:
        case None:
            return ""
        case str():
            return raw.strip()
        case bool() | int() | float():
            return stringify(raw)
        case list():
            values = (_attribute_value(item) for item in raw)
            return ", ".join(value for value in values if value)
        case dict():
            if not raw:
                return ""
            for key in _ATTRIBUTE_VALUE_KEYS:
                if not is_blank(raw.get(key)):
                    return _attribute_value(raw[key])
            for item in raw.values():
                if isinstance(item, (str, int, float, bool)) and not is_blank(item):
                    return _attribute_value(item)
            return compact_json(raw)


def normalize_attribute_value(raw: RawNode) -> str:
    """Reduce an attribute value of any shape to its most representative string."""

    try:
        return _attribute_value(raw)
    except (TypeError, ValueError, RecursionError):
        log.debug("Falling back to placeholder for attribute value %r", raw, exc_info=True)
        return COMPLEX_VALUE_PLACEHOLDER


def normalize_param(raw: RawNode) -> tuple[str, str]:
    """Split a ``<param name="...">value</param>`` node into ``(name, value)``."""

    if not isinstance(raw, dict):
        return DEFAULT_PARAM_NAME, normalize_attribute_value(raw)

    name = normalize_text(first_present(raw, "@_name", "name")) or DEFAULT_PARAM_NAME
    for key in _PARAM_VALUE_KEYS:
        if raw.get(key) is not None:
            return name, normalize_attribute_value(raw[key])

    remainder = {key: value for key, value in raw.items() if key not in _PARAM_META_KEYS}
    return name, normalize_attribute_value(remainder) if remainder else ""


def normalize_params(raw: RawNode) -> list[tuple[str, str]]:
    """Normalize every attribute carried by an offer.

    Accepts a list of ``<param>`` nodes, a single node, or a plain mapping of
    attribute name to value.
    """

    match raw:
        case None:
            return []
        case list():
            return [normalize_param(item) for item in raw if item is not None]
        case {"param": inner}:
            return normalize_params(inner)
        case dict() if any(key in raw for key in ("@_name", "name")):
            return [normalize_param(raw)]
        case dict():
            return [
                (str(key), normalize_attribute_value(value))
                for key, value in raw.items()
                if not str(key).startswith("@_")
            ]
        case _:
            return [normalize_param(raw)]
