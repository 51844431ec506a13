"""Shape vocabulary for parsed, schema-less catalog documents.

Repeated or optional markup elements do not map onto one stable structure: the
same element can surface as a scalar, a keyed node or a list of either. Every
raw access in the ingest package goes through :data:`RawNode` and the helpers
below so each call site handles all three shapes explicitly.

Keys follow a fixed convention shared with :mod:`catalogsync.domain.ingest.document`:
attributes are prefixed with ``@_``, element text lives under ``#text`` and CDATA
sections under ``__cdata``.
"""

from __future__ import annotations

from typing import Final

type Primitive = str | int | float | bool
type RawNode = Primitive | list[RawNode] | dict[str, RawNode] | None
type RawRecord = dict[str, RawNode]

ATTRIBUTE_PREFIX: Final[str] = "@_"
TEXT_KEY: Final[str] = "#text"
CDATA_KEY: Final[str] = "__cdata"


def is_record(node: RawNode) -> bool:
    return isinstance(node, dict)


def is_blank(node: RawNode) -> bool:
    """Return True for values treated as absent: ``None``, blank strings and empty containers."""
    match node:
        case None:
            return True
        case str():
            return not node.strip()
        case list() | dict():
            return not node
        case _:
            return False


def as_list(node: RawNode) -> list[RawNode]:
    """Lift a single node into a one-element list; ``None`` becomes an empty list."""
    match node:
        case None:
            return []
        case list():
            return node
        case _:
            return [node]


def records(node: RawNode) -> list[RawRecord]:
    """Return the keyed members of ``node`` treated as a collection."""
    return [item for item in as_list(node) if isinstance(item, dict)]


def first_present(record: RawRecord, *keys: str) -> RawNode:
    """Return the value of the first key whose value is not blank."""
    for key in keys:
        value = record.get(key)
        if not is_blank(value):
            return value
    return None


def attribute(record: RawRecord, name: str) -> RawNode:
    return record.get(ATTRIBUTE_PREFIX + name)
