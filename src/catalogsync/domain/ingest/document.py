"""Turn raw catalog markup into a :data:`~catalogsync.domain.ingest.tree.RawNode` tree.

Feeds in the wild are frequently truncated, lack the ``yml_catalog`` root or carry
characters XML does not allow. Preparation therefore runs in two stages: a header
pass that restores the declaration and root element, and (only when the parser
rejects the result) one repair pass over the character data.
"""

from __future__ import annotations

import codecs
import html
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Final

from catalogsync.domain.errors import MalformedDocumentError

from .tree import ATTRIBUTE_PREFIX, TEXT_KEY, RawNode, RawRecord

if TYPE_CHECKING:
    from datetime import datetime

log = getLogger(__name__)

CATALOG_ROOT: Final[str] = "yml_catalog"
XML_DECLARATION: Final[str] = '<?xml version="1.0" encoding="UTF-8"?>'
REPEATED_ELEMENTS: Final[frozenset[str]] = frozenset({"offer", "category", "param", "picture"})
DOCUMENT_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M"

_FIRST_TAG = re.compile(r"<([a-zA-Z_][a-zA-Z0-9:_.-]*)[^>]*>")
_DECLARATION = re.compile(r"<\?xml[^>]*\?>\s*")
_ROOT_OPEN = re.compile(rf"<{CATALOG_ROOT}(?=[\s>/])")
_ROOT_CLOSE = re.compile(rf"</{CATALOG_ROOT}\s*>")
_ILLEGAL_CHARACTERS = re.compile(
    f"[^\t\n\r\x20-{chr(0xD7FF)}{chr(0xE000)}-{chr(0xFFFD)}{chr(0x10000)}-{chr(0x10FFFF)}]"
)
_NUMERIC_REFERENCE = re.compile(r"&#(?:\d+|[xX][0-9a-fA-F]+);")
_NAMED_REFERENCE = re.compile(r"&([A-Za-z][A-Za-z0-9]*);")
_BARE_AMPERSAND = re.compile(r"&(?![A-Za-z][A-Za-z0-9]*;|#\d+;|#[xX][0-9a-fA-F]+;)")
_XML_ENTITIES: Final[frozenset[str]] = frozenset({"amp", "lt", "gt", "quot", "apos"})
_ENCODING_DECLARATION = re.compile(rb"""^\s*<\?xml[^>]*encoding\s*=\s*["']([A-Za-z0-9._-]+)["']""")


@dataclass(slots=True, frozen=True)
class ParsedDocument:
    tree: RawRecord
    wrapped: bool = False
    repaired: bool = False


def decode_document(data: bytes) -> str:
    """Decode fetched bytes using the BOM or the encoding named in the XML declaration."""

    for bom, encoding in (
        (codecs.BOM_UTF8, "utf-8"),
        (codecs.BOM_UTF16_LE, "utf-16-le"),
        (codecs.BOM_UTF16_BE, "utf-16-be"),
    ):
        if data.startswith(bom):
            return data[len(bom) :].decode(encoding, errors="replace")

    declared = _ENCODING_DECLARATION.match(data[:512])
    if declared is not None:
        name = declared.group(1).decode("ascii")
        try:
            codecs.lookup(name)
        except LookupError:
            log.warning("Unknown declared encoding %r, decoding as UTF-8", name)
        else:
            return data.decode(name, errors="replace")
    return data.decode("utf-8", errors="replace")


def restore_header(text: str, *, now: datetime) -> tuple[str, bool]:
    """Ensure the markup starts with a declaration and is enclosed in the catalog root.

    Returns the prepared markup and whether a synthetic root had to be wrapped
    around the content.
    """

    content = text.lstrip("\N{ZERO WIDTH NO-BREAK SPACE}").strip()
    wrapped = False
    if not content.startswith(("<?xml", f"<{CATALOG_ROOT}")):
        first_tag = _FIRST_TAG.search(content)
        if first_tag is None:
            raise MalformedDocumentError("no markup element found")
        if first_tag.group(1) == CATALOG_ROOT:
            content = f"{XML_DECLARATION}\n{content}"
        else:
            body = _DECLARATION.sub("", content)
            date = now.strftime(DOCUMENT_DATE_FORMAT)
            content = (
                f'{XML_DECLARATION}\n<{CATALOG_ROOT} date="{date}">\n{body}\n</{CATALOG_ROOT}>'
            )
            wrapped = True

    missing = len(_ROOT_OPEN.findall(content)) - len(_ROOT_CLOSE.findall(content))
    if missing > 0:
        log.info("Appending %d missing </%s> closing tag(s)", missing, CATALOG_ROOT)
        content += f"</{CATALOG_ROOT}>" * missing
    return content, wrapped


def _replace_named_reference(match: re.Match[str]) -> str:
    reference = match.group(0)
    if match.group(1) in _XML_ENTITIES:
        return reference
    resolved = html.unescape(reference)
    return f"&amp;{match.group(1)};" if resolved == reference else resolved


def repair_markup(text: str) -> str:
    """Best-effort cleanup of character data the XML parser rejected."""

    text = _ILLEGAL_CHARACTERS.sub("", text)
    text = _NUMERIC_REFERENCE.sub(" ", text)
    text = _NAMED_REFERENCE.sub(_replace_named_reference, text)
    return _BARE_AMPERSAND.sub("&amp;", text)


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _element_text(element: ET.Element) -> str:
    parts = [element.text or ""]
    parts.extend(child.tail or "" for child in element)
    return "".join(parts).strip()


def element_to_node(element: ET.Element) -> RawNode:
    """Convert an element into the keyed-tree convention used by the ingest package."""

    text = _element_text(element)
    if not element.attrib and len(element) == 0:
        return text

    node: RawRecord = {
        ATTRIBUTE_PREFIX + _local_name(name): value for name, value in element.attrib.items()
    }
    for child in element:
        if not isinstance(child.tag, str):
            continue
        key = _local_name(child.tag)
        value = element_to_node(child)
        existing = node.get(key)
        if isinstance(existing, list):
            existing.append(value)
        elif key in node:
            node[key] = [existing, value]
        elif key in REPEATED_ELEMENTS:
            node[key] = [value]
        else:
            node[key] = value
    if text:
        node[TEXT_KEY] = text
    return node


def _parse(markup: str) -> RawRecord:
    # the text is already decoded, any declared encoding no longer applies
    root = ET.fromstring(_DECLARATION.sub("", markup, count=1))  # noqa: S314
    return {_local_name(root.tag): element_to_node(root)}


def parse_document(text: str, *, now: datetime) -> ParsedDocument:
    """Parse catalog markup, repairing the header and retrying once on parser errors."""

    markup, wrapped = restore_header(text, now=now)
    if wrapped:
        log.info("Document lacked a %s root, wrapped content in a synthetic one", CATALOG_ROOT)
    try:
        return ParsedDocument(tree=_parse(markup), wrapped=wrapped)
    except ET.ParseError as exc:
        log.warning("Parsing failed (%s), retrying after repair", exc)

    try:
        tree = _parse(repair_markup(markup))
    except ET.ParseError as exc:
        raise MalformedDocumentError(str(exc)) from exc
    return ParsedDocument(tree=tree, wrapped=wrapped, repaired=True)
