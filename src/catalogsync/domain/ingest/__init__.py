"""Ingestion of loosely structured catalog documents.

The stages run in order: :mod:`.document` repairs and parses markup into a raw
tree, :mod:`.structure` locates the shop, offers and categories in that tree, and
:mod:`.builder` normalizes every record via :mod:`.normalizers` into the canonical
model.
"""

from __future__ import annotations

from .builder import (
    BuildOptions,
    ExternalIdRegistry,
    ProgressCallback,
    build_catalog,
    build_catalog_batched,
    product_id_for,
)
from .document import ParsedDocument, decode_document, parse_document
from .structure import ResolutionPath, ResolvedStructure, resolve_structure

__all__ = [
    "BuildOptions",
    "ExternalIdRegistry",
    "ParsedDocument",
    "ProgressCallback",
    "ResolutionPath",
    "ResolvedStructure",
    "build_catalog",
    "build_catalog_batched",
    "decode_document",
    "parse_document",
    "product_id_for",
    "resolve_structure",
]
