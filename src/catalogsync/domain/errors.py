"""Errors raised by the catalog domain core."""

from __future__ import annotations


class CatalogError(Exception):
    """Base class for catalog processing failures."""


class StructureNotFoundError(CatalogError):
    """Raised when a parsed document exposes neither a shop nor an offer collection."""

    def __init__(self, searched: tuple[str, ...]) -> None:
        self.searched = searched
        super().__init__(
            "Could not locate a shop or offer collection in the document "
            f"(searched: {', '.join(searched)})"
        )


class MalformedDocumentError(CatalogError):
    """Raised when a document cannot be parsed, even after one repair attempt."""

    def __init__(self, parser_message: str) -> None:
        self.parser_message = parser_message
        super().__init__(f"Document is not well-formed markup: {parser_message}")


class MissingRequiredMetadataError(CatalogError):
    """Raised when an export needs catalog metadata that is absent."""

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"Catalog metadata field {field!r} is required for export")
