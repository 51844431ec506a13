"""Ports for obtaining raw catalog documents."""

from __future__ import annotations

from typing import Protocol


class DocumentFetchError(RuntimeError):
    """Raised when a catalog document cannot be retrieved."""


class DocumentFetcher(Protocol):
    """Return the raw bytes of the catalog document at ``url``."""

    def __call__(self, url: str) -> bytes: ...
