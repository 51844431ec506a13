"""Export of catalogs in the ``yml_catalog`` feed format."""

from __future__ import annotations

from .writer import render_catalog

__all__ = ["render_catalog"]
