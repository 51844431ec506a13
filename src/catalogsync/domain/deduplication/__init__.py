"""Duplicate detection and merging of variant listings."""

from __future__ import annotations

from .analysis import (
    DuplicatesAnalysis,
    ProductGroup,
    analyze_duplicates,
    group_products,
    is_color_attribute,
    is_size_attribute,
    suggest_merge_attributes,
)
from .merge import merge_duplicates

__all__ = [
    "DuplicatesAnalysis",
    "ProductGroup",
    "analyze_duplicates",
    "group_products",
    "is_color_attribute",
    "is_size_attribute",
    "merge_duplicates",
    "suggest_merge_attributes",
]
