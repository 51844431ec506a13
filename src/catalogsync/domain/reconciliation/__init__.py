"""Reconciliation of a stored catalog with a freshly built one."""

from __future__ import annotations

from .apply import apply_diff, select_all
from .contracts import DiffKind, FieldChange, FieldSelection, ProductDiff, ProductField, RuleSet
from .diff import attribute_signature, compare_products, diff_catalogs

__all__ = [
    "DiffKind",
    "FieldChange",
    "FieldSelection",
    "ProductDiff",
    "ProductField",
    "RuleSet",
    "apply_diff",
    "attribute_signature",
    "compare_products",
    "diff_catalogs",
    "select_all",
]
