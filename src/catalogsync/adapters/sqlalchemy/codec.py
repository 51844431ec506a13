"""JSON payload codec for catalog snapshots."""

from __future__ import annotations

from typing import Any, cast

from pydantic import TypeAdapter

from catalogsync.domain.model import Catalog

_CATALOG_ADAPTER: TypeAdapter[Catalog] = TypeAdapter(Catalog)


def encode_catalog(catalog: Catalog) -> dict[str, Any]:
    return cast(dict[str, Any], _CATALOG_ADAPTER.dump_python(catalog, mode="json"))


def decode_catalog(payload: dict[str, Any]) -> Catalog:
    return _CATALOG_ADAPTER.validate_python(payload)
