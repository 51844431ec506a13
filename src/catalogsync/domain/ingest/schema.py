"""Pydantic payloads for the few header fields read from a resolved document."""

from __future__ import annotations

from collections.abc import Mapping
from typing import cast

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .normalizers import normalize_text
from .tree import RawNode, RawRecord, first_present

_HEADER_SOURCES: dict[str, tuple[str, ...]] = {
    "name": ("name", "title", "feedName"),
    "company": ("company", "organization"),
    "url": ("url", "site"),
}


def _text_or_none(value: object) -> str | None:
    text = normalize_text(cast(RawNode, value))
    return text or None


class FeedBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ShopHeader(FeedBaseModel):
    name: str | None = None
    company: str | None = None
    url: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _pick_first_present(cls, value: object) -> object:
        if not isinstance(value, Mapping):
            return {}
        record = cast(RawRecord, dict(cast(Mapping[str, RawNode], value)))
        return {field: first_present(record, *keys) for field, keys in _HEADER_SOURCES.items()}

    _normalize_text = field_validator("name", "company", "url", mode="before")(_text_or_none)


class CatalogRootAttributes(FeedBaseModel):
    date: str | None = Field(default=None, alias="@_date")

    _normalize_date = field_validator("date", mode="before")(_text_or_none)
