"""Import tuning knobs read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Final

from .env import env_int

DEFAULT_BATCH_SIZE: Final[int] = 1000
DEFAULT_LARGE_DOCUMENT_BYTES: Final[int] = 5 * 1024 * 1024
DEFAULT_CURRENCY: Final[str] = "RUB"


@dataclass(frozen=True, slots=True)
class ImportConfig:
    batch_size: int = DEFAULT_BATCH_SIZE
    large_document_bytes: int = DEFAULT_LARGE_DOCUMENT_BYTES
    default_currency: str = DEFAULT_CURRENCY

    def is_large(self, size_in_bytes: int) -> bool:
        return size_in_bytes > self.large_document_bytes


def get_import_config() -> ImportConfig:
    currency = (os.getenv("CATALOGSYNC_DEFAULT_CURRENCY") or "").strip() or DEFAULT_CURRENCY
    return ImportConfig(
        batch_size=env_int("CATALOGSYNC_BATCH_SIZE", DEFAULT_BATCH_SIZE),
        large_document_bytes=env_int(
            "CATALOGSYNC_LARGE_DOCUMENT_BYTES", DEFAULT_LARGE_DOCUMENT_BYTES
        ),
        default_currency=currency.upper(),
    )
