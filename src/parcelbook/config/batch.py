"""Defaults for multi-record imports."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_positive_int

DEFAULT_BATCH_CHUNK_SIZE = 5
BATCH_CHUNK_SIZE_ENV = "PARCELBOOK_BATCH_CHUNK_SIZE"


@dataclass(frozen=True, slots=True)
class BatchConfig:
    chunk_size: int = DEFAULT_BATCH_CHUNK_SIZE


def get_batch_config() -> BatchConfig:
    return BatchConfig(
        chunk_size=optional_positive_int(BATCH_CHUNK_SIZE_ENV, DEFAULT_BATCH_CHUNK_SIZE)
    )
