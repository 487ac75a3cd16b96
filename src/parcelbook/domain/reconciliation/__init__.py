"""Duplicate detection, merging and the create/refresh/batch flows."""

from __future__ import annotations

from .batch import (
    BatchCoordinator,
    BatchError,
    BatchErrorKind,
    BatchResult,
    BatchRow,
    BatchSummary,
    classify_error,
    prepare_row,
)
from .duplicates import DuplicateResolver, MatchResult
from .engine import ReconciliationEngine
from .merge import merge_for_create, merge_for_refresh, provider_values

__all__ = [
    "BatchCoordinator",
    "BatchError",
    "BatchErrorKind",
    "BatchResult",
    "BatchRow",
    "BatchSummary",
    "DuplicateResolver",
    "MatchResult",
    "ReconciliationEngine",
    "classify_error",
    "merge_for_create",
    "merge_for_refresh",
    "prepare_row",
    "provider_values",
]
