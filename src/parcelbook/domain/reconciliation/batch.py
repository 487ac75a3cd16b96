"""Multi-record imports with per-row failure isolation."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING, cast

from parcelbook.domain.errors import (
    DuplicateError,
    ParcelbookError,
    PersistenceIntegrityError,
    ProviderUnavailableError,
    ValidationError,
)
from parcelbook.domain.model import ImportSource, PropertyInput, clean_parcel_number

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from parcelbook.domain.model import PropertyRecord

    from .duplicates import DuplicateResolver
    from .engine import ReconciliationEngine

log = getLogger(__name__)

DEFAULT_CHUNK_SIZE = 5

type BatchRow = PropertyInput | Mapping[str, object]


class BatchErrorKind(StrEnum):
    DUPLICATE = "duplicate"
    VALIDATION = "validation"
    PROVIDER = "provider"
    PERSISTENCE = "persistence"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class BatchError:
    index: int
    input: object
    error: str
    kind: BatchErrorKind


@dataclass(frozen=True, slots=True)
class BatchSummary:
    total: int
    successful: int
    failed: int
    source: ImportSource


@dataclass(slots=True)
class BatchResult:
    created: list[PropertyRecord] = field(default_factory=list["PropertyRecord"])
    errors: list[BatchError] = field(default_factory=list[BatchError])
    summary: BatchSummary = field(
        default_factory=lambda: BatchSummary(total=0, successful=0, failed=0, source=ImportSource.API)
    )


_ERROR_KINDS: tuple[tuple[type[ParcelbookError], BatchErrorKind], ...] = (
    (DuplicateError, BatchErrorKind.DUPLICATE),
    (ValidationError, BatchErrorKind.VALIDATION),
    (ProviderUnavailableError, BatchErrorKind.PROVIDER),
    (PersistenceIntegrityError, BatchErrorKind.PERSISTENCE),
)


def classify_error(exc: Exception) -> BatchErrorKind:
    for error_type, kind in _ERROR_KINDS:
        if isinstance(exc, error_type):
            return kind
    return BatchErrorKind.ERROR


def prepare_row(row: object) -> PropertyInput:
    """Validate one row; a row with only a parcel number gets a placeholder address."""

    if isinstance(row, PropertyInput):
        return row
    if not isinstance(row, Mapping):
        raise ValidationError(f"row must be a mapping, got {type(row).__name__}")
    mapping = cast("Mapping[str, object]", row)
    address = mapping.get("address")
    if address is None or (isinstance(address, str) and not address.strip()):
        apn = mapping.get("apn")
        if isinstance(apn, str) and apn.strip():
            return PropertyInput.from_mapping({**mapping, "address": f"Property {apn.strip()}"})
        raise ValidationError("row needs an address or an APN")
    return PropertyInput.from_mapping(mapping)


class BatchCoordinator:
    """Drive the create path over many rows.

    Duplicates are detected for every row before any provider call. Unique
    rows are created in sequential chunks whose items run concurrently. Every
    row ends up in exactly one of ``created`` or ``errors``.
    """

    def __init__(
        self,
        *,
        engine: ReconciliationEngine,
        resolver: DuplicateResolver,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be positive")
        self._engine = engine
        self._resolver = resolver
        self._chunk_size = chunk_size

    async def run(
        self,
        rows: Sequence[BatchRow],
        *,
        owner_id: UUID,
        source: ImportSource = ImportSource.API,
    ) -> BatchResult:
        result = BatchResult()
        candidates: list[tuple[int, BatchRow, PropertyInput]] = []

        for index, row in enumerate(rows):
            try:
                data = prepare_row(row)
            except ValidationError as exc:
                result.errors.append(BatchError(index, row, str(exc), BatchErrorKind.VALIDATION))
                continue
            except Exception as exc:  # noqa: BLE001
                log.exception("Could not prepare batch row %d", index)
                result.errors.append(BatchError(index, row, str(exc), BatchErrorKind.ERROR))
                continue

            apn = clean_parcel_number(data.apn)
            if apn is not None and await self._is_duplicate(apn, owner_id):
                result.errors.append(
                    BatchError(
                        index,
                        row,
                        str(DuplicateError(apn)),
                        BatchErrorKind.DUPLICATE,
                    )
                )
                continue
            candidates.append((index, row, data))

        for start in range(0, len(candidates), self._chunk_size):
            chunk = candidates[start : start + self._chunk_size]
            outcomes = await asyncio.gather(
                *(self._create_one(index, row, data, owner_id) for index, row, data in chunk)
            )
            for outcome in outcomes:
                if isinstance(outcome, BatchError):
                    result.errors.append(outcome)
                else:
                    result.created.append(outcome)

        result.errors.sort(key=lambda error: error.index)
        result.summary = BatchSummary(
            total=len(rows),
            successful=len(result.created),
            failed=len(result.errors),
            source=source,
        )
        log.info(
            "Batch import (%s) finished: %d created, %d failed of %d",
            source,
            result.summary.successful,
            result.summary.failed,
            result.summary.total,
        )
        return result

    async def _is_duplicate(self, apn: str, owner_id: UUID) -> bool:
        try:
            match = await self._resolver.exists(apn, owner_id)
        except Exception as exc:  # noqa: BLE001
            log.warning("Duplicate pre-check failed for APN %s, proceeding: %s", apn, exc)
            return False
        return match.found

    async def _create_one(
        self,
        index: int,
        row: BatchRow,
        data: PropertyInput,
        owner_id: UUID,
    ) -> PropertyRecord | BatchError:
        try:
            return await self._engine.create(data, owner_id=owner_id, strict_provider=False)
        except ParcelbookError as exc:
            log.warning("Batch row %d (%r) failed: %s", index, data.address, exc)
            return BatchError(index, row, str(exc), classify_error(exc))
        except Exception as exc:  # noqa: BLE001
            log.exception("Unexpected failure on batch row %d (%r)", index, data.address)
            return BatchError(index, row, str(exc), BatchErrorKind.ERROR)
