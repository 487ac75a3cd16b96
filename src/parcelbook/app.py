"""Application orchestration entry points.

Each function wires the configured adapters, runs one domain operation on a
fresh event loop and tears the database engine down again.
"""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING

from parcelbook.adapters.regrid import RegridLookupClient
from parcelbook.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyPropertyUnitOfWork,
    shutdown,
    startup,
)
from parcelbook.config import get_batch_config, get_provider_config
from parcelbook.domain.model import ImportSource
from parcelbook.domain.reconciliation import (
    BatchCoordinator,
    DuplicateResolver,
    ReconciliationEngine,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence
    from uuid import UUID

    from parcelbook.domain.model import PropertyInput, PropertyRecord, SearchResult
    from parcelbook.domain.ports import ParcelLookup, UnitOfWorkFactory
    from parcelbook.domain.reconciliation import BatchResult, BatchRow, MatchResult

log = getLogger(__name__)


def build_lookup() -> RegridLookupClient:
    return RegridLookupClient(config=get_provider_config())


async def _run[T](
    operation: Callable[[UnitOfWorkFactory], Awaitable[T]],
    unit_of_work_factory: UnitOfWorkFactory | None,
    owned_lookup: RegridLookupClient | None = None,
) -> T:
    """Run ``operation``, closing the lookup client and database engine this call opened."""

    try:
        if unit_of_work_factory is not None:
            return await operation(unit_of_work_factory)
        await startup()
        try:
            return await operation(SqlAlchemyPropertyUnitOfWork)
        finally:
            await shutdown()
    finally:
        if owned_lookup is not None:
            await owned_lookup.aclose()


def create_property(
    data: PropertyInput,
    *,
    owner_id: UUID,
    lookup: ParcelLookup | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> PropertyRecord:
    """Create one property, enriched from the parcel provider."""

    owned_lookup = None if lookup is not None else build_lookup()
    effective_lookup = lookup or owned_lookup

    async def operation(uow_factory: UnitOfWorkFactory) -> PropertyRecord:
        engine = ReconciliationEngine(lookup=effective_lookup, uow_factory=uow_factory)
        return await engine.create(data, owner_id=owner_id)

    return asyncio.run(_run(operation, unit_of_work_factory, owned_lookup))


def refresh_property(
    property_id: UUID,
    *,
    owner_id: UUID,
    lookup: ParcelLookup | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> PropertyRecord:
    owned_lookup = None if lookup is not None else build_lookup()
    effective_lookup = lookup or owned_lookup

    async def operation(uow_factory: UnitOfWorkFactory) -> PropertyRecord:
        engine = ReconciliationEngine(lookup=effective_lookup, uow_factory=uow_factory)
        return await engine.refresh(property_id, owner_id=owner_id)

    return asyncio.run(_run(operation, unit_of_work_factory, owned_lookup))


def check_duplicate(
    parcel_number: str,
    *,
    owner_id: UUID,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> MatchResult:
    async def operation(uow_factory: UnitOfWorkFactory) -> MatchResult:
        engine = ReconciliationEngine(lookup=None, uow_factory=uow_factory)
        return await engine.check_duplicate(parcel_number, owner_id=owner_id)

    return asyncio.run(_run(operation, unit_of_work_factory))


def bulk_create(
    rows: Sequence[BatchRow],
    *,
    owner_id: UUID,
    source: ImportSource = ImportSource.API,
    lookup: ParcelLookup | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    chunk_size: int | None = None,
) -> BatchResult:
    """Create many properties, isolating per-row failures.

    Every row goes through one lookup client, so its rate limit bounds the whole batch.
    """

    owned_lookup = None if lookup is not None else build_lookup()
    effective_lookup = lookup or owned_lookup
    effective_chunk_size = chunk_size or get_batch_config().chunk_size
    log.info(
        "Starting batch import: rows=%s, source=%s, chunk_size=%s",
        len(rows),
        source,
        effective_chunk_size,
    )

    async def operation(uow_factory: UnitOfWorkFactory) -> BatchResult:
        resolver = DuplicateResolver(uow_factory)
        engine = ReconciliationEngine(
            lookup=effective_lookup, uow_factory=uow_factory, resolver=resolver
        )
        coordinator = BatchCoordinator(
            engine=engine, resolver=resolver, chunk_size=effective_chunk_size
        )
        return await coordinator.run(rows, owner_id=owner_id, source=source)

    return asyncio.run(_run(operation, unit_of_work_factory, owned_lookup))


def search_addresses(
    text: str,
    *,
    city: str | None = None,
    region: str | None = None,
    limit: int = 10,
    lookup: ParcelLookup | None = None,
) -> list[SearchResult]:
    if lookup is not None:
        return asyncio.run(lookup.by_address(text, city, region, limit))

    async def search() -> list[SearchResult]:
        async with build_lookup() as client:
            return await client.by_address(text, city, region, limit)

    return asyncio.run(search())
