"""Create and refresh flows for user-owned property records."""

from __future__ import annotations

from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from parcelbook.domain.errors import (
    DuplicateError,
    NotFoundError,
    PersistenceIntegrityError,
    ProviderError,
    ProviderUnavailableError,
    RefreshIneligibleError,
    ValidationError,
)
from parcelbook.domain.model import clean_parcel_number

from .duplicates import DuplicateResolver, MatchResult
from .merge import merge_for_create, merge_for_refresh

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

    from parcelbook.domain.model import ParcelRecord, PropertyInput, PropertyRecord
    from parcelbook.domain.ports import ParcelLookup, UnitOfWorkFactory

log = getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ReconciliationEngine:
    """Orchestrates provider lookups, duplicate checks, merging and persistence.

    Every persistence call is scoped to the acting owner. Single-item
    operations raise the first error they meet and commit nothing on failure.
    """

    def __init__(
        self,
        *,
        lookup: ParcelLookup | None,
        uow_factory: UnitOfWorkFactory,
        resolver: DuplicateResolver | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._lookup = lookup
        self._uow_factory = uow_factory
        self._resolver = resolver or DuplicateResolver(uow_factory)
        self._clock = clock

    async def check_duplicate(self, parcel_number: str, *, owner_id: UUID) -> MatchResult:
        cleaned = clean_parcel_number(parcel_number)
        if cleaned is None:
            raise ValidationError("APN must not be blank")
        return await self._resolver.exists(cleaned, owner_id)

    async def create(
        self,
        data: PropertyInput,
        *,
        owner_id: UUID,
        strict_provider: bool = True,
    ) -> PropertyRecord:
        """Create a property for ``owner_id``.

        With ``strict_provider`` a provider failure aborts the create with
        ``ProviderUnavailableError``; otherwise the record is built from the
        caller's fields alone.
        """

        apn = clean_parcel_number(data.apn)
        if apn is not None:
            match = await self._resolver.exists(apn, owner_id)
            if match.found:
                raise DuplicateError(apn, existing=match.record)

        try:
            parcel = await self._fetch_for_create(data)
        except ProviderError as exc:
            if strict_provider:
                raise ProviderUnavailableError(
                    f"Parcel provider unavailable while creating {data.address!r}: {exc}"
                ) from exc
            log.warning("Creating %r without provider data: %s", data.address, exc)
            parcel = None

        record = merge_for_create(data, parcel, owner_id=owner_id, now=self._clock())

        async with self._uow_factory() as uow:
            stored = await uow.repositories.properties.create(record)
            if stored is None:
                raise PersistenceIntegrityError(
                    f"Persistence returned no record for new property {data.address!r}"
                )
            await uow.commit()

        log.info("Created property %s (APN %s) for owner %s", stored.id, stored.apn, owner_id)
        return stored

    async def refresh(self, property_id: UUID, *, owner_id: UUID) -> PropertyRecord:
        """Re-fetch provider data for a stored property without touching user-authored fields."""

        async with self._uow_factory() as uow:
            existing = await uow.repositories.properties.get(property_id, owner_id)
        if existing is None:
            raise NotFoundError(property_id)
        if existing.apn is None or not existing.apn.strip():
            raise RefreshIneligibleError(property_id)

        try:
            parcel = await self.lookup.by_identifier(existing.apn, existing.state)
        except ProviderError as exc:
            raise ProviderUnavailableError(
                f"Parcel provider unavailable while refreshing {property_id}: {exc}"
            ) from exc
        if parcel is None:
            log.warning("Provider returned no parcel for APN %s; keeping stored data", existing.apn)

        changes = merge_for_refresh(existing, parcel, now=self._clock())

        async with self._uow_factory() as uow:
            updated = await uow.repositories.properties.update(property_id, owner_id, changes)
            if updated is None:
                raise NotFoundError(property_id)
            await uow.commit()

        log.info("Refreshed property %s for owner %s", property_id, owner_id)
        return updated

    @property
    def lookup(self) -> ParcelLookup:
        if self._lookup is None:
            raise RuntimeError("ReconciliationEngine was built without a parcel lookup")
        return self._lookup

    async def _fetch_for_create(self, data: PropertyInput) -> ParcelRecord | None:
        if data.apn:
            return await self.lookup.by_identifier(data.apn, data.state)
        if data.external_id:
            return await self.lookup.by_external_id(data.external_id)
        candidates = await self.lookup.by_address(data.address, data.city, data.state, limit=1)
        if not candidates:
            log.info("No provider candidates for %r", data.address)
            return None
        return await self.lookup.by_external_id(candidates[0].external_id)
