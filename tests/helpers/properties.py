"""Reusable fakes and helpers for property reconciliation tests."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Literal
from uuid import UUID, uuid4

from parcelbook.domain.errors import DuplicateError, ProviderError
from parcelbook.domain.model import ParcelAttribute, ParcelRecord, PropertyRecord, SearchResult
from parcelbook.domain.ports import PropertyFilter, PropertyRepositories

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import TracebackType

    from parcelbook.domain.model import AddressQuery


def make_parcel(
    parcel_number: str | None = "050-183-176",
    *,
    external_id: str = "regrid-1",
    owner: str | None = "Jane Doe",
    year_built: int | None = 1998,
    address: str | None = "123 MAIN ST",
    city: str | None = "Springfield",
    state: str | None = "CA",
    postal_code: str | None = "90210",
    latitude: float = 34.05,
    longitude: float = -118.25,
    **attributes: object,
) -> ParcelRecord:
    """Build a normalized parcel with a realistic attribute bag."""

    bag: dict[str, object] = {
        ParcelAttribute.OWNER: owner,
        ParcelAttribute.YEAR_BUILT: year_built,
        **attributes,
    }
    return ParcelRecord(
        external_id=external_id,
        parcel_number=parcel_number,
        address_line1=address,
        city=city,
        state=state,
        postal_code=postal_code,
        geometry={"type": "Polygon", "coordinates": [[[0, 0], [0, 1], [1, 1], [0, 0]]]},
        latitude=latitude,
        longitude=longitude,
        attributes={str(key): value for key, value in bag.items()},
        raw={"id": external_id, "properties": {"fields": {"parcelnumb": parcel_number}}},
    )


def make_property(
    owner_id: UUID,
    *,
    apn: str | None = "050183176",
    address: str = "123 Main St",
    **fields: object,
) -> PropertyRecord:
    now = datetime(2024, 1, 1, tzinfo=UTC)
    return PropertyRecord(
        owner_id=owner_id,
        apn=apn,
        address=address,
        created_at=now,
        updated_at=now,
        **fields,  # pyright: ignore[reportArgumentType]
    )


class InMemoryPropertyRepository:
    """Owner-scoped dictionary store mirroring the SQLAlchemy repository contract."""

    def __init__(self, records: Sequence[PropertyRecord] = ()) -> None:
        self.records: dict[UUID, PropertyRecord] = {record.id: record for record in records}
        self.list_calls: list[tuple[UUID, PropertyFilter | None, int | None]] = []
        self.return_none_on_create = False
        self.fail_list_for: set[str] = set()

    async def get(self, property_id: UUID, owner_id: UUID) -> PropertyRecord | None:
        record = self.records.get(property_id)
        if record is None or record.owner_id != owner_id:
            return None
        return record

    async def create(self, record: PropertyRecord) -> PropertyRecord | None:
        if self.return_none_on_create:
            return None
        if record.apn is not None:
            for existing in self.records.values():
                if (
                    existing.owner_id == record.owner_id
                    and existing.apn is not None
                    and existing.apn.lower() == record.apn.lower()
                ):
                    raise DuplicateError(record.apn, existing=existing)
        self.records[record.id] = record
        return record

    async def update(
        self,
        property_id: UUID,
        owner_id: UUID,
        changes: Mapping[str, object],
    ) -> PropertyRecord | None:
        record = await self.get(property_id, owner_id)
        if record is None:
            return None
        updated = replace(record, **changes)  # pyright: ignore[reportArgumentType]
        self.records[property_id] = updated
        return updated

    async def list_filtered(
        self,
        owner_id: UUID,
        filters: PropertyFilter | None = None,
        *,
        limit: int | None = None,
    ) -> list[PropertyRecord]:
        self.list_calls.append((owner_id, filters, limit))
        if filters is not None and filters.search in self.fail_list_for:
            raise RuntimeError("search backend unavailable")
        matches = [record for record in self.records.values() if record.owner_id == owner_id]
        if filters is not None and filters.search:
            term = filters.search.lower()
            matches = [
                record
                for record in matches
                if any(
                    term in (value or "").lower()
                    for value in (record.address, record.apn, record.zip_code)
                )
            ]
        if filters is not None and filters.tags:
            matches = [record for record in matches if record.tags & filters.tags]
        return matches[:limit] if limit is not None else matches


class FakeUnitOfWork:
    def __init__(self, repository: InMemoryPropertyRepository) -> None:
        self._repositories = PropertyRepositories(properties=repository)
        self.committed = False
        self.rolled_back = False

    @property
    def repositories(self) -> PropertyRepositories:
        return self._repositories

    async def __aenter__(self) -> FakeUnitOfWork:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            await self.rollback()
        return False

    async def commit(self) -> None:
        self.committed = True

    async def rollback(self) -> None:
        self.rolled_back = True


class FakeUnitOfWorkFactory:
    """Callable handing out units of work over one shared in-memory repository."""

    def __init__(self, repository: InMemoryPropertyRepository | None = None) -> None:
        self.repository = repository or InMemoryPropertyRepository()
        self.created: list[FakeUnitOfWork] = []

    def __call__(self) -> FakeUnitOfWork:
        uow = FakeUnitOfWork(self.repository)
        self.created.append(uow)
        return uow

    @property
    def commits(self) -> int:
        return sum(1 for uow in self.created if uow.committed)


class FakeParcelLookup:
    """In-memory parcel provider keyed by raw parcel number."""

    def __init__(
        self,
        parcels: Mapping[str, ParcelRecord] | None = None,
        *,
        by_id: Mapping[str, ParcelRecord] | None = None,
        search_results: Sequence[SearchResult] = (),
        failing: Sequence[str] = (),
    ) -> None:
        self.parcels = dict(parcels or {})
        self.by_id = dict(by_id or {})
        self.search_results = list(search_results)
        self.failing = set(failing)
        self.calls: list[tuple[str, tuple[object, ...]]] = []

    def _maybe_fail(self, key: str) -> None:
        if key in self.failing:
            raise ProviderError(f"Regrid API error (503) for {key}", status=503, body="unavailable")

    async def by_identifier(
        self, parcel_number: str, region: str | None = None
    ) -> ParcelRecord | None:
        self.calls.append(("by_identifier", (parcel_number, region)))
        self._maybe_fail(parcel_number)
        return self.parcels.get(parcel_number)

    async def by_address(
        self,
        text: str,
        city: str | None = None,
        region: str | None = None,
        limit: int = 10,
    ) -> list[SearchResult]:
        self.calls.append(("by_address", (text, city, region, limit)))
        self._maybe_fail(text)
        return self.search_results[:limit]

    async def by_external_id(self, external_id: str) -> ParcelRecord | None:
        self.calls.append(("by_external_id", (external_id,)))
        self._maybe_fail(external_id)
        return self.by_id.get(external_id)

    async def batch_by_identifiers(
        self, parcel_numbers: Sequence[str], region: str | None = None
    ) -> list[ParcelRecord]:
        found: list[ParcelRecord] = []
        for number in parcel_numbers:
            if number in self.failing:
                continue
            parcel = await self.by_identifier(number, region)
            if parcel is not None:
                found.append(parcel)
        return found

    async def batch_by_addresses(self, queries: Sequence[AddressQuery]) -> list[ParcelRecord]:
        found: list[ParcelRecord] = []
        for query in queries:
            if query.text in self.failing:
                continue
            candidates = await self.by_address(query.text, query.city, query.region, limit=1)
            if candidates and (parcel := self.by_id.get(candidates[0].external_id)) is not None:
                found.append(parcel)
        return found


def new_owner() -> UUID:
    return uuid4()
