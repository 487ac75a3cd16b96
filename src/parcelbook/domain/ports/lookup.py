"""Port for looking up parcels at an external provider."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from parcelbook.domain.model import AddressQuery, ParcelRecord, SearchResult


@runtime_checkable
class ParcelLookup(Protocol):
    """Read-only access to a parcel data provider.

    Single lookups return ``None`` when the provider has no match and raise
    ``ProviderError`` when the provider cannot be reached or answers with an
    error status. Batch lookups never raise for individual items.
    """

    async def by_identifier(
        self, parcel_number: str, region: str | None = None
    ) -> ParcelRecord | None: ...

    async def by_address(
        self,
        text: str,
        city: str | None = None,
        region: str | None = None,
        limit: int = 10,
    ) -> list[SearchResult]: ...

    async def by_external_id(self, external_id: str) -> ParcelRecord | None: ...

    async def batch_by_identifiers(
        self, parcel_numbers: Sequence[str], region: str | None = None
    ) -> list[ParcelRecord]: ...

    async def batch_by_addresses(self, queries: Sequence[AddressQuery]) -> list[ParcelRecord]: ...


__all__ = ["ParcelLookup"]
