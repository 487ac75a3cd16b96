"""Ports for persisting user-owned property records."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from uuid import UUID

    from parcelbook.domain.model import PropertyRecord


@dataclass(frozen=True, slots=True, kw_only=True)
class PropertyFilter:
    """Listing filter. ``search`` is a case-insensitive substring over address, apn and zip."""

    city: str | None = None
    state: str | None = None
    tags: frozenset[str] = frozenset()
    search: str | None = None


@runtime_checkable
class PropertyRepository(Protocol):
    """Owner-scoped store of property records.

    Every read and write takes the owner so one user can never observe
    another user's rows.
    """

    async def get(self, property_id: UUID, owner_id: UUID) -> PropertyRecord | None: ...

    async def create(self, record: PropertyRecord) -> PropertyRecord | None: ...

    async def update(
        self,
        property_id: UUID,
        owner_id: UUID,
        changes: Mapping[str, object],
    ) -> PropertyRecord | None: ...

    async def list_filtered(
        self,
        owner_id: UUID,
        filters: PropertyFilter | None = None,
        *,
        limit: int | None = None,
    ) -> list[PropertyRecord]: ...


__all__ = ["PropertyFilter", "PropertyRepository"]
