"""Owner-scoped duplicate detection on parcel numbers."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from parcelbook.domain.ports import PropertyFilter

if TYPE_CHECKING:
    from uuid import UUID

    from parcelbook.domain.model import PropertyRecord
    from parcelbook.domain.ports import UnitOfWorkFactory

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MatchResult:
    found: bool
    record: PropertyRecord | None = None


class DuplicateResolver:
    """Find an owner's record whose parcel number equals a candidate.

    The repository only offers a substring search across address, parcel
    number and postal code, so candidates are fetched with that search and
    then narrowed to an exact case-insensitive match on the parcel number.
    The candidate fetch is unbounded so a true match can never fall outside
    a capped result window. The candidate is compared as given; callers clean
    separators beforehand.
    """

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def exists(self, parcel_number: str, owner_id: UUID) -> MatchResult:
        wanted = parcel_number.strip().casefold()
        if not wanted:
            return MatchResult(found=False)

        async with self._uow_factory() as uow:
            candidates = await uow.repositories.properties.list_filtered(
                owner_id,
                PropertyFilter(search=parcel_number.strip()),
                limit=None,
            )

        for candidate in candidates:
            if candidate.apn is not None and candidate.apn.strip().casefold() == wanted:
                log.debug("APN %s matches property %s", parcel_number, candidate.id)
                return MatchResult(found=True, record=candidate)
        return MatchResult(found=False)
