"""Repository implementations backed by SQLAlchemy async sessions."""

from __future__ import annotations

from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, cast

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError

from parcelbook.adapters.sqlalchemy.mappings import property_table
from parcelbook.domain.errors import DuplicateError
from parcelbook.domain.model import PropertyRecord

if TYPE_CHECKING:
    import uuid
    from collections.abc import Mapping

    from sqlalchemy.ext.asyncio import AsyncSession

    from parcelbook.domain.ports import PropertyFilter

log = getLogger(__name__)

_IMMUTABLE_COLUMNS = frozenset({"id", "owner_id", "created_at"})


class SqlAlchemyPropertyRepository:
    """Owner-scoped property store. Every statement filters on ``owner_id``."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, property_id: uuid.UUID, owner_id: uuid.UUID) -> PropertyRecord | None:
        stmt = (
            select(PropertyRecord)
            .where(property_table.c.id == property_id)
            .where(property_table.c.owner_id == owner_id)
        )
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def create(self, record: PropertyRecord) -> PropertyRecord | None:
        now = datetime.now(UTC)
        record.created_at = record.created_at or now
        record.updated_at = record.updated_at or record.created_at
        self.session.add(record)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            await self.session.rollback()
            log.info("Rejected duplicate APN %s for owner %s", record.apn, record.owner_id)
            raise DuplicateError(record.apn or "") from exc
        return await self.get(record.id, record.owner_id)

    async def update(
        self,
        property_id: uuid.UUID,
        owner_id: uuid.UUID,
        changes: Mapping[str, object],
    ) -> PropertyRecord | None:
        record = await self.get(property_id, owner_id)
        if record is None:
            return None
        for key, value in changes.items():
            if key in _IMMUTABLE_COLUMNS:
                continue
            if key not in property_table.c:
                raise KeyError(f"Unknown property column: {key}")
            setattr(record, key, value)
        record.updated_at = cast("datetime | None", changes.get("updated_at")) or datetime.now(UTC)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            await self.session.rollback()
            raise DuplicateError(record.apn or "") from exc
        return record

    async def list_filtered(
        self,
        owner_id: uuid.UUID,
        filters: PropertyFilter | None = None,
        *,
        limit: int | None = None,
    ) -> list[PropertyRecord]:
        stmt = select(PropertyRecord).where(property_table.c.owner_id == owner_id)
        if filters is not None:
            if filters.city:
                stmt = stmt.where(func.lower(property_table.c.city) == filters.city.lower())
            if filters.state:
                stmt = stmt.where(func.lower(property_table.c.state) == filters.state.lower())
            if filters.search:
                term = filters.search
                stmt = stmt.where(
                    or_(
                        property_table.c.address.icontains(term, autoescape=True),
                        property_table.c.apn.icontains(term, autoescape=True),
                        property_table.c.zip_code.icontains(term, autoescape=True),
                    )
                )
        stmt = stmt.order_by(property_table.c.created_at.desc())

        records = list((await self.session.execute(stmt)).scalars())
        if filters is not None and filters.tags:
            # Tags are a JSON column; any requested tag matches.
            records = [record for record in records if record.tags & filters.tags]
        return records[:limit] if limit is not None else records
