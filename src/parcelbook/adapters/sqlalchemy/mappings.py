"""SQLAlchemy mapping metadata for property records."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING, cast

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Dialect,
    Float,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    Uuid,
    func,
    orm,
)

from parcelbook.domain.model import PropertyRecord

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class TagSetType(TypeDecorator[set[str]]):
    """Tags stored as a sorted JSON array."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: set[str] | None, dialect: Dialect) -> str:
        _ = dialect
        return json.dumps(sorted(value or ()))

    def process_result_value(self, value: str | None, dialect: Dialect) -> set[str]:
        _ = dialect
        if not value:
            return set()
        payload = json.loads(value)
        if not isinstance(payload, list):
            return set()
        return {str(item) for item in cast("list[object]", payload)}


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "pk": "pk_%(table_name)s",
}

property_table = Table(
    "property",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("owner_id", UUIDColumnType, nullable=False, index=True),
    Column("external_id", String, nullable=True),
    Column("apn", String, nullable=True),
    Column("address", String, nullable=False),
    Column("city", String, nullable=True),
    Column("state", String, nullable=True),
    Column("zip_code", String, nullable=True),
    Column("geometry", JSON, nullable=True),
    Column("lat", Float, nullable=True),
    Column("lng", Float, nullable=True),
    Column("owner", String, nullable=True),
    Column("year_built", Integer, nullable=True),
    Column("last_sale_price", Float, nullable=True),
    Column("sale_date", String, nullable=True),
    Column("county", String, nullable=True),
    Column("qoz_status", String, nullable=True),
    Column("improvement_value", Float, nullable=True),
    Column("land_value", Float, nullable=True),
    Column("assessed_value", Float, nullable=True),
    Column("use_code", String, nullable=True),
    Column("use_description", String, nullable=True),
    Column("zoning", String, nullable=True),
    Column("zoning_description", String, nullable=True),
    Column("subdivision", String, nullable=True),
    Column("lot_size_sqft", Float, nullable=True),
    Column("lot_size_acres", Float, nullable=True),
    Column("building_sqft", Float, nullable=True),
    Column("property_data", JSON, nullable=True),
    Column("user_notes", Text, nullable=True),
    Column("tags", TagSetType(), nullable=False),
    Column("insurance_provider", String, nullable=True),
    Column("maintenance_history", Text, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    Column("last_refreshed_at", UTCDateTime(), nullable=True),
)

# One parcel number per owner, compared case-insensitively.
Index(
    "uq_property_owner_apn",
    property_table.c.owner_id,
    func.lower(property_table.c.apn),
    unique=True,
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")
    mapper_registry.map_imperatively(PropertyRecord, property_table)
    return mapper_registry


async def create_all_tables(engine: AsyncEngine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    async with engine.begin() as connection:
        await connection.run_sync(mapper_registry.metadata.create_all)
