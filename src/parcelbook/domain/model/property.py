"""User-owned property records and the caller input that creates them."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Final, cast
from uuid import UUID, uuid4

from parcelbook.domain.errors import ValidationError

if TYPE_CHECKING:
    from datetime import datetime


class ImportSource(StrEnum):
    CSV = "csv"
    MANUAL = "manual"
    API = "api"


# Fields a refresh may replace. Order matches the property table.
PROVIDER_FIELDS: Final[tuple[str, ...]] = (
    "external_id",
    "apn",
    "address",
    "city",
    "state",
    "zip_code",
    "geometry",
    "lat",
    "lng",
    "owner",
    "year_built",
    "last_sale_price",
    "sale_date",
    "county",
    "qoz_status",
    "improvement_value",
    "land_value",
    "assessed_value",
    "use_code",
    "use_description",
    "zoning",
    "zoning_description",
    "subdivision",
    "lot_size_sqft",
    "lot_size_acres",
    "building_sqft",
)

# Fields only the user ever writes.
USER_FIELDS: Final[tuple[str, ...]] = (
    "user_notes",
    "tags",
    "insurance_provider",
    "maintenance_history",
)


@dataclass(eq=False, kw_only=True)
class PropertyRecord:
    """A parcel tracked by one user, combining provider data with user-authored fields."""

    id: UUID = field(default_factory=uuid4)
    owner_id: UUID
    address: str

    external_id: str | None = None
    apn: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    geometry: dict[str, object] | None = None
    lat: float | None = None
    lng: float | None = None

    owner: str | None = None
    year_built: int | None = None
    last_sale_price: float | None = None
    sale_date: str | None = None
    county: str | None = None
    qoz_status: str | None = None
    improvement_value: float | None = None
    land_value: float | None = None
    assessed_value: float | None = None
    use_code: str | None = None
    use_description: str | None = None
    zoning: str | None = None
    zoning_description: str | None = None
    subdivision: str | None = None
    lot_size_sqft: float | None = None
    lot_size_acres: float | None = None
    building_sqft: float | None = None

    property_data: dict[str, object] | None = None

    user_notes: str | None = None
    tags: set[str] = field(default_factory=set[str])
    insurance_provider: str | None = None
    maintenance_history: str | None = None

    created_at: datetime | None = None
    updated_at: datetime | None = None
    last_refreshed_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.address or not self.address.strip():
            raise ValueError("PropertyRecord.address must not be blank")


@dataclass(frozen=True, slots=True, kw_only=True)
class PropertyInput:
    """Caller-supplied data for creating one property."""

    address: str
    apn: str | None = None
    external_id: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    user_notes: str | None = None
    tags: frozenset[str] = frozenset()
    insurance_provider: str | None = None
    maintenance_history: str | None = None

    def __post_init__(self) -> None:
        if not self.address.strip():
            raise ValidationError("address must not be blank")

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> PropertyInput:
        """Validate an untyped payload (JSON body, CSV row) into a ``PropertyInput``."""

        address = data.get("address")
        if not isinstance(address, str) or not address.strip():
            raise ValidationError("address is required and must be a non-empty string")
        external = data.get("external_id", data.get("regrid_id"))
        if isinstance(external, int) and not isinstance(external, bool):
            external = str(external)
        return cls(
            address=address.strip(),
            apn=_optional_text(data, "apn"),
            external_id=_optional_text({"external_id": external}, "external_id"),
            city=_optional_text(data, "city"),
            state=_optional_text(data, "state"),
            zip_code=_optional_text(data, "zip_code"),
            user_notes=_optional_text(data, "user_notes"),
            tags=_tags(data.get("tags")),
            insurance_provider=_optional_text(data, "insurance_provider"),
            maintenance_history=_optional_text(data, "maintenance_history"),
        )


def _optional_text(data: Mapping[str, object], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value.strip() or None


def _tags(value: object) -> frozenset[str]:
    if value is None:
        return frozenset()
    if isinstance(value, str) or not isinstance(value, list | tuple | set | frozenset):
        raise ValidationError("tags must be a list of strings")
    items = cast("list[object]", list(value))
    if not all(isinstance(item, str) for item in items):
        raise ValidationError("tags must be a list of strings")
    return frozenset(cast("str", item).strip() for item in items if cast("str", item).strip())
