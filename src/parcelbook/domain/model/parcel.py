"""Canonical, provider-schema-independent parcel representation."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class ParcelAttribute(StrEnum):
    """Canonical keys of the open-ended attribute bag."""

    OWNER = "owner"
    LOT_SIZE_SQFT = "lot_size_sqft"
    LOT_SIZE_ACRES = "lot_size_acres"
    BUILDING_SQFT = "building_sqft"
    YEAR_BUILT = "year_built"
    ZONING = "zoning"
    ZONING_DESCRIPTION = "zoning_description"
    USE_CODE = "use_code"
    USE_DESCRIPTION = "use_description"
    PROPERTY_TYPE = "property_type"
    ASSESSED_VALUE = "assessed_value"
    IMPROVEMENT_VALUE = "improvement_value"
    LAND_VALUE = "land_value"
    LAST_SALE_PRICE = "last_sale_price"
    SALE_DATE = "sale_date"
    COUNTY = "county"
    QOZ_STATUS = "qoz_status"
    SUBDIVISION = "subdivision"


@dataclass(frozen=True, slots=True, kw_only=True)
class ParcelRecord:
    """One parcel as reported by the provider, after normalization.

    Every field tolerates absence. Coordinates default to ``0.0`` when the
    provider omits them or sends something unparseable.
    """

    external_id: str | None = None
    parcel_number: str | None = None
    address_line1: str | None = None
    address_line2: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    geometry: dict[str, object] | None = None
    latitude: float = 0.0
    longitude: float = 0.0
    attributes: dict[str, object] = field(default_factory=dict[str, object])
    raw: dict[str, object] = field(default_factory=dict[str, object])

    def attribute(self, key: str) -> object | None:
        return self.attributes.get(key)


@dataclass(frozen=True, slots=True, kw_only=True)
class SearchResult:
    """Ranked address-search candidate."""

    external_id: str
    parcel_number: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    score: float = 0.0


@dataclass(frozen=True, slots=True, kw_only=True)
class AddressQuery:
    text: str
    city: str | None = None
    region: str | None = None


def clean_parcel_number(value: str | None) -> str | None:
    """Strip surrounding whitespace and dash separators; blank becomes ``None``."""

    if value is None:
        return None
    cleaned = value.strip().replace("-", "")
    return cleaned or None
