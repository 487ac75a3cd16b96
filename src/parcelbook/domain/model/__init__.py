"""Public domain model surface."""

from __future__ import annotations

from parcelbook.domain.model.parcel import (
    AddressQuery,
    ParcelAttribute,
    ParcelRecord,
    SearchResult,
    clean_parcel_number,
)
from parcelbook.domain.model.property import (
    PROVIDER_FIELDS,
    USER_FIELDS,
    ImportSource,
    PropertyInput,
    PropertyRecord,
)

__all__ = [
    "PROVIDER_FIELDS",
    "USER_FIELDS",
    "AddressQuery",
    "ImportSource",
    "ParcelAttribute",
    "ParcelRecord",
    "PropertyInput",
    "PropertyRecord",
    "SearchResult",
    "clean_parcel_number",
]
