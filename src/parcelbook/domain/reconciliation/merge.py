"""Merge provider parcel data with caller input and stored records."""

from __future__ import annotations

from typing import TYPE_CHECKING

from parcelbook.domain.model import (
    PROVIDER_FIELDS,
    ParcelAttribute,
    PropertyRecord,
    clean_parcel_number,
)

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from parcelbook.domain.model import ParcelRecord, PropertyInput

# PropertyRecord field -> ParcelRecord attribute bag key.
_ATTRIBUTE_FIELDS: dict[str, ParcelAttribute] = {
    "owner": ParcelAttribute.OWNER,
    "year_built": ParcelAttribute.YEAR_BUILT,
    "last_sale_price": ParcelAttribute.LAST_SALE_PRICE,
    "sale_date": ParcelAttribute.SALE_DATE,
    "county": ParcelAttribute.COUNTY,
    "qoz_status": ParcelAttribute.QOZ_STATUS,
    "improvement_value": ParcelAttribute.IMPROVEMENT_VALUE,
    "land_value": ParcelAttribute.LAND_VALUE,
    "assessed_value": ParcelAttribute.ASSESSED_VALUE,
    "use_code": ParcelAttribute.USE_CODE,
    "use_description": ParcelAttribute.USE_DESCRIPTION,
    "zoning": ParcelAttribute.ZONING,
    "zoning_description": ParcelAttribute.ZONING_DESCRIPTION,
    "subdivision": ParcelAttribute.SUBDIVISION,
    "lot_size_sqft": ParcelAttribute.LOT_SIZE_SQFT,
    "lot_size_acres": ParcelAttribute.LOT_SIZE_ACRES,
    "building_sqft": ParcelAttribute.BUILDING_SQFT,
}


def _present(value: object) -> bool:
    if value is None:
        return False
    return not (isinstance(value, str) and not value.strip())


def provider_values(parcel: ParcelRecord) -> dict[str, object]:
    """Project a parcel onto the provider-derived property fields.

    Absent values map to ``None``. A zero centroid means the provider had none.
    """

    values: dict[str, object] = {
        "external_id": parcel.external_id,
        "apn": clean_parcel_number(parcel.parcel_number),
        "address": parcel.address_line1,
        "city": parcel.city,
        "state": parcel.state,
        "zip_code": parcel.postal_code,
        "geometry": parcel.geometry,
        "lat": parcel.latitude or None,
        "lng": parcel.longitude or None,
    }
    for field_name, key in _ATTRIBUTE_FIELDS.items():
        values[field_name] = parcel.attribute(key)
    # Opportunity-zone status arrives verbatim (often a bool); the column is text.
    qoz = values["qoz_status"]
    if qoz is not None and not isinstance(qoz, str):
        values["qoz_status"] = str(qoz)
    return {key: (value if _present(value) else None) for key, value in values.items()}


def merge_for_create(
    data: PropertyInput,
    parcel: ParcelRecord | None,
    *,
    owner_id: UUID,
    now: datetime,
) -> PropertyRecord:
    """Build a new record: provider values win, caller values fill the gaps.

    User-authored fields always come from ``data``.
    """

    caller: dict[str, object] = {
        "external_id": data.external_id,
        "apn": clean_parcel_number(data.apn),
        "address": data.address,
        "city": data.city,
        "state": data.state,
        "zip_code": data.zip_code,
    }
    fresh = provider_values(parcel) if parcel is not None else {}
    merged: dict[str, object] = {}
    for field_name in PROVIDER_FIELDS:
        value = fresh.get(field_name)
        merged[field_name] = value if value is not None else caller.get(field_name)

    return PropertyRecord(
        owner_id=owner_id,
        **merged,  # pyright: ignore[reportArgumentType]
        property_data=dict(parcel.raw) if parcel is not None and parcel.raw else None,
        user_notes=data.user_notes,
        tags=set(data.tags),
        insurance_provider=data.insurance_provider,
        maintenance_history=data.maintenance_history,
        created_at=now,
        updated_at=now,
        last_refreshed_at=now if parcel is not None else None,
    )


def merge_for_refresh(
    existing: PropertyRecord,
    parcel: ParcelRecord | None,
    *,
    now: datetime,
) -> dict[str, object]:
    """Changes for a refresh: present provider values overwrite, absent ones keep the stored value.

    User-authored fields are never part of the change set. Without provider
    data only ``updated_at`` changes.
    """

    if parcel is None:
        return {"updated_at": now}

    fresh = provider_values(parcel)
    changes: dict[str, object] = {}
    for field_name in PROVIDER_FIELDS:
        value = fresh.get(field_name)
        changes[field_name] = value if value is not None else getattr(existing, field_name)
    changes["property_data"] = dict(parcel.raw) if parcel.raw else existing.property_data
    changes["updated_at"] = now
    changes["last_refreshed_at"] = now
    return changes
