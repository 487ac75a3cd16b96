from __future__ import annotations

from uuid import uuid4

import pytest

from parcelbook.domain.errors import ValidationError
from parcelbook.domain.model import PropertyInput, PropertyRecord, clean_parcel_number


def test_from_mapping_strips_and_converts() -> None:
    data = PropertyInput.from_mapping(
        {
            "address": "  123 Main St ",
            "apn": " 050-183-176 ",
            "regrid_id": 48213,
            "city": "",
            "tags": ["rental", " duplex ", ""],
        }
    )

    assert data.address == "123 Main St"
    assert data.apn == "050-183-176"
    assert data.external_id == "48213"
    assert data.city is None
    assert data.tags == frozenset({"rental", "duplex"})


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"address": "   "},
        {"address": 12},
        {"address": "1 Main", "apn": 123},
        {"address": "1 Main", "tags": "rental"},
        {"address": "1 Main", "tags": ["ok", 3]},
    ],
)
def test_from_mapping_rejects_malformed_input(payload: dict[str, object]) -> None:
    with pytest.raises(ValidationError):
        PropertyInput.from_mapping(payload)


def test_blank_address_is_rejected_on_direct_construction() -> None:
    with pytest.raises(ValidationError):
        PropertyInput(address=" ")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("050-183-176", "050183176"),
        ("  12 34  ", "12 34"),
        ("---", None),
        ("", None),
        (None, None),
    ],
)
def test_clean_parcel_number(raw: str | None, expected: str | None) -> None:
    assert clean_parcel_number(raw) == expected


def test_property_record_defaults() -> None:
    record = PropertyRecord(owner_id=uuid4(), address="1 Main")

    assert record.tags == set()
    assert record.user_notes is None
    assert record.last_refreshed_at is None
