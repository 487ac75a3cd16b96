"""Translate Regrid parcel features into canonical ``ParcelRecord`` values.

Regrid has moved parcel fields around between API versions: a value may sit
under ``properties.fields``, under ``fields``, directly on ``properties`` or on
the feature itself, and several fields were renamed along the way. Each
canonical field is therefore resolved through an ordered tuple of accessors;
the first accessor yielding a present value wins. Accessors only ever read
mappings, so a malformed feature degrades to ``None``/defaults instead of
raising.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING, Final, cast

from parcelbook.domain.model import ParcelAttribute, ParcelRecord, SearchResult

if TYPE_CHECKING:
    from .schema import SearchHit

log = getLogger(__name__)

type RawMapping = Mapping[str, object]
type Container = Callable[[RawMapping], RawMapping | None]
type Accessor = Callable[[RawMapping], object]
type Parser = Callable[[object], object]


# Containers ------------------------------------------------------------------


def _as_mapping(value: object) -> RawMapping | None:
    if isinstance(value, Mapping):
        return cast("RawMapping", value)
    return None


def _properties_fields(raw: RawMapping) -> RawMapping | None:
    properties = _as_mapping(raw.get("properties"))
    return _as_mapping(properties.get("fields")) if properties is not None else None


def _fields(raw: RawMapping) -> RawMapping | None:
    return _as_mapping(raw.get("fields"))


def _properties(raw: RawMapping) -> RawMapping | None:
    return _as_mapping(raw.get("properties"))


def _top_level(raw: RawMapping) -> RawMapping | None:
    return raw


# Highest precedence first.
CONTAINERS: Final[tuple[Container, ...]] = (
    _properties_fields,
    _fields,
    _properties,
    _top_level,
)


# Accessors -------------------------------------------------------------------


def _lookup(container: Container, key: str, raw: RawMapping) -> object:
    source = container(raw)
    return source.get(key) if source is not None else None


def _nested(container: Container, outer: str, key: str, raw: RawMapping) -> object:
    nested = _as_mapping(_lookup(container, outer, raw))
    return nested.get(key) if nested is not None else None


def key_accessors(*aliases: str) -> tuple[Accessor, ...]:
    """Accessors for ``aliases`` across every container, container order first."""

    return tuple(partial(_lookup, container, alias) for container in CONTAINERS for alias in aliases)


def nested_accessors(outer: str, key: str) -> tuple[Accessor, ...]:
    return tuple(partial(_nested, container, outer, key) for container in CONTAINERS)


def is_present(value: object) -> bool:
    if value is None:
        return False
    return not (isinstance(value, str) and not value.strip())


def first_present(accessors: tuple[Accessor, ...], raw: RawMapping) -> object | None:
    for accessor in accessors:
        value = accessor(raw)
        if is_present(value):
            return value
    return None


# Parsers ---------------------------------------------------------------------


def parse_float(value: object) -> float | None:
    """Parse a number from numeric or string input (``"1,250.5"``, ``"$90000"``)."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        text = value.strip().replace(",", "").replace("$", "")
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def parse_int(value: object) -> int | None:
    number = parse_float(value)
    return int(number) if number is not None else None


def parse_text(value: object) -> str | None:
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, int | float | bool):
        return str(value)
    return None


def parse_verbatim(value: object) -> object:
    """Keep scalar provider values exactly as sent; containers are not a field value."""

    if isinstance(value, str | int | float | bool):
        return value
    return None


def parse_coordinate(value: object) -> float:
    number = parse_float(value)
    return number if number is not None else 0.0


def parse_address_line(value: object) -> str | None:
    mapping = _as_mapping(value)
    if mapping is not None:
        return parse_text(mapping.get("line1"))
    return parse_text(value)


# Field rules -----------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FieldRule:
    """Where to find one canonical field and how to parse it."""

    name: str
    aliases: tuple[str, ...]
    parse: Parser = parse_text
    before: tuple[Accessor, ...] = ()
    after: tuple[Accessor, ...] = ()

    @property
    def accessors(self) -> tuple[Accessor, ...]:
        return (*self.before, *key_accessors(*self.aliases), *self.after)

    def resolve(self, raw: RawMapping) -> object:
        return self.parse(first_present(self.accessors, raw))


RECORD_RULES: Final[tuple[FieldRule, ...]] = (
    FieldRule(
        "external_id",
        ("id", "ll_uuid"),
        before=(partial(_lookup, _top_level, "id"),),
    ),
    FieldRule("parcel_number", ("parcelnumb", "apn", "parcel_number")),
    FieldRule("address_line1", ("address", "saddress"), parse=parse_address_line),
    FieldRule("address_line2", ("address2", "sunit"), after=nested_accessors("address", "line2")),
    FieldRule("city", ("scity", "city"), after=nested_accessors("address", "city")),
    FieldRule("state", ("state2", "state"), after=nested_accessors("address", "state")),
    FieldRule("postal_code", ("szip5", "szip", "zip"), after=nested_accessors("address", "zip")),
    FieldRule(
        "latitude",
        ("lat",),
        parse=parse_coordinate,
        after=nested_accessors("centroid", "lat"),
    ),
    FieldRule(
        "longitude",
        ("lon", "lng"),
        parse=parse_coordinate,
        after=nested_accessors("centroid", "lng"),
    ),
)

ATTRIBUTE_RULES: Final[tuple[FieldRule, ...]] = (
    FieldRule(ParcelAttribute.OWNER, ("owner",)),
    FieldRule(
        ParcelAttribute.LOT_SIZE_SQFT, ("ll_gissqft", "sqft", "lot_size_sqft"), parse=parse_float
    ),
    FieldRule(
        ParcelAttribute.LOT_SIZE_ACRES,
        ("ll_gisacre", "gisacre", "lot_acres", "lot_size_acres"),
        parse=parse_float,
    ),
    FieldRule(
        ParcelAttribute.BUILDING_SQFT,
        ("building_sqft", "ll_bldg_footprint_sqft"),
        parse=parse_float,
    ),
    FieldRule(ParcelAttribute.YEAR_BUILT, ("yearbuilt", "year_built"), parse=parse_int),
    FieldRule(ParcelAttribute.ZONING, ("zoning",)),
    FieldRule(ParcelAttribute.ZONING_DESCRIPTION, ("zoning_description",)),
    FieldRule(ParcelAttribute.USE_CODE, ("usecode", "use_code")),
    FieldRule(ParcelAttribute.USE_DESCRIPTION, ("usedesc", "use_description")),
    FieldRule(ParcelAttribute.PROPERTY_TYPE, ("property_type",)),
    FieldRule(ParcelAttribute.ASSESSED_VALUE, ("assessed_value", "parval"), parse=parse_float),
    FieldRule(
        ParcelAttribute.IMPROVEMENT_VALUE, ("improvval", "improvement_value"), parse=parse_float
    ),
    FieldRule(ParcelAttribute.LAND_VALUE, ("landval", "land_value"), parse=parse_float),
    FieldRule(
        ParcelAttribute.LAST_SALE_PRICE,
        ("saleprice", "sale_price", "last_sale_price"),
        parse=parse_float,
    ),
    FieldRule(ParcelAttribute.SALE_DATE, ("saledate", "sale_date")),
    FieldRule(ParcelAttribute.COUNTY, ("county",)),
    FieldRule(
        ParcelAttribute.QOZ_STATUS,
        ("qoz", "qoz_status", "qualified_opportunity_zone"),
        parse=parse_verbatim,
    ),
    FieldRule(ParcelAttribute.SUBDIVISION, ("subdivision",)),
)

_CONSUMED_KEYS: Final[frozenset[str]] = frozenset(
    alias for rule in (*RECORD_RULES, *ATTRIBUTE_RULES) for alias in rule.aliases
) | frozenset(str(rule.name) for rule in ATTRIBUTE_RULES)


def _passthrough(raw: RawMapping) -> dict[str, object]:
    """Unmapped leaf fields, higher-precedence containers overwriting lower ones."""

    collected: dict[str, object] = {}
    for container in reversed(CONTAINERS):
        source = container(raw)
        if source is None:
            continue
        for key, value in source.items():
            if key in _CONSUMED_KEYS or isinstance(value, Mapping):
                continue
            collected[key] = value
    return collected


# Public API ------------------------------------------------------------------


def normalize_parcel(raw: object) -> ParcelRecord:
    """Map one raw provider feature to a ``ParcelRecord``. Never raises."""

    source = _as_mapping(raw)
    if source is None:
        log.debug("Ignoring non-mapping parcel payload of type %s", type(raw).__name__)
        return ParcelRecord()

    values = {rule.name: rule.resolve(source) for rule in RECORD_RULES}
    canonical = {str(rule.name): rule.resolve(source) for rule in ATTRIBUTE_RULES}
    geometry = _as_mapping(source.get("geometry"))

    return ParcelRecord(
        external_id=cast("str | None", values["external_id"]),
        parcel_number=cast("str | None", values["parcel_number"]),
        address_line1=cast("str | None", values["address_line1"]),
        address_line2=cast("str | None", values["address_line2"]),
        city=cast("str | None", values["city"]),
        state=cast("str | None", values["state"]),
        postal_code=cast("str | None", values["postal_code"]),
        geometry=dict(geometry) if geometry is not None else None,
        latitude=cast("float", values["latitude"]),
        longitude=cast("float", values["longitude"]),
        attributes={**_passthrough(source), **canonical},
        raw=dict(source),
    )


def translate_search_hit(hit: SearchHit) -> SearchResult:
    record = normalize_parcel({"id": hit.id, "fields": hit.fields})
    return SearchResult(
        external_id=hit.id,
        parcel_number=record.parcel_number,
        address=record.address_line1,
        city=record.city,
        state=record.state,
        postal_code=record.postal_code,
        score=hit.score,
    )
