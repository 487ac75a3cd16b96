"""Regrid v2 response envelopes.

Only the envelope is modeled. Feature bodies stay untyped mappings because
their field layout drifts between API versions; the translator tries each
known location.
"""

from __future__ import annotations

import logging
from typing import Any, ClassVar, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

log = logging.getLogger(__name__)

type RawFeature = dict[str, Any]


class RegridBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)
    _logged_extra_keys: ClassVar[set[str]] = set()

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras:
            return
        new_keys = set(extras).difference(self._logged_extra_keys)
        if not new_keys:
            return
        self._logged_extra_keys.update(new_keys)
        log.debug(
            "Regrid %s: unmodeled keys: %s",
            type(self).__name__,
            ", ".join(sorted(new_keys)),
        )


class FeatureCollectionResponse(BaseModel):
    """Lookup/detail response, accepting ``parcels.features``, ``results`` or ``features``."""

    model_config = ConfigDict(extra="ignore")

    features: list[RawFeature] = Field(default_factory=list[RawFeature])

    @model_validator(mode="before")
    @classmethod
    def _unwrap_envelope(cls, data: object) -> object:
        if not isinstance(data, dict):
            return data
        payload = cast("dict[str, object]", data)
        candidates: list[object] = []
        parcels = payload.get("parcels")
        if isinstance(parcels, dict):
            candidates.append(cast("dict[str, object]", parcels).get("features"))
        candidates.extend((payload.get("results"), payload.get("features")))
        for candidate in candidates:
            if isinstance(candidate, list):
                items = cast("list[object]", candidate)
                return {"features": [item for item in items if isinstance(item, dict)]}
        return {"features": []}

    @property
    def first(self) -> RawFeature | None:
        return self.features[0] if self.features else None


class SearchHit(RegridBaseModel):
    id: str
    score: float = 0.0
    fields: dict[str, Any] = Field(default_factory=dict[str, Any])

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: object) -> object:
        if isinstance(value, int | float) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("score", mode="before")
    @classmethod
    def _coerce_score(cls, value: object) -> float:
        if isinstance(value, bool) or value is None:
            return 0.0
        try:
            return float(cast("str | float", value))
        except (TypeError, ValueError):
            return 0.0

    @field_validator("fields", mode="before")
    @classmethod
    def _coerce_fields(cls, value: object) -> object:
        return value if isinstance(value, dict) else {}


class SearchResponse(RegridBaseModel):
    results: list[SearchHit] = Field(default_factory=list[SearchHit])

    @field_validator("results", mode="before")
    @classmethod
    def _coerce_results(cls, value: object) -> object:
        if not isinstance(value, list):
            return []
        items = cast("list[object]", value)
        return [
            item
            for item in items
            if isinstance(item, dict) and cast("dict[str, object]", item).get("id") is not None
        ]
