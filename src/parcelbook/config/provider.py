"""Parcel data provider (Regrid) configuration values."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import cast

from .env import require_env_vars
from .http_resilience import NO_RETRY, CacheConfig, RateLimit, ResilienceConfig

REGRID_BASE_URL = "https://app.regrid.com/api/v2"
REGRID_TIMEOUT_SECONDS = 15.0
REGRID_SEARCH_CACHE_TTL_SECONDS = 300.0
MAX_SEARCH_RESULTS = 25


def _has_results(payload: object) -> bool:
    if not isinstance(payload, dict):
        return False
    results = cast("dict[str, object]", payload).get("results")
    return isinstance(results, list) and bool(results)


@dataclass(frozen=True)
class ParcelProviderConfig:
    """Holds parcel provider credentials and HTTP client settings.

    ``resilience`` is used for number and detail lookups, which are never cached
    so that a refresh always observes the provider's current data. Address search
    goes through ``search_resilience``.
    """

    token: str
    resilience: ResilienceConfig
    search_resilience: ResilienceConfig


def default_resilience(base_url: str = REGRID_BASE_URL) -> ResilienceConfig:
    return ResilienceConfig(
        name="regrid",
        base_url=base_url,
        timeout_seconds=REGRID_TIMEOUT_SECONDS,
        retry=NO_RETRY,
        ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
        cache=None,
        default_headers={"Accept": "application/json"},
    )


def default_search_resilience(base_url: str = REGRID_BASE_URL) -> ResilienceConfig:
    return ResilienceConfig(
        name="regrid-search",
        base_url=base_url,
        timeout_seconds=REGRID_TIMEOUT_SECONDS,
        retry=NO_RETRY,
        ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
        cache=CacheConfig(
            default_ttl_seconds=REGRID_SEARCH_CACHE_TTL_SECONDS,
            should_cache=_has_results,
        ),
        default_headers={"Accept": "application/json"},
    )


def get_provider_config(
    *,
    resilience: ResilienceConfig | None = None,
    search_resilience: ResilienceConfig | None = None,
) -> ParcelProviderConfig:
    values = require_env_vars(("REGRID_API_TOKEN",))
    base_url = os.getenv("REGRID_BASE_URL") or REGRID_BASE_URL
    return ParcelProviderConfig(
        token=values["REGRID_API_TOKEN"],
        resilience=resilience or default_resilience(base_url),
        search_resilience=search_resilience or default_search_resilience(base_url),
    )
