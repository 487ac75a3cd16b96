"""Regrid parcel API client."""

from __future__ import annotations

import asyncio
import re
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
import pydantic

from parcelbook.adapters.http_resilience import ResilientClient
from parcelbook.config.errors import MissingConfigurationError
from parcelbook.config.provider import MAX_SEARCH_RESULTS
from parcelbook.domain.errors import ProviderError

from .schema import FeatureCollectionResponse, SearchResponse
from .translator import normalize_parcel, translate_search_hit

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import TracebackType

    from parcelbook.config.http_resilience import ResilienceConfig
    from parcelbook.config.provider import ParcelProviderConfig
    from parcelbook.domain.model import AddressQuery, ParcelRecord, SearchResult

log = getLogger(__name__)

type ClientFactory = Callable[[ResilienceConfig], ResilientClient]

_STATE_CODE = re.compile(r"[A-Za-z]{2}")


def region_path(region: str | None) -> str | None:
    """Regrid ``path`` filter for a two-letter state code; anything else is not sent."""

    if region is None:
        return None
    code = region.strip()
    if not _STATE_CODE.fullmatch(code):
        return None
    return f"/us/{code.lower()}"


class RegridLookupClient:
    """Read-only lookups against the Regrid v2 parcel API.

    Holds one HTTP client for number and detail lookups and one for address
    search, so rate limiting and the search cache span every call made through
    this instance. Close it with ``aclose`` or use it as an async context manager.
    """

    def __init__(
        self,
        *,
        config: ParcelProviderConfig,
        client_factory: ClientFactory | None = None,
    ) -> None:
        if not config.token or not config.token.strip():
            raise MissingConfigurationError("Regrid API token is not configured (REGRID_API_TOKEN)")
        self._token = config.token.strip()
        factory = client_factory or ResilientClient
        self._client = factory(config.resilience)
        self._search_client = factory(config.search_resilience)

    async def __aenter__(self) -> RegridLookupClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()
        await self._search_client.aclose()

    async def by_identifier(
        self, parcel_number: str, region: str | None = None
    ) -> ParcelRecord | None:
        params = self._params(parcelnumb=parcel_number)
        if (path := region_path(region)) is not None:
            params["path"] = path
        return await self._fetch_feature(self._client, "parcels/apn", params)

    async def by_address(
        self,
        text: str,
        city: str | None = None,
        region: str | None = None,
        limit: int = 10,
    ) -> list[SearchResult]:
        capped = min(max(limit, 1), MAX_SEARCH_RESULTS)
        params = self._params(query=text, limit=str(capped))
        if city:
            params["city"] = city
        if region:
            params["state"] = region
        payload = await self._get_json(self._search_client, "search", params)
        try:
            response = SearchResponse.model_validate(payload)
        except pydantic.ValidationError as exc:
            raise ProviderError("Malformed Regrid search payload", body=str(exc)) from exc
        return [translate_search_hit(hit) for hit in response.results[:capped]]

    async def by_external_id(self, external_id: str) -> ParcelRecord | None:
        return await self._fetch_feature(self._client, f"parcels/{external_id}", self._params())

    async def batch_by_identifiers(
        self, parcel_numbers: Sequence[str], region: str | None = None
    ) -> list[ParcelRecord]:
        """Look up every parcel number concurrently, keeping only the hits.

        All lookups settle before returning; failures and misses are logged and dropped.
        """

        if not parcel_numbers:
            return []

        outcomes = await asyncio.gather(
            *(self.by_identifier(number, region) for number in parcel_numbers),
            return_exceptions=True,
        )

        records: list[ParcelRecord] = []
        for parcel_number, outcome in zip(parcel_numbers, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                log.warning("Parcel lookup failed for %s: %s", parcel_number, outcome)
            elif outcome is None:
                log.warning("No parcel found for %s", parcel_number)
            else:
                records.append(outcome)
        return records

    async def batch_by_addresses(self, queries: Sequence[AddressQuery]) -> list[ParcelRecord]:
        """Search and fetch detail for each address in turn, skipping failures."""

        records: list[ParcelRecord] = []
        for query in queries:
            try:
                candidates = await self.by_address(query.text, query.city, query.region, limit=1)
                if not candidates:
                    log.warning("No parcel candidates for address %r", query.text)
                    continue
                record = await self.by_external_id(candidates[0].external_id)
            except ProviderError as exc:
                log.warning("Parcel lookup failed for address %r: %s", query.text, exc)
                continue
            if record is None:
                log.warning("No parcel detail for address %r", query.text)
                continue
            records.append(record)
        return records

    def _params(self, **values: str) -> dict[str, str]:
        return {**values, "token": self._token}

    def _url(self, client: ResilientClient, path: str) -> str:
        base_url = client.config.base_url
        if base_url is None:
            raise ProviderError("Missing Regrid base_url in resilience configuration")
        return f"{base_url.rstrip('/')}/{path.lstrip('/')}"

    async def _fetch_feature(
        self,
        client: ResilientClient,
        path: str,
        params: dict[str, str],
    ) -> ParcelRecord | None:
        payload = await self._get_json(client, path, params)
        try:
            response = FeatureCollectionResponse.model_validate(payload)
        except pydantic.ValidationError as exc:
            raise ProviderError("Malformed Regrid parcel payload", body=str(exc)) from exc
        feature = response.first
        return normalize_parcel(feature) if feature is not None else None

    async def _get_json(
        self,
        client: ResilientClient,
        path: str,
        params: dict[str, str],
    ) -> object:
        url = self._url(client, path)
        try:
            response = await client.get(url, params=params)
        except httpx.HTTPError as exc:
            raise ProviderError(f"Regrid request to /{path} failed: {exc}", body=str(exc)) from exc

        if not response.is_success:
            raise ProviderError(
                f"Regrid API error ({response.status_code}) on /{path}",
                status=response.status_code,
                body=response.text,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise ProviderError(
                f"Regrid returned non-JSON payload on /{path}",
                status=response.status_code,
                body=response.text,
            ) from exc
