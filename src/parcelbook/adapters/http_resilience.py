"""Rate-limited, optionally cached httpx client shared by provider adapters."""

from __future__ import annotations

import asyncio
import json
from typing import (
    TYPE_CHECKING,
    TypedDict,
    Unpack,
)

import anysqlite
import httpx
from aiolimiter import AsyncLimiter
from hishel import AsyncSqliteStorage, BaseFilter, FilterPolicy
from hishel import Response as HishelCacheResponse
from hishel.httpx import AsyncCacheTransport
from httpx_retries import Retry, RetryTransport

if TYPE_CHECKING:
    from types import TracebackType

    from httpx._types import QueryParamTypes, URLTypes

    from parcelbook.config.http_resilience import (
        CacheConfig,
        ResilienceConfig,
        RetryPolicy,
        ShouldCacheHook,
    )


class RequestOptions(TypedDict, total=False):
    params: QueryParamTypes | None


class AsyncClientOptions(TypedDict, total=False):
    base_url: str
    timeout: float
    headers: dict[str, str]
    transport: httpx.AsyncBaseTransport


def build_retry(policy: RetryPolicy) -> Retry:
    return Retry(
        total=policy.total,
        allowed_methods=("GET",),
        status_forcelist=tuple(policy.status_forcelist),
    )


class ResilientClient:
    """One long-lived ``httpx.AsyncClient`` with its rate limiter and response cache.

    The limiter and the in-memory cache last as long as the client, so callers
    should hold one instance for a whole operation and close it afterwards.
    The cache database is opened on the first request, inside the running loop.
    """

    def __init__(self, config: ResilienceConfig) -> None:
        self.config = config
        self._limiter: AsyncLimiter | None = (
            AsyncLimiter(config.ratelimit.max_calls, config.ratelimit.per_seconds)
            if config.ratelimit
            else None
        )
        self._transport = RetryTransport(retry=build_retry(config.retry))
        self._open_lock = asyncio.Lock()
        self._client: httpx.AsyncClient | None = (
            None if config.cache is not None else self._build_client(self._transport)
        )

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
        else:
            await self._transport.aclose()

    async def get(
        self,
        url: URLTypes,
        **kwargs: Unpack[RequestOptions],
    ) -> httpx.Response:
        client = await self._ensure_client()
        if self._limiter is None:
            return await client.get(url, **kwargs)
        async with self._limiter:
            return await client.get(url, **kwargs)

    def _build_client(self, transport: httpx.AsyncBaseTransport) -> httpx.AsyncClient:
        client_kwargs: AsyncClientOptions = {
            "timeout": self.config.timeout_seconds,
            "transport": transport,
        }
        if self.config.base_url is not None:
            client_kwargs["base_url"] = self.config.base_url
        if self.config.default_headers:
            client_kwargs["headers"] = dict(self.config.default_headers)
        return httpx.AsyncClient(**client_kwargs)

    async def _ensure_client(self) -> httpx.AsyncClient:
        cache = self.config.cache
        if self._client is None and cache is not None:
            async with self._open_lock:
                if self._client is None:
                    transport = await _open_cache_transport(self._transport, cache)
                    self._client = self._build_client(transport)
        if self._client is None:
            raise RuntimeError(f"HTTP client {self.config.name!r} is not open")
        return self._client


class _ShouldCacheResponseFilter(BaseFilter[HishelCacheResponse]):
    """Hishel response filter that delegates to a simple JSON predicate."""

    def __init__(self, predicate: ShouldCacheHook) -> None:
        self._predicate = predicate

    def needs_body(self) -> bool:
        return True

    def apply(self, item: HishelCacheResponse, body: bytes | None) -> bool:  # noqa: ARG002
        if body is None:
            return True
        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return False
        return bool(self._predicate(payload))


async def _open_cache_transport(
    next_transport: httpx.AsyncBaseTransport, config: CacheConfig
) -> AsyncCacheTransport:
    storage = AsyncSqliteStorage(
        connection=await anysqlite.connect(":memory:"),
        default_ttl=config.default_ttl_seconds,
    )
    return AsyncCacheTransport(
        next_transport=next_transport,
        storage=storage,
        policy=_build_cache_policy(config),
    )


def _build_cache_policy(config: CacheConfig) -> FilterPolicy:
    """Cache every GET response the predicate accepts, ignoring HTTP cache headers."""

    if config.should_cache is None:
        return FilterPolicy()
    return FilterPolicy(response_filters=[_ShouldCacheResponseFilter(config.should_cache)])
