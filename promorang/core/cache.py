from __future__ import annotations

import json
import time
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

logger = structlog.get_logger(__name__)

CACHE_KEY_PREFIX = "promorang:"

ComputeFn = Callable[[], Awaitable[Any]]


class TTLCache(Protocol):
    async def get_or_compute(self, key: str, *, ttl_seconds: int, compute: ComputeFn) -> Any: ...

    async def invalidate(self, key: str) -> None: ...

    async def close(self) -> None: ...


class InMemoryTTLCache:
    """Process-local cache; values are stored JSON-encoded so callers get fresh copies."""

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[float, str]] = {}

    async def get_or_compute(self, key: str, *, ttl_seconds: int, compute: ComputeFn) -> Any:
        if ttl_seconds <= 0:
            return await compute()

        now = self._clock()
        entry = self._entries.get(key)
        if entry is not None and entry[0] > now:
            return json.loads(entry[1])

        value = await compute()
        self._entries[key] = (now + ttl_seconds, json.dumps(value, default=str))
        return value

    async def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    async def close(self) -> None:
        self._entries.clear()


class RedisTTLCache:
    def __init__(self, redis_client: Redis) -> None:
        self._redis = redis_client

    @classmethod
    def from_url(cls, redis_url: str) -> RedisTTLCache:
        return cls(Redis.from_url(redis_url))

    async def get_or_compute(self, key: str, *, ttl_seconds: int, compute: ComputeFn) -> Any:
        if ttl_seconds <= 0:
            return await compute()

        full_key = f"{CACHE_KEY_PREFIX}{key}"
        try:
            cached = await self._redis.get(full_key)
        except RedisError as exc:
            logger.warning("cache_read_failed", key=key, error=type(exc).__name__)
            return await compute()
        if cached is not None:
            return json.loads(cached)

        value = await compute()
        try:
            await self._redis.set(full_key, json.dumps(value, default=str), ex=ttl_seconds)
        except RedisError as exc:
            logger.warning("cache_write_failed", key=key, error=type(exc).__name__)
        return value

    async def invalidate(self, key: str) -> None:
        try:
            await self._redis.delete(f"{CACHE_KEY_PREFIX}{key}")
        except RedisError as exc:
            logger.warning("cache_invalidate_failed", key=key, error=type(exc).__name__)

    async def close(self) -> None:
        await self._redis.aclose()


def build_cache(redis_url: str | None) -> TTLCache:
    if redis_url:
        return RedisTTLCache.from_url(redis_url)
    return InMemoryTTLCache()
