# backend/app/services/slots/cache.py
"""
Keyed caches with per-entry expiry.

All three backends share one operation:

    await cache.get_or_fetch(key, ttl_seconds, fetch, adapter=None)

Hit (entry exists and now - timestamp < ttl): stored data, fetch not called.
Miss: fetch() is awaited, the result stored with timestamp = now.
A failing fetch propagates and nothing is stored.

There is no explicit invalidation; entries are only ever overwritten on a
later miss. Keys must carry the tenant so data never crosses tenants.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, TypeVar

from pydantic import TypeAdapter
from redis.asyncio import Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Fetch = Callable[[], Awaitable[T]]


@dataclass
class CacheEntry(Generic[T]):
    data: T
    timestamp: float

    def is_fresh(self, now: float, ttl_seconds: float) -> bool:
        return now - self.timestamp < ttl_seconds


class TTLCache:
    """
    In-process cache shared by every caller of one engine.

    No locking: two callers missing the same key both fetch and the last
    write wins, which is harmless because fetches are idempotent per key.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[str, CacheEntry[Any]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    async def get_or_fetch(
        self,
        key: str,
        ttl_seconds: float,
        fetch: Fetch[T],
        adapter: TypeAdapter | None = None,
    ) -> T:
        entry = self._entries.get(key)
        if entry is not None and entry.is_fresh(self._clock(), ttl_seconds):
            logger.debug("Cache hit for %s", key)
            return entry.data

        data = await fetch()
        self._entries[key] = CacheEntry(data=data, timestamp=self._clock())
        return data


class NullCache:
    """Cache that never stores anything (tests, forced fresh reads)."""

    async def get_or_fetch(
        self,
        key: str,
        ttl_seconds: float,
        fetch: Fetch[T],
        adapter: TypeAdapter | None = None,
    ) -> T:
        return await fetch()


class RedisTTLCache:
    """
    Cache shared between worker processes.

    Key format: slots:cache:{key}
    Value: JSON {"data": ..., "timestamp": epoch seconds}, with a Redis
    expiry equal to the ttl so stale keys do not pile up.

    The adapter (pydantic TypeAdapter of the cached type) turns data into
    JSON and back; without one the data must already be JSON-compatible.
    """

    KEY_PREFIX = "slots:cache"

    def __init__(self, redis: Redis, clock: Callable[[], float] = time.time):
        self.redis = redis
        self._clock = clock

    def _key(self, key: str) -> str:
        return f"{self.KEY_PREFIX}:{key}"

    async def get_or_fetch(
        self,
        key: str,
        ttl_seconds: float,
        fetch: Fetch[T],
        adapter: TypeAdapter | None = None,
    ) -> T:
        redis_key = self._key(key)

        try:
            raw = await self.redis.get(redis_key)
        except RedisError:
            logger.warning("Redis read failed for %s, fetching uncached", redis_key, exc_info=True)
            return await fetch()

        if raw is not None:
            try:
                entry = json.loads(raw)
                if self._clock() - entry["timestamp"] < ttl_seconds:
                    data = entry["data"]
                    data = adapter.validate_python(data) if adapter else data
                    logger.debug("Cache hit for %s", key)
                    return data
            except (KeyError, TypeError, ValueError):
                # JSONDecodeError and pydantic ValidationError are ValueErrors
                logger.warning("Unreadable cache entry %s, refetching", redis_key, exc_info=True)

        data = await fetch()
        payload = adapter.dump_python(data, mode="json") if adapter else data
        try:
            await self.redis.set(
                redis_key,
                json.dumps({"data": payload, "timestamp": self._clock()}),
                px=max(1, int(ttl_seconds * 1000)),
            )
        except RedisError:
            logger.warning("Redis write failed for %s", redis_key, exc_info=True)
        return data


SlotsCache = TTLCache | NullCache | RedisTTLCache
