"""Shared TTL cache: Redis-backed, or in-process when Redis is not configured.

Values are JSON-serializable dicts. A read failure is a miss; callers
always have an upstream to fall back to.
"""

import json
import time
from typing import Any, Protocol

import structlog

from solwatch.data.redis.client import RedisClient

log = structlog.get_logger(__name__)


class SharedCache(Protocol):
    """Interface of the cross-process TTL cache."""

    async def get(self, namespace: str, key: str) -> dict[str, Any] | None:
        ...

    async def set(self, namespace: str, key: str, value: dict[str, Any], ttl: int) -> None:
        ...

    async def delete(self, namespace: str, key: str) -> None:
        ...

    def evict_expired(self) -> int:
        """Drop expired entries; returns how many were removed."""
        ...


class RedisCache:
    """TTL cache on Redis `SETEX`; expiry is handled by the server."""

    def __init__(self, client: RedisClient) -> None:
        self._client = client
        self.stats = {"hits": 0, "misses": 0, "sets": 0, "errors": 0}

    async def get(self, namespace: str, key: str) -> dict[str, Any] | None:
        try:
            raw = await self._client.redis.get(self._client.key("cache", namespace, key))
        except Exception as e:
            self.stats["errors"] += 1
            log.warning("shared_cache_get_failed", namespace=namespace, error=str(e))
            return None

        if raw is None:
            self.stats["misses"] += 1
            return None
        self.stats["hits"] += 1
        return json.loads(raw)

    async def set(self, namespace: str, key: str, value: dict[str, Any], ttl: int) -> None:
        try:
            await self._client.redis.set(
                self._client.key("cache", namespace, key), json.dumps(value), ex=ttl
            )
            self.stats["sets"] += 1
        except Exception as e:
            self.stats["errors"] += 1
            log.warning("shared_cache_set_failed", namespace=namespace, error=str(e))

    async def delete(self, namespace: str, key: str) -> None:
        try:
            await self._client.redis.delete(self._client.key("cache", namespace, key))
        except Exception as e:
            log.warning("shared_cache_delete_failed", namespace=namespace, error=str(e))

    def evict_expired(self) -> int:
        # keys expire server-side
        return 0


class MemoryCache:
    """Single-process stand-in for `RedisCache`.

    Expired entries are ignored on read and removed by `evict_expired`,
    which runs on the scheduler rather than inline.
    """

    def __init__(self) -> None:
        self._data: dict[tuple[str, str], tuple[float, dict[str, Any]]] = {}
        self.stats = {"hits": 0, "misses": 0, "sets": 0, "errors": 0}

    async def get(self, namespace: str, key: str) -> dict[str, Any] | None:
        entry = self._data.get((namespace, key))
        if entry is None or entry[0] <= time.monotonic():
            self.stats["misses"] += 1
            return None
        self.stats["hits"] += 1
        return entry[1]

    async def set(self, namespace: str, key: str, value: dict[str, Any], ttl: int) -> None:
        self._data[(namespace, key)] = (time.monotonic() + ttl, value)
        self.stats["sets"] += 1

    async def delete(self, namespace: str, key: str) -> None:
        self._data.pop((namespace, key), None)

    def evict_expired(self) -> int:
        now = time.monotonic()
        expired = [k for k, (expires_at, _) in self._data.items() if expires_at <= now]
        for k in expired:
            del self._data[k]
        return len(expired)

    def __len__(self) -> int:
        return len(self._data)
