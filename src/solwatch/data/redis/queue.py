"""Durable FIFO work queue with idempotency markers.

Two structures per backend:
- ready list: FIFO of serialized items (`RPUSH`/`LPOP count`).
- delayed set: items waiting out a retry backoff, scored by due time;
  promoted to the ready list when due.

Markers are short-lived `SET NX EX` keys independent of the durable store.
"""

import heapq
import itertools
import time
from collections import deque
from typing import Protocol

import structlog

from solwatch.data.redis.client import RedisClient

log = structlog.get_logger(__name__)


class WorkQueue(Protocol):
    """Interface of the signature work queue."""

    async def mark(self, key: str, ttl: int) -> bool:
        """Set a marker if absent; True when this call set it."""
        ...

    async def mark_failed(self, key: str, ttl: int) -> None:
        """Overwrite the marker so later deliveries are dropped for `ttl`."""
        ...

    async def unmark(self, key: str) -> None:
        ...

    async def is_marked(self, key: str) -> bool:
        ...

    async def push(self, item: str) -> None:
        ...

    async def push_delayed(self, item: str, delay: float) -> None:
        ...

    async def pop_batch(self, size: int) -> list[str]:
        ...

    async def length(self) -> int:
        """Ready plus delayed items."""
        ...

    async def next_due_in(self) -> float | None:
        """Seconds until the earliest delayed item is due, None if none."""
        ...

    def evict_expired(self) -> int:
        ...


class RedisWorkQueue:
    """Queue on a Redis list plus a sorted set for delayed retries."""

    def __init__(self, client: RedisClient, name: str = "signatures") -> None:
        self._client = client
        self._ready_key = client.key("queue", name)
        self._delayed_key = client.key("queue", name, "delayed")

    def _marker_key(self, key: str) -> str:
        return self._client.key("processed", key)

    async def mark(self, key: str, ttl: int) -> bool:
        result = await self._client.redis.set(self._marker_key(key), "1", nx=True, ex=ttl)
        return bool(result)

    async def mark_failed(self, key: str, ttl: int) -> None:
        await self._client.redis.set(self._marker_key(key), "failed", ex=ttl)

    async def unmark(self, key: str) -> None:
        await self._client.redis.delete(self._marker_key(key))

    async def is_marked(self, key: str) -> bool:
        return bool(await self._client.redis.exists(self._marker_key(key)))

    async def push(self, item: str) -> None:
        await self._client.redis.rpush(self._ready_key, item)

    async def push_delayed(self, item: str, delay: float) -> None:
        await self._client.redis.zadd(self._delayed_key, {item: time.time() + delay})

    async def _promote_due(self) -> int:
        r = self._client.redis
        due = await r.zrangebyscore(self._delayed_key, "-inf", time.time())
        promoted = 0
        for item in due:
            # another process may have promoted it already
            if await r.zrem(self._delayed_key, item):
                await r.rpush(self._ready_key, item)
                promoted += 1
        return promoted

    async def pop_batch(self, size: int) -> list[str]:
        await self._promote_due()
        items = await self._client.redis.lpop(self._ready_key, size)
        return list(items or [])

    async def length(self) -> int:
        r = self._client.redis
        return int(await r.llen(self._ready_key)) + int(await r.zcard(self._delayed_key))

    async def next_due_in(self) -> float | None:
        head = await self._client.redis.zrange(self._delayed_key, 0, 0, withscores=True)
        if not head:
            return None
        return max(0.0, head[0][1] - time.time())

    def evict_expired(self) -> int:
        # markers expire server-side
        return 0


class MemoryWorkQueue:
    """Single-process queue used when Redis is not configured.

    Not durable across restarts.
    """

    def __init__(self) -> None:
        self._ready: deque[str] = deque()
        self._delayed: list[tuple[float, int, str]] = []
        self._markers: dict[str, tuple[float, str]] = {}
        self._seq = itertools.count()

    def _marker_live(self, key: str) -> bool:
        entry = self._markers.get(key)
        return entry is not None and entry[0] > time.monotonic()

    async def mark(self, key: str, ttl: int) -> bool:
        if self._marker_live(key):
            return False
        self._markers[key] = (time.monotonic() + ttl, "1")
        return True

    async def mark_failed(self, key: str, ttl: int) -> None:
        self._markers[key] = (time.monotonic() + ttl, "failed")

    async def unmark(self, key: str) -> None:
        self._markers.pop(key, None)

    async def is_marked(self, key: str) -> bool:
        return self._marker_live(key)

    async def push(self, item: str) -> None:
        self._ready.append(item)

    async def push_delayed(self, item: str, delay: float) -> None:
        heapq.heappush(self._delayed, (time.monotonic() + delay, next(self._seq), item))

    async def pop_batch(self, size: int) -> list[str]:
        now = time.monotonic()
        while self._delayed and self._delayed[0][0] <= now:
            self._ready.append(heapq.heappop(self._delayed)[2])

        batch = []
        while self._ready and len(batch) < size:
            batch.append(self._ready.popleft())
        return batch

    async def length(self) -> int:
        return len(self._ready) + len(self._delayed)

    async def next_due_in(self) -> float | None:
        if not self._delayed:
            return None
        return max(0.0, self._delayed[0][0] - time.monotonic())

    def evict_expired(self) -> int:
        now = time.monotonic()
        expired = [k for k, (expires_at, _) in self._markers.items() if expires_at <= now]
        for k in expired:
            del self._markers[k]
        return len(expired)
