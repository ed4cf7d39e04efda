"""Fan-out transport: Redis pub/sub, or in-process queues.

Delivery is at-most-once to currently attached listeners. Nothing is
buffered for listeners that attach later.
"""

import asyncio
import json
from collections.abc import AsyncIterator
from typing import Any, Protocol

import structlog

from solwatch.data.redis.client import RedisClient

log = structlog.get_logger(__name__)


class PubSubTransport(Protocol):
    """Interface of the fan-out transport."""

    async def publish(self, channel: str, message: dict[str, Any]) -> int:
        ...

    def listen(self, channel: str) -> AsyncIterator[dict[str, Any]]:
        ...


class RedisPubSubTransport:
    """Redis `PUBLISH`/`SUBSCRIBE`; one pubsub connection per listener."""

    def __init__(self, client: RedisClient) -> None:
        self._client = client

    async def publish(self, channel: str, message: dict[str, Any]) -> int:
        return int(
            await self._client.redis.publish(
                self._client.key("events", channel), json.dumps(message, default=str)
            )
        )

    async def listen(self, channel: str) -> AsyncIterator[dict[str, Any]]:
        pubsub = self._client.redis.pubsub(ignore_subscribe_messages=True)
        await pubsub.subscribe(self._client.key("events", channel))
        try:
            while True:
                message = await pubsub.get_message(timeout=1.0)
                if message is None:
                    continue
                try:
                    yield json.loads(message["data"])
                except (json.JSONDecodeError, TypeError) as e:
                    log.warning("pubsub_message_invalid", channel=channel, error=str(e))
        finally:
            await pubsub.unsubscribe()
            await pubsub.aclose()


class MemoryPubSubTransport:
    """In-process fan-out with one bounded queue per listener.

    A listener whose queue is full misses the message.
    """

    def __init__(self, max_pending: int = 1000) -> None:
        self._listeners: dict[str, set[asyncio.Queue[dict[str, Any]]]] = {}
        self._max_pending = max_pending

    @property
    def listener_count(self) -> int:
        return sum(len(qs) for qs in self._listeners.values())

    async def publish(self, channel: str, message: dict[str, Any]) -> int:
        delivered = 0
        for queue in list(self._listeners.get(channel, ())):
            try:
                queue.put_nowait(message)
                delivered += 1
            except asyncio.QueueFull:
                log.warning("pubsub_listener_lagging", channel=channel)
        return delivered

    async def listen(self, channel: str) -> AsyncIterator[dict[str, Any]]:
        queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=self._max_pending)
        self._listeners.setdefault(channel, set()).add(queue)
        try:
            while True:
                yield await queue.get()
        finally:
            self._listeners[channel].discard(queue)
