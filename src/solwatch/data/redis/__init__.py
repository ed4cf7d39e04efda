"""Redis-backed cache, work queue and fan-out transport."""

from solwatch.data.redis.cache import MemoryCache, RedisCache, SharedCache
from solwatch.data.redis.client import RedisClient
from solwatch.data.redis.pubsub import (
    MemoryPubSubTransport,
    PubSubTransport,
    RedisPubSubTransport,
)
from solwatch.data.redis.queue import MemoryWorkQueue, RedisWorkQueue, WorkQueue

__all__ = [
    "MemoryCache",
    "MemoryPubSubTransport",
    "MemoryWorkQueue",
    "PubSubTransport",
    "RedisCache",
    "RedisClient",
    "RedisPubSubTransport",
    "RedisWorkQueue",
    "SharedCache",
    "WorkQueue",
]
