"""Async Redis connection shared by the cache, queue and broker backends."""

from typing import Any

import redis.asyncio as redis
import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from solwatch.config.settings import Settings
from solwatch.core.exceptions import DatabaseConnectionError

log = structlog.get_logger(__name__)


class RedisClient:
    """Thin owner of one `redis.asyncio.Redis` connection pool.

    The three capabilities built on it (TTL cache, work queue, fan-out
    broker) use separate key namespaces under `redis_key_prefix`.
    """

    def __init__(self, settings: Settings) -> None:
        self._url = settings.redis_url
        self._prefix = settings.redis_key_prefix
        self._redis: redis.Redis | None = None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        retry=retry_if_exception_type(DatabaseConnectionError),
        reraise=True,
    )
    async def connect(self) -> None:
        if self._redis is not None:
            return

        try:
            client = redis.from_url(
                self._url,
                decode_responses=True,
                socket_connect_timeout=5,
                health_check_interval=30,
            )
            await client.ping()
        except Exception as e:
            log.error("redis_connection_failed", error=str(e))
            raise DatabaseConnectionError(f"Redis: {e}") from e

        self._redis = client
        log.info("redis_connected", prefix=self._prefix)

    async def disconnect(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            log.info("redis_disconnected")

    @property
    def redis(self) -> redis.Redis:
        if self._redis is None:
            raise DatabaseConnectionError("Redis: Client not connected")
        return self._redis

    def key(self, *parts: str) -> str:
        """Namespaced key, e.g. key("price", mint) -> "solwatch:price:<mint>"."""
        return ":".join((self._prefix, *parts))

    async def health_check(self) -> dict[str, Any]:
        if self._redis is None:
            return {"status": "disconnected", "healthy": False}
        try:
            await self._redis.ping()
            return {"status": "connected", "healthy": True}
        except Exception as e:
            log.error("redis_health_check_failed", error=str(e))
            return {"status": "error", "healthy": False, "error": str(e)}
