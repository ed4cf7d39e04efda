"""In-process TTL cache for resolved token metadata."""

import structlog
from cachetools import TTLCache

from solwatch.data.models.token import TokenInfo, TokenSource

logger = structlog.get_logger(__name__)


class TokenCache:
    """Size-bounded TTL cache keyed by mint.

    Expired entries are dropped by `evict_expired`, which the scheduler
    runs periodically.
    """

    def __init__(self, max_size: int = 10000, ttl_seconds: int = 6 * 3600) -> None:
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._cache: TTLCache[str, TokenInfo] = TTLCache(maxsize=max_size, ttl=ttl_seconds)
        self._hits = 0
        self._misses = 0

    def get(self, mint: str) -> TokenInfo | None:
        """Cached entry tagged with the CACHE source, or None."""
        token = self._cache.get(mint)
        if token is None:
            self._misses += 1
            return None
        self._hits += 1
        return token.model_copy(update={"source": TokenSource.CACHE})

    def set(self, token: TokenInfo) -> None:
        self._cache[token.mint] = token

    def invalidate(self, mint: str) -> None:
        self._cache.pop(mint, None)

    def evict_expired(self) -> int:
        before = len(self._cache)
        self._cache.expire()
        evicted = before - len(self._cache)
        if evicted:
            logger.debug("token_cache_evicted", count=evicted)
        return evicted

    def get_stats(self) -> dict:
        total = self._hits + self._misses
        return {
            "size": len(self._cache),
            "max_size": self.max_size,
            "ttl_seconds": self.ttl_seconds,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total, 4) if total else 0.0,
        }
