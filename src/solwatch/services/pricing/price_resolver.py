"""Price resolver with a multi-source fallback chain.

Resolution order per mint, first success wins:

1. In-process TTL cache, then the shared cache.
2. Configured providers in order (pools, aggregator #1, aggregator #2),
   each attempt bounded by its own timeout.
3. Last known price regardless of age (tagged ``stale``).
4. Fixed SOL/USD constant for the native asset (tagged ``fallback``);
   other tokens get no price.

Concurrent requests for the same uncached mint share one upstream fetch.
Single-mint requests arriving within the batching window are resolved
together as one batch.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import Any

import structlog
from cachetools import LRUCache, TTLCache

from solwatch.core.utils import short
from solwatch.data.models.price import PriceQuote, PriceSource
from solwatch.data.redis.cache import SharedCache
from solwatch.services.pricing.pool_source import NATIVE_MINT
from solwatch.services.pricing.providers import PriceProvider

log = structlog.get_logger(__name__)

CACHE_NAMESPACE = "price"


class PriceResolver:
    """Batched, coalescing price lookup over an ordered provider chain.

    Attributes:
        providers: Ordered price sources.
        stats: Counters reported by the monitoring endpoint.

    Example:
        resolver = PriceResolver([pools, dexscreener, jupiter], cache)
        quotes = await resolver.get_prices([mint_a, mint_b])
        sol = await resolver.get_native_price()
    """

    def __init__(
        self,
        providers: list[PriceProvider],
        shared_cache: SharedCache,
        cache_ttl_seconds: int = 30,
        batch_window_ms: int = 100,
        source_timeout_seconds: float = 4.0,
        native_fallback_price: float = 150.0,
        cache_max_size: int = 10000,
    ) -> None:
        self.providers = providers
        self._shared = shared_cache
        self._ttl = cache_ttl_seconds
        self._window = batch_window_ms / 1000
        self._timeout = source_timeout_seconds
        self._native_fallback = native_fallback_price

        self._local: TTLCache[str, PriceQuote] = TTLCache(
            maxsize=cache_max_size, ttl=cache_ttl_seconds
        )
        self._last_known: LRUCache[str, PriceQuote] = LRUCache(maxsize=cache_max_size)
        self._inflight: dict[str, asyncio.Future[PriceQuote | None]] = {}
        self._pending: set[str] = set()
        self._flush_task: asyncio.Task[None] | None = None

        self.stats = {
            "local_hits": 0,
            "shared_hits": 0,
            "coalesced": 0,
            "upstream_batches": 0,
            "stale": 0,
            "fallback": 0,
            "unavailable": 0,
        }

    # Public API

    async def get_prices(self, mints: Iterable[str]) -> dict[str, PriceQuote]:
        """Resolve many mints at once; mints with no price are absent."""
        unique = list(dict.fromkeys(mints))
        result: dict[str, PriceQuote] = {}
        waiting: dict[str, asyncio.Future[PriceQuote | None]] = {}
        to_fetch: list[str] = []

        for mint in unique:
            cached = self._local.get(mint)
            if cached is not None:
                self.stats["local_hits"] += 1
                result[mint] = cached
            elif mint in self._inflight:
                self.stats["coalesced"] += 1
                waiting[mint] = self._inflight[mint]
            else:
                waiting[mint] = self._register(mint)
                to_fetch.append(mint)

        if to_fetch:
            await self._resolve_batch(to_fetch)

        for mint, future in waiting.items():
            quote = await future
            if quote is not None:
                result[mint] = quote
        return result

    async def get_price(self, mint: str) -> PriceQuote | None:
        """Resolve one mint, coalesced with concurrent single requests."""
        cached = self._local.get(mint)
        if cached is not None:
            self.stats["local_hits"] += 1
            return cached

        future = self._inflight.get(mint)
        if future is not None:
            self.stats["coalesced"] += 1
            return await future

        future = self._register(mint)
        self._pending.add(mint)
        if self._flush_task is None or self._flush_task.done():
            self._flush_task = asyncio.create_task(self._flush_after_window())
        return await future

    async def get_native_price(self) -> PriceQuote:
        """SOL/USD; never None thanks to the fixed fallback."""
        quote = await self.get_price(NATIVE_MINT)
        if quote is None:
            return self._fixed_native()
        return quote

    def cached_native_usd(self) -> float | None:
        """Most recent SOL/USD without any I/O, for pool math."""
        quote = self._local.get(NATIVE_MINT) or self._last_known.get(NATIVE_MINT)
        return quote.price if quote is not None else None

    async def refresh_native(self) -> PriceQuote:
        """Re-fetch SOL/USD from the providers, bypassing both caches."""
        quotes = await self._fetch_chain([NATIVE_MINT], use_shared_cache=False)
        quote = quotes.get(NATIVE_MINT) or self._fixed_native()
        log.debug("native_price_refreshed", price=quote.price, source=quote.source.value)
        return quote

    def evict_expired(self) -> int:
        """Drop expired local entries; scheduled, never run inline."""
        before = len(self._local)
        self._local.expire()
        return before - len(self._local)

    def get_status(self) -> dict[str, Any]:
        return {
            **self.stats,
            "cached": len(self._local),
            "last_known": len(self._last_known),
            "inflight": len(self._inflight),
            "sources": [p.source.value for p in self.providers],
        }

    # Internals

    def _register(self, mint: str) -> asyncio.Future[PriceQuote | None]:
        future: asyncio.Future[PriceQuote | None] = asyncio.get_running_loop().create_future()
        self._inflight[mint] = future
        return future

    async def _flush_after_window(self) -> None:
        # Mints queued while a batch is upstream are picked up by the next pass
        while self._pending:
            await asyncio.sleep(self._window)
            batch = list(self._pending)
            self._pending.clear()
            await self._resolve_batch(batch)

    async def _resolve_batch(self, mints: list[str]) -> None:
        """Run the chain for `mints` and settle their in-flight futures."""
        quotes: dict[str, PriceQuote] = {}
        try:
            quotes = await self._fetch_chain(mints)
        except Exception as e:
            log.error("price_batch_failed", mints=len(mints), error=str(e))
        finally:
            for mint in mints:
                future = self._inflight.pop(mint, None)
                if future is not None and not future.done():
                    future.set_result(quotes.get(mint))

    async def _fetch_chain(
        self, mints: list[str], use_shared_cache: bool = True
    ) -> dict[str, PriceQuote]:
        result: dict[str, PriceQuote] = {}
        remaining = list(mints)

        if use_shared_cache:
            for mint in list(remaining):
                cached = await self._shared.get(CACHE_NAMESPACE, mint)
                if cached is None:
                    continue
                quote = PriceQuote.model_validate(cached)
                self.stats["shared_hits"] += 1
                self._local[mint] = quote
                self._last_known[mint] = quote
                result[mint] = quote
                remaining.remove(mint)

        for provider in self.providers:
            if not remaining:
                break
            self.stats["upstream_batches"] += 1
            try:
                found = await asyncio.wait_for(provider.get_prices(remaining), self._timeout)
            except TimeoutError:
                log.warning(
                    "price_source_timeout",
                    source=provider.source.value,
                    mints=len(remaining),
                    timeout_seconds=self._timeout,
                )
                continue
            except Exception as e:
                log.warning(
                    "price_source_failed",
                    source=provider.source.value,
                    mints=len(remaining),
                    error=str(e),
                )
                continue

            for mint in remaining:
                quote = found.get(mint)
                if quote is not None:
                    await self._store(quote)
                    result[mint] = quote
            remaining = [m for m in remaining if m not in result]
            log.debug(
                "price_source_resolved",
                source=provider.source.value,
                resolved=len(found),
                remaining=len(remaining),
            )

        for mint in remaining:
            degraded = self._degraded(mint)
            if degraded is not None:
                self._local[mint] = degraded
                result[mint] = degraded
            else:
                self.stats["unavailable"] += 1
                log.info("price_unavailable", mint=short(mint))

        return result

    async def _store(self, quote: PriceQuote) -> None:
        self._local[quote.mint] = quote
        self._last_known[quote.mint] = quote
        await self._shared.set(
            CACHE_NAMESPACE, quote.mint, quote.model_dump(mode="json"), self._ttl
        )

    def _degraded(self, mint: str) -> PriceQuote | None:
        last = self._last_known.get(mint)
        if last is not None:
            self.stats["stale"] += 1
            log.warning(
                "price_stale_used",
                mint=short(mint),
                age_seconds=round(last.age_seconds, 1),
                original_source=last.source.value,
            )
            return last.model_copy(update={"source": PriceSource.STALE})

        if mint == NATIVE_MINT:
            return self._fixed_native()
        return None

    def _fixed_native(self) -> PriceQuote:
        self.stats["fallback"] += 1
        log.warning("price_fixed_fallback_used", price=self._native_fallback)
        return PriceQuote(
            mint=NATIVE_MINT, price=self._native_fallback, source=PriceSource.FALLBACK
        )
