"""Composition root.

Every service is constructed here from Settings and owned by one
ServiceContainer; nothing is created lazily behind a module global. The
ingestion drain loop runs as a single supervised task started by
`start()`.
"""

import asyncio
import contextlib
from typing import Any

import structlog

from solwatch.config.settings import Settings
from solwatch.core.retry import RetryPolicy
from solwatch.data.redis.cache import MemoryCache, RedisCache, SharedCache
from solwatch.data.redis.client import RedisClient
from solwatch.data.redis.pubsub import MemoryPubSubTransport, PubSubTransport, RedisPubSubTransport
from solwatch.data.redis.queue import MemoryWorkQueue, RedisWorkQueue, WorkQueue
from solwatch.data.supabase.client import SupabaseClient
from solwatch.data.supabase.repositories import (
    GroupRepository,
    TokenRepository,
    TransactionRepository,
    WalletRepository,
    WalletStatsRepository,
)
from solwatch.scheduler.jobs import register_maintenance_jobs
from solwatch.scheduler.scheduler import MaintenanceScheduler
from solwatch.services.base import BaseAPIClient
from solwatch.services.dexscreener.client import DexScreenerClient
from solwatch.services.helius.client import HeliusClient
from solwatch.services.ingestion import (
    IngestionWorker,
    SignatureQueue,
    TransactionProcessor,
    WalletMonitor,
)
from solwatch.services.jupiter.client import JupiterPriceClient
from solwatch.services.notify.broker import TransactionBroker
from solwatch.services.persistence.store import TransactionStore
from solwatch.services.pnl.aggregator import PnLAggregator
from solwatch.services.pricing import (
    DexScreenerProvider,
    JupiterPriceProvider,
    PoolPriceProvider,
    PriceProvider,
    PriceResolver,
)
from solwatch.services.raydium.client import RaydiumPoolClient
from solwatch.services.solana.log_stream import LogStreamClient
from solwatch.services.solana.rpc_client import SolanaRPCClient
from solwatch.services.solana.transaction_parser import TransactionParser
from solwatch.services.token import TokenCache, TokenMetadataResolver, load_token_registry
from solwatch.services.wallet.registry import WalletRegistry

log = structlog.get_logger(__name__)


class ServiceContainer:
    """Builds and owns every long-lived service of the process."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

        # Storage backends
        self.supabase = SupabaseClient(settings)
        self.redis: RedisClient | None = RedisClient(settings) if settings.redis_url else None
        self.shared_cache: SharedCache
        self.work_queue: WorkQueue
        self.pubsub: PubSubTransport
        if self.redis is not None:
            self.shared_cache = RedisCache(self.redis)
            self.work_queue = RedisWorkQueue(self.redis)
            self.pubsub = RedisPubSubTransport(self.redis)
        else:
            self.shared_cache = MemoryCache()
            self.work_queue = MemoryWorkQueue()
            self.pubsub = MemoryPubSubTransport()

        # Repositories
        self.wallet_repo = WalletRepository(self.supabase)
        self.group_repo = GroupRepository(self.supabase)
        self.token_repo = TokenRepository(self.supabase)
        self.transaction_repo = TransactionRepository(self.supabase)
        self.stats_repo = WalletStatsRepository(self.supabase)

        # Upstream clients
        self.rpc = SolanaRPCClient(settings)
        self.dexscreener = DexScreenerClient(settings)
        self.jupiter = JupiterPriceClient(settings)
        self.raydium = RaydiumPoolClient(settings)
        self.helius = HeliusClient(settings)

        # Pricing
        self.pool_provider = PoolPriceProvider(
            raydium=self.raydium,
            rpc=self.rpc,
            min_liquidity_usd=settings.min_pool_liquidity_usd,
        )
        self.price_resolver = PriceResolver(
            providers=self._price_providers(),
            shared_cache=self.shared_cache,
            cache_ttl_seconds=settings.price_cache_ttl_seconds,
            batch_window_ms=settings.price_batch_window_ms,
            source_timeout_seconds=settings.price_source_timeout_seconds,
            native_fallback_price=settings.native_fallback_price_usd,
        )
        self.pool_provider.native_usd = self.price_resolver.cached_native_usd

        # Token metadata
        self.token_cache = TokenCache(
            max_size=settings.token_cache_max_size,
            ttl_seconds=settings.token_cache_ttl_seconds,
        )
        self.metadata_resolver = TokenMetadataResolver(
            cache=self.token_cache,
            token_repo=self.token_repo,
            helius=self.helius if self.helius.enabled else None,
            rpc=self.rpc,
            registry=load_token_registry(settings.token_registry_path),
            retry_policy=self._retry_policy("token_metadata"),
        )

        # Persistence and fan-out
        self.broker = TransactionBroker(self.pubsub)
        self.store = TransactionStore(self.transaction_repo, self.stats_repo, self.broker)

        # Ingestion
        self.queue = SignatureQueue(
            self.work_queue,
            marker_ttl_seconds=settings.processed_marker_ttl_seconds,
            failed_marker_ttl_seconds=settings.failed_marker_ttl_seconds,
        )
        self.processor = TransactionProcessor(
            rpc=self.rpc,
            parser=TransactionParser(dust_threshold_sol=settings.dust_threshold_sol),
            metadata_resolver=self.metadata_resolver,
            price_resolver=self.price_resolver,
            wallet_repo=self.wallet_repo,
            transaction_repo=self.transaction_repo,
            store=self.store,
            fetch_policy=self._retry_policy("transaction_fetch"),
        )
        self.worker = IngestionWorker(
            queue=self.queue,
            processor=self.processor,
            retry_policy=self._retry_policy("ingestion_requeue"),
            batch_size=settings.ingest_batch_size,
            concurrency=settings.ingest_concurrency,
        )
        self.monitor = WalletMonitor(
            queue=self.queue,
            rpc=self.rpc,
            wallet_repo=self.wallet_repo,
            backfill_limit=settings.backfill_signature_limit,
        )
        self.stream = LogStreamClient(
            ws_url=settings.solana_ws_url,
            on_signature=self.monitor.on_signature,
            max_reconnect_attempts=settings.stream_max_reconnect_attempts,
            base_delay=settings.stream_reconnect_base_delay,
            max_delay=settings.stream_reconnect_max_delay,
        )
        self.monitor.stream = self.stream

        # Query-side services
        self.wallets = WalletRegistry(self.wallet_repo, self.stats_repo, self.monitor)
        self.pnl = PnLAggregator(self.transaction_repo, self.wallet_repo, self.price_resolver)

        self.scheduler = MaintenanceScheduler()
        self._drain_task: asyncio.Task[None] | None = None

    def _retry_policy(self, name: str) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.settings.process_max_attempts,
            base_delay=self.settings.retry_base_delay_seconds,
            max_delay=self.settings.retry_max_delay_seconds,
            name=name,
        )

    def _price_providers(self) -> list[PriceProvider]:
        available: dict[str, PriceProvider] = {
            "pools": self.pool_provider,
            "dexscreener": DexScreenerProvider(self.dexscreener),
            "jupiter": JupiterPriceProvider(self.jupiter),
        }
        return [available[name] for name in self.settings.price_sources]

    @property
    def http_clients(self) -> list[BaseAPIClient]:
        return [self.rpc, self.dexscreener, self.jupiter, self.raydium, self.helius]

    async def start(self) -> None:
        """Connect storage, start intake, the drain task and scheduled jobs."""
        log.info("container_starting", redis=self.redis is not None)
        await self.supabase.connect()
        if self.redis is not None:
            await self.redis.connect()

        register_maintenance_jobs(
            self.scheduler,
            evictors=[
                ("prices", self.price_resolver.evict_expired),
                ("tokens", self.token_cache.evict_expired),
                ("shared", self.shared_cache.evict_expired),
                ("markers", self.work_queue.evict_expired),
            ],
            price_resolver=self.price_resolver,
            eviction_interval_seconds=self.settings.cache_eviction_interval_seconds,
            native_refresh_seconds=self.settings.native_refresh_seconds,
        )
        self.scheduler.start()

        try:
            await self.price_resolver.refresh_native()
        except Exception as e:
            log.warning("native_price_warmup_failed", error=str(e))

        await self.monitor.start()
        self.start_worker()
        log.info("container_started")

    def start_worker(self) -> None:
        """Start the drain loop; a second call while it runs is a no-op."""
        if self._drain_task is not None and not self._drain_task.done():
            return
        self._drain_task = asyncio.create_task(self.worker.run(), name="ingestion-drain")
        self._drain_task.add_done_callback(self._on_drain_done)

    def _on_drain_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.critical("ingestion_drain_crashed", error=str(exc))

    async def stop(self) -> None:
        """Stop tasks and close every connection."""
        log.info("container_stopping")
        await self.worker.stop()
        if self._drain_task is not None:
            self._drain_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._drain_task
            self._drain_task = None

        await self.monitor.stop()
        self.scheduler.shutdown()
        await self.store.wait_background()

        for client in self.http_clients:
            await client.close()
        if self.redis is not None:
            await self.redis.disconnect()
        await self.supabase.disconnect()
        log.info("container_stopped")

    async def get_status(self) -> dict[str, Any]:
        """Operational snapshot for the monitoring endpoint."""
        return {
            "queue": {"length": await self.queue.length(), **self.queue.get_status()},
            "worker": self.worker.get_status(),
            "monitor": self.monitor.get_status(),
            "store": self.store.get_status(),
            "broker": self.broker.get_status(),
            "prices": self.price_resolver.get_status(),
            "tokens": self.metadata_resolver.get_status(),
            "token_cache": self.token_cache.get_stats(),
            "scheduler": self.scheduler.get_status(),
            "circuit_breakers": {
                client.service_name: client.circuit_breaker.snapshot()
                for client in self.http_clients
            },
        }
