"""Tests for the service container wiring."""

from unittest.mock import AsyncMock

import pytest

from solwatch.config.settings import Settings
from solwatch.core.container import ServiceContainer
from solwatch.data.models.price import PriceSource
from solwatch.data.redis.cache import MemoryCache, RedisCache
from solwatch.data.redis.pubsub import MemoryPubSubTransport
from solwatch.data.redis.queue import MemoryWorkQueue, RedisWorkQueue


def make_settings(**overrides) -> Settings:
    values = {"supabase_url": "http://localhost:54321", "supabase_key": "test-key", "redis_url": ""}
    values.update(overrides)
    return Settings(**values)


class TestContainerWiring:
    def test_in_memory_backends_without_redis(self) -> None:
        container = ServiceContainer(make_settings())

        assert container.redis is None
        assert isinstance(container.shared_cache, MemoryCache)
        assert isinstance(container.work_queue, MemoryWorkQueue)
        assert isinstance(container.pubsub, MemoryPubSubTransport)

    def test_redis_backends_when_configured(self) -> None:
        container = ServiceContainer(make_settings(redis_url="redis://localhost:6379/0"))

        assert container.redis is not None
        assert isinstance(container.shared_cache, RedisCache)
        assert isinstance(container.work_queue, RedisWorkQueue)

    def test_price_sources_follow_settings_order(self) -> None:
        container = ServiceContainer(make_settings(price_sources=["jupiter", "pools"]))

        assert [p.source for p in container.price_resolver.providers] == [
            PriceSource.JUPITER,
            PriceSource.POOLS,
        ]

    def test_metadata_api_disabled_without_key(self) -> None:
        container = ServiceContainer(make_settings())

        assert container.metadata_resolver.helius is None

    def test_stream_attached_to_monitor(self) -> None:
        container = ServiceContainer(make_settings())

        assert container.monitor.stream is container.stream
        assert len(container.http_clients) == 5


class TestContainerLifecycle:
    @pytest.fixture
    def container(self) -> ServiceContainer:
        container = ServiceContainer(make_settings())
        container.supabase.connect = AsyncMock()
        container.supabase.disconnect = AsyncMock()
        container.monitor.start = AsyncMock()
        container.monitor.stop = AsyncMock()
        container.price_resolver.refresh_native = AsyncMock(side_effect=TimeoutError())
        for client in container.http_clients:
            client.close = AsyncMock()
        return container

    @pytest.mark.asyncio
    async def test_start_and_stop(self, container) -> None:
        """
        Given: Storage connects but the native price warm-up fails
        When: The container starts and then stops
        Then: The drain task and scheduler run, then everything is closed
        """
        await container.start()
        try:
            assert container.scheduler.running
            assert container._drain_task is not None
            drain_task = container._drain_task
            container.start_worker()  # Should not start a second task
            assert container._drain_task is drain_task
        finally:
            await container.stop()

        assert not container.scheduler.running
        assert container._drain_task is None
        container.supabase.disconnect.assert_awaited_once()
        for client in container.http_clients:
            client.close.assert_awaited_once()
