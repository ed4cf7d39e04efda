"""Tests for TransactionBroker fan-out and TransactionStore side effects."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from solwatch.core.exceptions import PersistenceError
from solwatch.data.models.transaction import TransactionType
from solwatch.data.redis.pubsub import MemoryPubSubTransport
from solwatch.services.notify.broker import TransactionBroker
from solwatch.services.persistence.store import TransactionStore
from tests.factories.transaction import TransactionFactory
from tests.factories.transaction import transaction_draft as draft
from tests.factories.wallet import WalletFactory


async def wait_for_listeners(transport: MemoryPubSubTransport, count: int) -> None:
    for _ in range(100):
        if transport.listener_count == count:
            return
        await asyncio.sleep(0.001)
    raise AssertionError(f"expected {count} listeners, have {transport.listener_count}")


@pytest.fixture
def transport() -> MemoryPubSubTransport:
    return MemoryPubSubTransport()


@pytest.fixture
def broker(transport) -> TransactionBroker:
    return TransactionBroker(transport)


class TestTransactionBroker:
    @pytest.mark.asyncio
    async def test_group_filter(self, broker, transport) -> None:
        """
        Given: A subscriber filtered on group g1
        When: Transactions for g2 and g1 are published
        Then: Only the g1 transaction is delivered
        """
        received = []

        async def consume():
            async for tx in broker.subscribe(group_id="g1"):
                received.append(tx)
                return

        consumer = asyncio.create_task(consume())
        await wait_for_listeners(transport, 1)

        await broker.publish(TransactionFactory(group_id="g2"))
        target = TransactionFactory(group_id="g1")
        await broker.publish(target)
        await asyncio.wait_for(consumer, timeout=1)

        assert [tx.signature for tx in received] == [target.signature]
        assert broker.subscribers == 0
        assert transport.listener_count == 0

    @pytest.mark.asyncio
    async def test_no_replay_for_late_subscribers(self, broker, transport) -> None:
        assert await broker.publish(TransactionFactory()) == 0
        assert broker.get_status()["published"] == 1

    @pytest.mark.asyncio
    async def test_fan_out_to_every_subscriber(self, broker, transport) -> None:
        async def first_one():
            async for tx in broker.subscribe():
                return tx

        consumers = [asyncio.create_task(first_one()) for _ in range(3)]
        await wait_for_listeners(transport, 3)

        delivered = await broker.publish(TransactionFactory(tx_type=TransactionType.SELL))
        results = await asyncio.wait_for(asyncio.gather(*consumers), timeout=1)

        assert delivered == 3
        assert all(tx.tx_type == TransactionType.SELL for tx in results)

    @pytest.mark.asyncio
    async def test_transport_failure_is_swallowed(self) -> None:
        transport = MemoryPubSubTransport()
        transport.publish = AsyncMock(side_effect=ConnectionError("redis down"))
        broker = TransactionBroker(transport)

        assert await broker.publish(TransactionFactory()) == 0
        assert broker.publish_failures == 1


class TestTransactionStore:
    @pytest.mark.asyncio
    async def test_new_row_triggers_stats_and_publish(
        self, fake_transaction_repo, fake_stats_repo, broker
    ) -> None:
        broker.publish = AsyncMock(return_value=1)
        store = TransactionStore(fake_transaction_repo, fake_stats_repo, broker)
        wallet = WalletFactory()

        tx, inserted = await store.save(draft(wallet, TransactionType.BUY, 1, "10"))
        await store.wait_background()

        assert inserted
        assert fake_stats_repo.recomputed == [wallet.id]
        broker.publish.assert_awaited_once_with(tx)
        assert store.get_status()["saved"] == 1

    @pytest.mark.asyncio
    async def test_conflict_has_no_side_effects(
        self, fake_transaction_repo, fake_stats_repo, broker
    ) -> None:
        broker.publish = AsyncMock(return_value=1)
        store = TransactionStore(fake_transaction_repo, fake_stats_repo, broker)
        duplicate = draft(WalletFactory(), TransactionType.BUY, 1, "10")

        await store.save(duplicate)
        _, inserted = await store.save(duplicate)
        await store.wait_background()

        assert not inserted
        assert store.conflicts == 1
        assert len(fake_stats_repo.recomputed) == 1
        assert broker.publish.await_count == 1

    @pytest.mark.asyncio
    async def test_stats_failure_still_publishes(
        self, fake_transaction_repo, fake_stats_repo, broker
    ) -> None:
        fake_stats_repo.fail = True
        broker.publish = AsyncMock(return_value=0)
        store = TransactionStore(fake_transaction_repo, fake_stats_repo, broker)

        await store.save(draft(WalletFactory(), TransactionType.SELL, 2, "5"))
        await store.wait_background()

        assert store.side_effect_failures == 1
        broker.publish.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_persistence_error_propagates(
        self, fake_transaction_repo, fake_stats_repo, broker
    ) -> None:
        fake_transaction_repo.fail_saves = 1
        store = TransactionStore(fake_transaction_repo, fake_stats_repo, broker)

        with pytest.raises(PersistenceError):
            await store.save(draft(WalletFactory(), TransactionType.BUY, 1, "10"))
        assert fake_stats_repo.recomputed == []
