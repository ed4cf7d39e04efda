"""Fixtures wiring the ingestion pipeline to in-memory doubles."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from solwatch.core.retry import RetryPolicy
from solwatch.data.models.price import PriceQuote, PriceSource
from solwatch.data.models.token import TokenInfo, TokenSource
from solwatch.data.redis.pubsub import MemoryPubSubTransport
from solwatch.data.redis.queue import MemoryWorkQueue
from solwatch.services.ingestion.processor import TransactionProcessor
from solwatch.services.ingestion.queue import SignatureQueue
from solwatch.services.notify.broker import TransactionBroker
from solwatch.services.persistence.store import TransactionStore
from solwatch.services.solana.transaction_parser import WRAPPED_SOL_MINT, TransactionParser


@pytest.fixture
def work_backend() -> MemoryWorkQueue:
    return MemoryWorkQueue()


@pytest.fixture
def signature_queue(work_backend: MemoryWorkQueue) -> SignatureQueue:
    return SignatureQueue(work_backend, marker_ttl_seconds=60, failed_marker_ttl_seconds=3600)


@pytest.fixture
def broker() -> TransactionBroker:
    return TransactionBroker(MemoryPubSubTransport())


@pytest.fixture
def store(fake_transaction_repo, fake_stats_repo, broker) -> TransactionStore:
    return TransactionStore(fake_transaction_repo, fake_stats_repo, broker)


@pytest.fixture
def rpc() -> MagicMock:
    client = MagicMock()
    client.get_transaction = AsyncMock(return_value=None)
    client.get_signatures_for_address = AsyncMock(return_value=[])
    return client


@pytest.fixture
def metadata_resolver() -> MagicMock:
    async def resolve(mints, observed=None):
        return {
            mint: TokenInfo(
                mint=mint,
                symbol="TKN",
                name="Token",
                decimals=(observed or {}).get(mint, 0),
                source=TokenSource.METADATA_API,
            )
            for mint in mints
        }

    resolver = MagicMock()
    resolver.get_token_infos = AsyncMock(side_effect=resolve)
    return resolver


@pytest.fixture
def price_resolver() -> MagicMock:
    resolver = MagicMock()
    resolver.get_native_price = AsyncMock(
        return_value=PriceQuote(mint=WRAPPED_SOL_MINT, price=150.0, source=PriceSource.POOLS)
    )
    return resolver


@pytest.fixture
def processor(
    rpc, metadata_resolver, price_resolver, fake_wallet_repo, fake_transaction_repo, store
) -> TransactionProcessor:
    return TransactionProcessor(
        rpc=rpc,
        parser=TransactionParser(dust_threshold_sol=0.001),
        metadata_resolver=metadata_resolver,
        price_resolver=price_resolver,
        wallet_repo=fake_wallet_repo,
        transaction_repo=fake_transaction_repo,
        store=store,
        fetch_policy=RetryPolicy(max_attempts=2, base_delay=0.001, max_delay=0.001),
    )
