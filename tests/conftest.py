"""Shared pytest fixtures for Solwatch tests.

This module provides:
- Test environment variables (no real Supabase, Redis or RPC needed)
- Test data factories
- In-memory doubles of the repositories and upstream clients

Usage:
    @pytest.mark.asyncio
    async def test_something(wallet_factory, fake_wallet_repo):
        wallet = wallet_factory()
        fake_wallet_repo.add(wallet)
"""

import os
from collections.abc import Generator

import pytest

from tests.factories.transaction import RawTransactionBuilder, TransactionFactory
from tests.factories.wallet import WalletFactory, new_address
from tests.support.fakes import (
    FakeTokenRepository,
    FakeTransactionRepository,
    FakeWalletRepository,
    FakeWalletStatsRepository,
)

# =============================================================================
# Environment Configuration
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment() -> Generator[None, None, None]:
    """Set up test environment variables.

    Loads .env file first, then sets defaults for any missing variables.
    """
    from dotenv import load_dotenv

    original_env = os.environ.copy()

    load_dotenv()

    os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
    os.environ.setdefault("SUPABASE_KEY", "test-key")
    # In-process cache, queue and broker
    os.environ["REDIS_URL"] = ""

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Settings are lru_cached; every test starts from the environment."""
    from solwatch.config.settings import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# =============================================================================
# Factory Fixtures
# =============================================================================


@pytest.fixture
def wallet_factory() -> type[WalletFactory]:
    """Provide wallet factory for creating test wallets."""
    return WalletFactory


@pytest.fixture
def transaction_factory() -> type[TransactionFactory]:
    return TransactionFactory


@pytest.fixture
def raw_transaction() -> type[RawTransactionBuilder]:
    """Builder for `getTransaction` jsonParsed payloads."""
    return RawTransactionBuilder


@pytest.fixture
def address() -> str:
    """A fresh valid Solana address."""
    return new_address()


# =============================================================================
# Repository Doubles
# =============================================================================


@pytest.fixture
def fake_wallet_repo() -> FakeWalletRepository:
    return FakeWalletRepository()


@pytest.fixture
def fake_transaction_repo(fake_wallet_repo: FakeWalletRepository) -> FakeTransactionRepository:
    return FakeTransactionRepository(fake_wallet_repo)


@pytest.fixture
def fake_stats_repo() -> FakeWalletStatsRepository:
    return FakeWalletStatsRepository()


@pytest.fixture
def fake_token_repo() -> FakeTokenRepository:
    return FakeTokenRepository()
