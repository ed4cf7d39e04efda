"""Tests for the liquidity-weighted pool price source."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from solwatch.core.exceptions import ExternalServiceError
from solwatch.data.models.price import PriceSource
from solwatch.services.pricing.pool_source import (
    NATIVE_MINT,
    USDC_MINT,
    PoolPriceProvider,
    PoolQuote,
    weighted_price,
)
from solwatch.services.raydium.client import PoolInfo

MINT = "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"


class TestWeightedPrice:
    def test_liquidity_weighted_average(self) -> None:
        quotes = [
            PoolQuote("a", price_usd=1.0, liquidity_usd=1_000),
            PoolQuote("b", price_usd=2.0, liquidity_usd=3_000),
        ]

        best = weighted_price(quotes, min_liquidity_usd=500)

        assert best is not None
        assert best.price_usd == pytest.approx(1.75)
        assert best.liquidity_usd == 4_000
        assert best.pool_id == "weighted"

    def test_shallow_pools_excluded(self) -> None:
        quotes = [
            PoolQuote("deep", price_usd=1.0, liquidity_usd=50_000),
            PoolQuote("shallow", price_usd=100.0, liquidity_usd=10),
        ]

        best = weighted_price(quotes, min_liquidity_usd=1_000)

        assert best == PoolQuote("deep", price_usd=1.0, liquidity_usd=50_000)

    def test_no_qualifying_pool(self) -> None:
        assert weighted_price([PoolQuote("a", 1.0, 10)], min_liquidity_usd=1_000) is None
        assert weighted_price([], min_liquidity_usd=0) is None

    def test_zero_weights_use_deepest_pool(self) -> None:
        quotes = [PoolQuote("a", 1.0, 0.0), PoolQuote("b", 3.0, 0.0)]

        best = weighted_price(quotes, min_liquidity_usd=0)

        assert best is not None
        assert best.price_usd in (1.0, 3.0)
        assert best.liquidity_usd == 0.0


def pool(pool_id: str, mint_a: str, mint_b: str) -> PoolInfo:
    return PoolInfo(
        id=pool_id,
        mint_a=mint_a,
        mint_b=mint_b,
        decimals_a=6,
        decimals_b=9,
        vault_a=f"{pool_id}-vault-a",
        vault_b=f"{pool_id}-vault-b",
    )


@pytest.fixture
def raydium() -> MagicMock:
    client = MagicMock()
    client.find_pools = AsyncMock(return_value=[])
    return client


@pytest.fixture
def rpc() -> MagicMock:
    client = MagicMock()
    client.get_token_account_balance = AsyncMock(return_value=None)
    return client


class TestPoolPriceProvider:
    @pytest.mark.asyncio
    async def test_prices_from_sol_pool(self, raydium, rpc) -> None:
        """
        Given: A MINT/SOL pool holding 1000 MINT and 10 SOL, SOL at $100
        When: The provider prices MINT
        Then: MINT is worth 0.01 SOL = $1.00 with $2000 liquidity
        """

        async def find_pools(mint_a, mint_b, limit=3):
            return [pool("p1", MINT, NATIVE_MINT)] if mint_b == NATIVE_MINT else []

        balances = {
            "p1-vault-a": {"amount": "1000000000", "decimals": 6, "uiAmountString": "1000"},
            "p1-vault-b": {"amount": "10000000000", "decimals": 9},
        }
        raydium.find_pools.side_effect = find_pools
        rpc.get_token_account_balance.side_effect = lambda account: balances[account]
        provider = PoolPriceProvider(
            raydium, rpc, min_liquidity_usd=1_000, native_usd=lambda: 100.0
        )

        quotes = await provider.get_prices([MINT])

        assert quotes[MINT].price == pytest.approx(1.0)
        assert quotes[MINT].liquidity == pytest.approx(2_000)
        assert quotes[MINT].source == PriceSource.POOLS

    @pytest.mark.asyncio
    async def test_reversed_pool_orientation(self, raydium, rpc) -> None:
        async def find_pools(mint_a, mint_b, limit=3):
            return [pool("p2", USDC_MINT, MINT)] if mint_b == USDC_MINT else []

        balances = {
            "p2-vault-a": {"uiAmountString": "5000"},
            "p2-vault-b": {"uiAmountString": "2500"},
        }
        raydium.find_pools.side_effect = find_pools
        rpc.get_token_account_balance.side_effect = lambda account: balances[account]
        provider = PoolPriceProvider(raydium, rpc, min_liquidity_usd=1_000)

        quotes = await provider.get_prices([MINT])

        assert quotes[MINT].price == pytest.approx(2.0)

    @pytest.mark.asyncio
    async def test_sol_pools_skipped_without_native_price(self, raydium, rpc) -> None:
        provider = PoolPriceProvider(raydium, rpc, native_usd=lambda: None)

        assert await provider.get_prices([MINT]) == {}
        searched = {call.args[1] for call in raydium.find_pools.await_args_list}
        assert NATIVE_MINT not in searched

    @pytest.mark.asyncio
    async def test_native_mint_priced_against_stables_only(self, raydium, rpc) -> None:
        provider = PoolPriceProvider(raydium, rpc, native_usd=lambda: 150.0)

        await provider.get_prices([NATIVE_MINT])

        searched = [call.args[1] for call in raydium.find_pools.await_args_list]
        assert NATIVE_MINT not in searched
        assert USDC_MINT in searched

    @pytest.mark.asyncio
    async def test_raises_when_every_mint_failed(self, raydium, rpc) -> None:
        raydium.find_pools.side_effect = ExternalServiceError("raydium", "down", 503)
        provider = PoolPriceProvider(raydium, rpc)

        with pytest.raises(ExternalServiceError):
            await provider.get_prices([MINT])
