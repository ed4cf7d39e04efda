"""Tests for cost-basis PnL math and scope aggregation."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from solwatch.core.exceptions import NotFoundError
from solwatch.data.models.pnl import TokenPosition
from solwatch.data.models.price import PriceQuote, PriceSource
from solwatch.data.models.transaction import TransactionType
from solwatch.services.pnl.aggregator import PnLAggregator, compute_snapshot, pool_positions
from solwatch.services.pricing.pool_source import NATIVE_MINT
from tests.factories.transaction import transaction_draft as draft
from tests.factories.wallet import WalletFactory, new_address

MINT = "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"


def quote(mint: str, price: float, source: PriceSource = PriceSource.POOLS) -> PriceQuote:
    return PriceQuote(mint=mint, price=price, source=source)


def position(**kwargs) -> TokenPosition:
    kwargs.setdefault("mint", MINT)
    kwargs.setdefault("wallet_count", 1)
    return TokenPosition(**kwargs)


class TestComputeSnapshot:
    def test_realized_and_unrealized(self) -> None:
        """
        Given: 100 tokens bought for 10 SOL, 40 sold for 8 SOL, token at 0.3 SOL
        When: The snapshot is computed
        Then: avg 0.1, realized 4.0, unrealized 60 * (0.3 - 0.1) = 12.0
        """
        snapshot = compute_snapshot(
            position(
                total_tokens_bought=100,
                total_tokens_sold=40,
                total_spent_sol=10,
                total_received_sol=8,
            ),
            token_quote=quote(MINT, 30.0),
            native_quote=quote(NATIVE_MINT, 100.0),
        )

        assert snapshot.avg_buy_price_sol == pytest.approx(0.1)
        assert snapshot.current_holdings == pytest.approx(60)
        assert snapshot.current_price_sol == pytest.approx(0.3)
        assert snapshot.realized_pnl_sol == pytest.approx(4.0)
        assert snapshot.unrealized_pnl_sol == pytest.approx(12.0)
        assert snapshot.total_pnl_sol == pytest.approx(16.0)
        assert snapshot.total_pnl_usd == pytest.approx(1_600.0)
        assert snapshot.price_source == PriceSource.POOLS

    def test_oversold_is_capped(self) -> None:
        snapshot = compute_snapshot(
            position(
                total_tokens_bought=100,
                total_tokens_sold=150,
                total_spent_sol=10,
                total_received_sol=30,
            ),
            native_quote=quote(NATIVE_MINT, 100.0),
        )

        assert snapshot.sold_tokens == 100
        assert snapshot.current_holdings == 0
        assert snapshot.realized_pnl_sol == pytest.approx(20.0)
        assert snapshot.unrealized_pnl_sol == 0

    def test_sell_without_buys_has_no_realized_pnl(self) -> None:
        snapshot = compute_snapshot(
            position(total_tokens_sold=50, total_received_sol=5),
            native_quote=quote(NATIVE_MINT, 100.0),
        )

        assert snapshot.avg_buy_price_sol == 0
        assert snapshot.realized_pnl_sol == 0
        assert snapshot.total_pnl_sol == 0

    def test_unpriced_token_has_no_unrealized_pnl(self) -> None:
        snapshot = compute_snapshot(
            position(total_tokens_bought=10, total_spent_sol=1),
            token_quote=None,
            native_quote=quote(NATIVE_MINT, 100.0),
        )

        assert snapshot.current_price_sol is None
        assert snapshot.unrealized_pnl_sol == 0
        assert snapshot.price_source is None

    def test_usd_absent_without_native_price(self) -> None:
        snapshot = compute_snapshot(
            position(total_tokens_bought=10, total_spent_sol=1),
            token_quote=quote(MINT, 1.0),
        )

        assert snapshot.current_price_sol is None
        assert snapshot.total_pnl_usd is None


class TestPooling:
    def test_group_cost_basis_is_pooled(self) -> None:
        """
        Given: Wallet A bought 90 tokens for 10 SOL, wallet B 10 tokens for 30 SOL
        When: Positions are pooled
        Then: The group average is 40 / 100 = 0.4 SOL per token
        """
        pooled = pool_positions(
            [
                position(total_tokens_bought=90, total_spent_sol=10),
                position(total_tokens_bought=10, total_spent_sol=30),
            ]
        )

        snapshot = compute_snapshot(pooled[MINT])

        assert snapshot.avg_buy_price_sol == pytest.approx(0.4)
        assert snapshot.wallet_count == 2


@pytest.fixture
def price_resolver() -> MagicMock:
    resolver = MagicMock()
    resolver.get_prices = AsyncMock(return_value={MINT: quote(MINT, 50.0)})
    resolver.get_native_price = AsyncMock(return_value=quote(NATIVE_MINT, 100.0))
    return resolver


@pytest.fixture
def aggregator(fake_transaction_repo, fake_wallet_repo, price_resolver) -> PnLAggregator:
    return PnLAggregator(fake_transaction_repo, fake_wallet_repo, price_resolver)


class TestPnLAggregator:
    @pytest.mark.asyncio
    async def test_group_scope_pools_wallets(
        self, aggregator, fake_wallet_repo, fake_transaction_repo
    ) -> None:
        a = fake_wallet_repo.add(WalletFactory(group_id="g1"))
        b = fake_wallet_repo.add(WalletFactory(group_id="g1"))
        outsider = fake_wallet_repo.add(WalletFactory(group_id="g2"))
        await fake_transaction_repo.save(draft(a, TransactionType.BUY, 10, "90"))
        await fake_transaction_repo.save(draft(b, TransactionType.BUY, 30, "10"))
        await fake_transaction_repo.save(draft(outsider, TransactionType.BUY, 99, "1"))

        snapshot = await aggregator.compute_token_pnl(MINT, group_id="g1")

        assert snapshot.total_tokens_bought == 100
        assert snapshot.avg_buy_price_sol == pytest.approx(0.4)
        # 100 tokens at 0.5 SOL against a 40 SOL basis
        assert snapshot.unrealized_pnl_sol == pytest.approx(10.0)

    @pytest.mark.asyncio
    async def test_wallet_scope(self, aggregator, fake_wallet_repo, fake_transaction_repo) -> None:
        wallet = fake_wallet_repo.add(WalletFactory())
        await fake_transaction_repo.save(draft(wallet, TransactionType.BUY, 2, "100"))
        await fake_transaction_repo.save(draft(wallet, TransactionType.SELL, 3, "50"))

        snapshot = await aggregator.compute_token_pnl(MINT, wallet_address=wallet.address)

        assert snapshot.realized_pnl_sol == pytest.approx(2.0)
        assert snapshot.current_holdings == 50

    @pytest.mark.asyncio
    async def test_unknown_wallet(self, aggregator) -> None:
        with pytest.raises(NotFoundError):
            await aggregator.compute_token_pnl(MINT, wallet_address=new_address())

    @pytest.mark.asyncio
    async def test_never_traded_token(self, aggregator, fake_wallet_repo) -> None:
        wallet = fake_wallet_repo.add(WalletFactory())

        with pytest.raises(NotFoundError, match="position"):
            await aggregator.compute_token_pnl(MINT, wallet_address=wallet.address)

    @pytest.mark.asyncio
    async def test_compute_all_window_and_order(
        self, aggregator, fake_wallet_repo, fake_transaction_repo, price_resolver
    ) -> None:
        wallet = fake_wallet_repo.add(WalletFactory())
        await fake_transaction_repo.save(draft(wallet, TransactionType.BUY, 1, "100", hours_ago=1))
        await fake_transaction_repo.save(draft(wallet, TransactionType.BUY, 5, "100", hours_ago=48))

        recent = await aggregator.compute_all(wallet_address=wallet.address, hours=24)
        everything = await aggregator.compute_all(wallet_address=wallet.address)

        assert [s.total_tokens_bought for s in recent] == [100]
        assert [s.total_tokens_bought for s in everything] == [200]

    @pytest.mark.asyncio
    async def test_compute_all_empty(self, aggregator, price_resolver) -> None:
        assert await aggregator.compute_all(group_id="empty") == []
        price_resolver.get_prices.assert_not_awaited()
