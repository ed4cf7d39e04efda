"""Tests for WalletRegistry."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from solwatch.core.exceptions import InvalidAddressError, NotFoundError
from solwatch.services.wallet.registry import WalletRegistry
from tests.factories.wallet import WalletFactory, new_address


@pytest.fixture
def monitor() -> MagicMock:
    mock = MagicMock()
    for name in ("watch", "unwatch", "unwatch_many"):
        setattr(mock, name, AsyncMock())
    mock.backfill = AsyncMock(return_value=3)
    return mock


@pytest.fixture
def registry(fake_wallet_repo, fake_stats_repo, monitor) -> WalletRegistry:
    return WalletRegistry(fake_wallet_repo, fake_stats_repo, monitor)


class TestAddWallet:
    @pytest.mark.asyncio
    async def test_add_watches_and_backfills(self, registry, monitor, fake_wallet_repo) -> None:
        """
        Given: A valid new address
        When: The wallet is added with a name and group
        Then: It is stored, subscribed and backfilled
        """
        address = new_address()

        wallet = await registry.add_wallet(f" {address} ", name="whale", group_id="g1")

        assert wallet.address == address
        assert wallet.display_name == "whale"
        assert await fake_wallet_repo.get_by_address(address) == wallet
        monitor.watch.assert_awaited_once_with(address)
        monitor.backfill.assert_awaited_once_with(address)

    @pytest.mark.asyncio
    async def test_invalid_address_rejected(self, registry, monitor, fake_wallet_repo) -> None:
        with pytest.raises(InvalidAddressError):
            await registry.add_wallet("not-a-wallet")

        assert fake_wallet_repo.wallets == {}
        monitor.watch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_backfill_failure_keeps_wallet(self, registry, monitor) -> None:
        monitor.backfill.side_effect = TimeoutError()
        address = new_address()

        wallet = await registry.add_wallet(address)

        assert wallet.address == address
        monitor.watch.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_re_adding_updates_existing(self, registry, fake_wallet_repo) -> None:
        address = new_address()
        first = await registry.add_wallet(address, name="old")

        second = await registry.add_wallet(address, name="new")

        assert second.id == first.id
        assert second.display_name == "new"
        assert len(fake_wallet_repo.wallets) == 1


class TestRemoveWallet:
    @pytest.mark.asyncio
    async def test_remove(self, registry, monitor, fake_wallet_repo) -> None:
        wallet = fake_wallet_repo.add(WalletFactory())

        await registry.remove_wallet(wallet.address)

        assert await fake_wallet_repo.get_by_address(wallet.address) is None
        monitor.unwatch.assert_awaited_once_with(wallet.address)

    @pytest.mark.asyncio
    async def test_remove_unknown(self, registry, monitor) -> None:
        with pytest.raises(NotFoundError):
            await registry.remove_wallet(new_address())
        monitor.unwatch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_remove_all_in_group(self, registry, monitor, fake_wallet_repo) -> None:
        in_group = [fake_wallet_repo.add(WalletFactory(group_id="g1")) for _ in range(2)]
        other = fake_wallet_repo.add(WalletFactory(group_id="g2"))

        count = await registry.remove_all_wallets("g1")

        assert count == 2
        assert list(fake_wallet_repo.wallets) == [other.address]
        monitor.unwatch_many.assert_awaited_once_with([w.address for w in in_group])


class TestListing:
    @pytest.mark.asyncio
    async def test_stats_attached(self, registry, fake_wallet_repo, fake_stats_repo) -> None:
        with_stats = fake_wallet_repo.add(WalletFactory())
        without_stats = fake_wallet_repo.add(WalletFactory())
        await fake_stats_repo.recompute(with_stats.id)

        listed = {w.address: w for w in await registry.list_wallets_with_stats()}

        assert listed[with_stats.address].stats is not None
        assert listed[with_stats.address].stats.wallet_id == with_stats.id
        assert listed[without_stats.address].stats is None
