"""Unit tests for WalletStatsRepository."""

import pytest

from solwatch.core.exceptions import PersistenceError
from solwatch.data.supabase.repositories.wallet_stats_repo import WalletStatsRepository


class TestWalletStatsRepository:
    @pytest.mark.asyncio
    async def test_recompute(self, mock_supabase_client) -> None:
        mock_supabase_client.rpc.return_value = [
            {"wallet_id": "w-1", "total_spent_sol": 2.5, "total_buy_tx": 3}
        ]
        repo = WalletStatsRepository(mock_supabase_client)

        stat = await repo.recompute("w-1")

        assert stat is not None
        assert stat.total_spent_sol == 2.5
        assert stat.total_buy_tx == 3
        mock_supabase_client.rpc.assert_awaited_once_with(
            "recompute_wallet_stats", {"p_wallet_id": "w-1"}
        )

    @pytest.mark.asyncio
    async def test_recompute_failure(self, mock_supabase_client) -> None:
        mock_supabase_client.rpc.side_effect = RuntimeError("function missing")
        repo = WalletStatsRepository(mock_supabase_client)

        with pytest.raises(PersistenceError):
            await repo.recompute("w-1")

    @pytest.mark.asyncio
    async def test_get_for_wallets(self, mock_supabase_client, table_returns) -> None:
        table_returns(data=[{"wallet_id": "w-2", "total_sell_tx": 1}])
        repo = WalletStatsRepository(mock_supabase_client)

        stats = await repo.get_for_wallets(["w-1", "w-2"])

        assert set(stats) == {"w-2"}
        assert stats["w-2"].total_sell_tx == 1
