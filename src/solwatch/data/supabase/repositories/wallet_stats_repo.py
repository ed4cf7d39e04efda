"""Wallet statistics repository.

Stats are recomputed from scratch by the `recompute_wallet_stats`
database function, never patched incrementally.
"""

import structlog

from solwatch.core.exceptions import PersistenceError
from solwatch.data.models.wallet import WalletStat
from solwatch.data.supabase.client import SupabaseClient

log = structlog.get_logger(__name__)


class WalletStatsRepository:
    """Repository for the wallet_stats table."""

    TABLE_NAME = "wallet_stats"

    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    async def recompute(self, wallet_id: str) -> WalletStat | None:
        try:
            data = await self._client.rpc("recompute_wallet_stats", {"p_wallet_id": wallet_id})
        except Exception as e:
            raise PersistenceError(f"Failed to recompute stats for {wallet_id}: {e}") from e

        rows = data if isinstance(data, list) else [data] if data else []
        return WalletStat(**rows[0]) if rows else None

    async def get_for_wallets(self, wallet_ids: list[str]) -> dict[str, WalletStat]:
        """Stored stats keyed by wallet id; missing wallets are absent."""
        if not wallet_ids:
            return {}

        try:
            result = await (
                self._client.client.table(self.TABLE_NAME)
                .select("*")
                .in_("wallet_id", wallet_ids)
                .execute()
            )
        except Exception as e:
            log.warning("wallet_stats_get_failed", count=len(wallet_ids), error=str(e))
            return {}

        return {row["wallet_id"]: WalletStat(**row) for row in result.data or []}
