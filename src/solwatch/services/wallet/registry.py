"""Wallet registry: the set of wallets being monitored."""

import structlog

from solwatch.core.utils import short
from solwatch.core.exceptions import NotFoundError
from solwatch.core.wallet.validator import require_valid_address
from solwatch.data.models.wallet import Wallet, WalletWithStats
from solwatch.data.supabase.repositories.wallet_repo import WalletRepository
from solwatch.data.supabase.repositories.wallet_stats_repo import WalletStatsRepository
from solwatch.services.ingestion.monitor import WalletMonitor

log = structlog.get_logger(__name__)


class WalletRegistry:
    """Add, remove and list monitored wallets.

    Adding a wallet subscribes it and backfills its recent signatures;
    removing one unsubscribes it. Price and token caches are keyed by
    mint, so removals never invalidate them.
    """

    def __init__(
        self,
        wallet_repo: WalletRepository,
        stats_repo: WalletStatsRepository,
        monitor: WalletMonitor,
    ) -> None:
        self.wallet_repo = wallet_repo
        self.stats_repo = stats_repo
        self.monitor = monitor

    async def add_wallet(
        self,
        address: str,
        name: str | None = None,
        group_id: str | None = None,
    ) -> Wallet:
        """Register a wallet, or update and reactivate it if already known.

        Raises:
            InvalidAddressError: Address is not a valid public key.
            PersistenceError: Store unavailable.
        """
        address = require_valid_address(address)
        wallet = await self.wallet_repo.upsert_wallet(address, display_name=name, group_id=group_id)

        await self.monitor.watch(address)
        try:
            await self.monitor.backfill(address)
        except Exception as e:
            # the wallet is registered; live signatures still flow
            log.warning("wallet_backfill_failed", wallet_address=short(address), error=str(e))

        log.info("wallet_added", wallet_address=short(address), group_id=group_id)
        return wallet

    async def remove_wallet(self, address: str) -> None:
        """Remove a wallet and its history.

        Raises:
            NotFoundError: Address not currently registered.
        """
        wallet = await self.wallet_repo.get_by_address(address)
        if wallet is None or not wallet.is_active:
            raise NotFoundError("wallet", address)

        await self.wallet_repo.delete_by_address(address)
        await self.monitor.unwatch(address)
        log.info("wallet_removed", wallet_address=short(address))

    async def remove_all_wallets(self, group_id: str | None = None) -> int:
        """Atomically delete every wallet in scope; returns the count removed."""
        in_scope = await self.wallet_repo.list_active(group_id)
        count = await self.wallet_repo.remove_all(group_id)
        await self.monitor.unwatch_many([wallet.address for wallet in in_scope])
        log.info("wallets_removed_all", group_id=group_id, count=count)
        return count

    async def list_active_wallets(self, group_id: str | None = None) -> list[Wallet]:
        return await self.wallet_repo.list_active(group_id)

    async def list_wallets_with_stats(self, group_id: str | None = None) -> list[WalletWithStats]:
        """Active wallets with their stored WalletStat attached (None if never computed)."""
        wallets = await self.wallet_repo.list_active(group_id)
        stats = await self.stats_repo.get_for_wallets([w.id for w in wallets])
        return [
            WalletWithStats(**wallet.model_dump(), stats=stats.get(wallet.id))
            for wallet in wallets
        ]
