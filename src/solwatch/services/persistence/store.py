"""Persistence and dedup layer.

The durable uniqueness constraint on `transactions.signature` is the
authoritative at-most-once guarantee. After a new row commits, wallet stats
are recomputed and the transaction is published to live subscribers; both
run in the background and their failures never touch the committed row.
"""

import asyncio
from collections.abc import Coroutine
from typing import Any

import structlog

from solwatch.core.utils import short
from solwatch.data.models.transaction import Transaction, TransactionDraft
from solwatch.data.supabase.repositories.transaction_repo import TransactionRepository
from solwatch.data.supabase.repositories.wallet_stats_repo import WalletStatsRepository
from solwatch.services.notify.broker import TransactionBroker

log = structlog.get_logger(__name__)


class TransactionStore:
    """Atomic save plus post-commit side effects.

    Attributes:
        saved: New transactions committed.
        conflicts: Saves that hit an existing signature.
    """

    def __init__(
        self,
        transaction_repo: TransactionRepository,
        stats_repo: WalletStatsRepository,
        broker: TransactionBroker,
    ) -> None:
        self.transaction_repo = transaction_repo
        self.stats_repo = stats_repo
        self.broker = broker
        self.saved = 0
        self.conflicts = 0
        self.side_effect_failures = 0
        self._background: set[asyncio.Task[None]] = set()

    async def save(self, draft: TransactionDraft) -> tuple[Transaction, bool]:
        """Persist a normalized transaction.

        Returns:
            Tuple of (stored transaction, inserted). On a signature conflict
            the existing row is returned with inserted=False.

        Raises:
            PersistenceError: If the store is unavailable.
        """
        transaction, inserted = await self.transaction_repo.save(draft)

        if not inserted:
            self.conflicts += 1
            log.info("transaction_already_saved", signature=short(draft.signature, 16))
            return transaction, False

        self.saved += 1
        log.info(
            "transaction_saved",
            signature=short(transaction.signature, 16),
            wallet_address=short(draft.wallet_address),
            tx_type=transaction.tx_type.value,
            sol_amount=transaction.sol_amount,
            operations=len(transaction.operations),
        )
        self._spawn(self._after_commit(transaction))
        return transaction, True

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _after_commit(self, transaction: Transaction) -> None:
        try:
            await self.stats_repo.recompute(transaction.wallet_id)
        except Exception as e:
            self.side_effect_failures += 1
            log.warning(
                "wallet_stats_recompute_failed",
                wallet_id=transaction.wallet_id,
                error=str(e),
            )

        await self.broker.publish(transaction)

    async def wait_background(self) -> None:
        """Wait for pending post-commit side effects (used on shutdown and in tests)."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    def get_status(self) -> dict[str, int]:
        return {
            "saved": self.saved,
            "conflicts": self.conflicts,
            "side_effect_failures": self.side_effect_failures,
            "pending_side_effects": len(self._background),
        }
