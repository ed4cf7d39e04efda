"""Signature intake for monitored wallets.

Three delivery paths feed the same SignatureQueue:
- the websocket logs subscription (one subscription per wallet),
- Helius enhanced-transaction webhooks,
- a backfill of recent signatures when a wallet is added.
"""

from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from solwatch.core.utils import short
from solwatch.data.models.transaction import SignatureEvent
from solwatch.data.supabase.repositories.wallet_repo import WalletRepository
from solwatch.services.helius.models import WebhookTransaction
from solwatch.services.ingestion.queue import SignatureQueue
from solwatch.services.solana.log_stream import LogStreamClient
from solwatch.services.solana.rpc_client import SolanaRPCClient

log = structlog.get_logger(__name__)


class WalletMonitor:
    """Keeps the set of watched wallets and routes their signatures to the queue.

    Attributes:
        stream: Logs subscription client; attached after construction
            because it calls back into `on_signature`.
    """

    def __init__(
        self,
        queue: SignatureQueue,
        rpc: SolanaRPCClient,
        wallet_repo: WalletRepository,
        backfill_limit: int = 20,
    ) -> None:
        self.queue = queue
        self.rpc = rpc
        self.wallet_repo = wallet_repo
        self.backfill_limit = backfill_limit
        self.stream: LogStreamClient | None = None
        self.webhook_events = 0
        self.backfilled = 0
        self._watched: set[str] = set()

    @property
    def watched(self) -> frozenset[str]:
        return frozenset(self._watched)

    async def start(self) -> None:
        """Load every active wallet and start the subscription."""
        wallets = await self.wallet_repo.list_active()
        for wallet in wallets:
            await self.watch(wallet.address)
        if self.stream is not None:
            await self.stream.start()
        log.info("wallet_monitor_started", wallets=len(self._watched))

    async def stop(self) -> None:
        if self.stream is not None:
            await self.stream.stop()
        log.info("wallet_monitor_stopped")

    async def on_signature(self, address: str, signature: str) -> None:
        """Stream callback: queue a notification for a watched wallet."""
        if address not in self._watched:
            return
        await self.queue.enqueue(SignatureEvent(signature=signature, wallet_address=address))

    async def watch(self, address: str) -> None:
        self._watched.add(address)
        if self.stream is not None:
            await self.stream.subscribe(address)

    async def unwatch(self, address: str) -> None:
        self._watched.discard(address)
        if self.stream is not None:
            await self.stream.unsubscribe(address)

    async def unwatch_many(self, addresses: list[str]) -> None:
        for address in addresses:
            self._watched.discard(address)
        if self.stream is not None:
            await self.stream.unsubscribe_all(addresses)
        log.info("wallets_unwatched", count=len(addresses))

    async def backfill(self, address: str, limit: int | None = None) -> int:
        """Queue the wallet's most recent successful signatures, oldest first.

        Returns:
            Number of signatures actually queued (duplicates excluded).
        """
        limit = self.backfill_limit if limit is None else limit
        if limit <= 0:
            return 0

        entries = await self.rpc.get_signatures_for_address(address, limit=limit)
        queued = 0
        for entry in reversed(entries):
            if entry.get("err") is not None or not entry.get("signature"):
                continue
            event = SignatureEvent(
                signature=entry["signature"],
                wallet_address=address,
                block_time=entry.get("blockTime"),
            )
            if await self.queue.enqueue(event):
                queued += 1

        self.backfilled += queued
        log.info(
            "wallet_backfill_queued",
            wallet_address=short(address),
            found=len(entries),
            queued=queued,
        )
        return queued

    async def ingest_webhook(self, payload: Any) -> dict[str, int]:
        """Queue signatures from a single or batched enhanced-transaction payload.

        Returns:
            Counts of received, queued and skipped transactions.
        """
        items = payload if isinstance(payload, list) else [payload]
        queued = 0
        skipped = 0

        for item in items:
            try:
                tx = WebhookTransaction.model_validate(item)
            except PydanticValidationError as e:
                skipped += 1
                log.warning("webhook_transaction_invalid", error=str(e)[:200])
                continue

            if tx.transaction_error is not None:
                skipped += 1
                continue

            wallets = tx.involved_accounts() & self._watched
            if not wallets:
                skipped += 1
                continue

            for address in wallets:
                event = SignatureEvent(
                    signature=tx.signature,
                    wallet_address=address,
                    block_time=tx.timestamp,
                )
                if await self.queue.enqueue(event):
                    queued += 1

        self.webhook_events += len(items)
        log.info("webhook_ingested", received=len(items), queued=queued, skipped=skipped)
        return {"received": len(items), "queued": queued, "skipped": skipped}

    def get_status(self) -> dict[str, Any]:
        return {
            "watched_wallets": len(self._watched),
            "webhook_events": self.webhook_events,
            "backfilled": self.backfilled,
            "stream": self.stream.get_status() if self.stream is not None else None,
        }
