"""Transaction processor: fetch, classify, resolve, persist.

Pipeline for one SignatureEvent:

1. Dedup against the transactions table.
2. Fetch the parsed transaction over RPC (retry policy applied).
3. Classify by the wallet's SOL delta and collect token deltas.
4. Resolve token metadata for every surviving mint in one batch.
5. Hand the normalized transaction to the store as one atomic unit.
"""

from datetime import UTC, datetime
from typing import Any

import structlog

from solwatch.core.utils import short
from solwatch.core.exceptions import FetchFailedError, TransactionNotFoundError
from solwatch.core.retry import RetryPolicy
from solwatch.data.models.price import PriceSource
from solwatch.data.models.transaction import (
    SignatureEvent,
    TokenOperationDraft,
    Transaction,
    TransactionDraft,
)
from solwatch.data.supabase.repositories.transaction_repo import TransactionRepository
from solwatch.data.supabase.repositories.wallet_repo import WalletRepository
from solwatch.services.persistence.store import TransactionStore
from solwatch.services.pricing.price_resolver import PriceResolver
from solwatch.services.solana.rpc_client import SolanaRPCClient
from solwatch.services.solana.transaction_parser import TransactionParser, has_complete_meta
from solwatch.services.token.metadata_resolver import TokenMetadataResolver

log = structlog.get_logger(__name__)


class TransactionProcessor:
    """Turns signature events into persisted transactions.

    Attributes:
        discarded: Events that legitimately produced no transaction.
    """

    def __init__(
        self,
        rpc: SolanaRPCClient,
        parser: TransactionParser,
        metadata_resolver: TokenMetadataResolver,
        price_resolver: PriceResolver,
        wallet_repo: WalletRepository,
        transaction_repo: TransactionRepository,
        store: TransactionStore,
        fetch_policy: RetryPolicy | None = None,
    ) -> None:
        self.rpc = rpc
        self.parser = parser
        self.metadata_resolver = metadata_resolver
        self.price_resolver = price_resolver
        self.wallet_repo = wallet_repo
        self.transaction_repo = transaction_repo
        self.store = store
        self.fetch_policy = fetch_policy or RetryPolicy(name="transaction_fetch")
        self.discarded = 0

    async def process(self, event: SignatureEvent) -> Transaction | None:
        """Process one event.

        Returns:
            The newly stored Transaction, or None when the event was a
            duplicate or was discarded.

        Raises:
            FetchFailedError: Fetch failed after the retry policy (retryable).
            TransactionNotFoundError: RPC had no such transaction.
            MalformedTransactionError: Transaction data unusable (permanent).
            PersistenceError: Store unavailable.
        """
        signature = event.signature

        if await self.transaction_repo.exists_signature(signature):
            log.debug("transaction_already_stored", signature=short(signature, 16))
            return None

        wallet = await self.wallet_repo.get_by_address(event.wallet_address)
        if wallet is None or not wallet.is_active:
            self.discarded += 1
            log.info(
                "transaction_discarded_wallet_not_monitored",
                signature=short(signature, 16),
                wallet_address=short(event.wallet_address),
            )
            return None

        raw = await self.fetch_policy.call(self._fetch, signature)

        parsed = self.parser.parse(raw, event.wallet_address, signature, event.block_time)
        if parsed is None:
            self.discarded += 1
            return None

        observed = {delta.mint: delta.decimals for delta in parsed.token_deltas}
        tokens = await self.metadata_resolver.get_token_infos(list(observed), observed)

        native = await self.price_resolver.get_native_price()
        # A fabricated SOL price is not recorded as a historical USD amount
        usd_amount = (
            parsed.sol_amount * native.price if native.source != PriceSource.FALLBACK else None
        )

        operations = []
        for delta in parsed.token_deltas:
            info = tokens[delta.mint]
            operations.append(
                TokenOperationDraft(
                    mint=delta.mint,
                    symbol=info.symbol,
                    name=info.name,
                    decimals=delta.decimals,
                    logo_uri=info.logo_uri,
                    amount=delta.amount,
                    operation_type=parsed.tx_type,
                )
            )

        draft = TransactionDraft(
            wallet_id=wallet.id,
            wallet_address=wallet.address,
            wallet_name=wallet.display_name,
            group_id=wallet.group_id,
            signature=signature,
            block_time=datetime.fromtimestamp(parsed.block_time, tz=UTC),
            tx_type=parsed.tx_type,
            sol_amount=parsed.sol_amount,
            usd_amount=usd_amount,
            operations=operations,
        )

        transaction, inserted = await self.store.save(draft)
        return transaction if inserted else None

    async def _fetch(self, signature: str) -> dict[str, Any]:
        raw = await self.rpc.get_transaction(signature)
        if raw is None:
            raise TransactionNotFoundError(signature)
        if not has_complete_meta(raw):
            raise FetchFailedError(signature, "transaction meta missing or incomplete")
        return raw
