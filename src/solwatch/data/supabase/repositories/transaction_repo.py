"""Transaction repository for Supabase.

Writes go through the `save_transaction` database function so that the
transaction row and all of its token operations commit together, and a
conflicting signature returns the existing row instead of an error.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

import structlog

from solwatch.core.utils import short
from solwatch.core.exceptions import PersistenceError
from solwatch.data.models.pnl import TokenPosition
from solwatch.data.models.transaction import (
    TokenOperation,
    Transaction,
    TransactionDraft,
    TransactionType,
)
from solwatch.data.supabase.client import SupabaseClient

log = structlog.get_logger(__name__)

_SELECT_WITH_OPERATIONS = (
    "*, wallets!inner(address, display_name, group_id, is_active), "
    "token_operations(id, amount, operation_type, tokens(mint, symbol, name, decimals, logo_uri))"
)


def _row_to_transaction(row: dict[str, Any]) -> Transaction:
    wallet = row.get("wallets") or {}
    operations = []
    for op in row.get("token_operations") or []:
        token = op.get("tokens") or {}
        operations.append(
            TokenOperation(
                id=op.get("id"),
                transaction_id=row["id"],
                mint=token.get("mint", ""),
                symbol=token.get("symbol"),
                name=token.get("name"),
                decimals=token.get("decimals"),
                logo_uri=token.get("logo_uri"),
                amount=op["amount"],
                operation_type=op["operation_type"],
            )
        )
    return Transaction(
        id=row["id"],
        wallet_id=row["wallet_id"],
        wallet_address=wallet.get("address"),
        wallet_name=wallet.get("display_name"),
        group_id=wallet.get("group_id"),
        signature=row["signature"],
        block_time=row["block_time"],
        tx_type=row["tx_type"],
        sol_amount=float(row["sol_amount"]),
        usd_amount=float(row["usd_amount"]) if row.get("usd_amount") is not None else None,
        operations=operations,
        created_at=row.get("created_at") or datetime.now(UTC),
    )


class TransactionRepository:
    """Repository for transactions and token operations."""

    TABLE_NAME = "transactions"

    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    async def exists_signature(self, signature: str) -> bool:
        """Whether a transaction with this signature is already stored.

        Raises:
            PersistenceError: If the store cannot be read.
        """
        try:
            result = await (
                self._client.client.table(self.TABLE_NAME)
                .select("id")
                .eq("signature", signature)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise PersistenceError(f"Failed to check signature {short(signature)}: {e}") from e

        return bool(result.data)

    async def save(self, draft: TransactionDraft) -> tuple[Transaction, bool]:
        """Store a transaction and its operations atomically.

        Returns:
            Tuple of (stored transaction, inserted). `inserted` is False when
            the signature already existed; nothing else was written then.

        Raises:
            PersistenceError: If the store rejects the write.
        """
        params = {
            "p_wallet_id": draft.wallet_id,
            "p_signature": draft.signature,
            "p_block_time": draft.block_time.isoformat(),
            "p_type": draft.tx_type.value,
            "p_sol_amount": draft.sol_amount,
            "p_usd_amount": draft.usd_amount,
            "p_operations": [
                {
                    "mint": op.mint,
                    "symbol": op.symbol,
                    "name": op.name,
                    "decimals": op.decimals,
                    "logo_uri": op.logo_uri,
                    "amount": str(op.amount),
                    "operation_type": op.operation_type.value,
                }
                for op in draft.operations
            ],
        }

        try:
            data = await self._client.rpc("save_transaction", params)
        except Exception as e:
            log.error(
                "transaction_save_failed",
                signature=short(draft.signature, 16),
                error=str(e),
            )
            raise PersistenceError(f"Failed to save {short(draft.signature, 16)}: {e}") from e

        rows = data if isinstance(data, list) else [data] if data else []
        if not rows:
            msg = f"save_transaction returned no row for {short(draft.signature, 16)}"
            raise PersistenceError(msg)

        row = rows[0]
        inserted = bool(row.get("inserted"))
        transaction = Transaction(
            id=row["id"],
            wallet_id=row["wallet_id"],
            wallet_address=draft.wallet_address,
            wallet_name=draft.wallet_name,
            group_id=draft.group_id,
            signature=row["signature"],
            block_time=row["block_time"],
            tx_type=row["tx_type"],
            sol_amount=float(row["sol_amount"]),
            usd_amount=float(row["usd_amount"]) if row.get("usd_amount") is not None else None,
            operations=[
                TokenOperation(
                    transaction_id=row["id"],
                    mint=op.mint,
                    symbol=op.symbol,
                    name=op.name,
                    decimals=op.decimals,
                    logo_uri=op.logo_uri,
                    amount=op.amount,
                    operation_type=op.operation_type,
                )
                for op in draft.operations
            ]
            if inserted
            else [],
            created_at=row.get("created_at") or datetime.now(UTC),
        )
        return transaction, inserted

    async def get_by_signature(self, signature: str) -> Transaction | None:
        try:
            result = await (
                self._client.client.table(self.TABLE_NAME)
                .select(_SELECT_WITH_OPERATIONS)
                .eq("signature", signature)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise PersistenceError(f"Failed to read {short(signature, 16)}: {e}") from e

        rows = result.data or []
        return _row_to_transaction(rows[0]) if rows else None

    async def get_recent(
        self,
        hours: float = 24,
        tx_type: TransactionType | None = None,
        group_id: str | None = None,
        limit: int = 400,
    ) -> list[Transaction]:
        """Most-recent-first transactions with operations and token metadata."""
        since = datetime.now(UTC) - timedelta(hours=hours)
        try:
            query = (
                self._client.client.table(self.TABLE_NAME)
                .select(_SELECT_WITH_OPERATIONS)
                .gte("block_time", since.isoformat())
                .eq("wallets.is_active", True)
            )
            if tx_type is not None:
                query = query.eq("tx_type", tx_type.value)
            if group_id:
                query = query.eq("wallets.group_id", group_id)
            result = await query.order("block_time", desc=True).limit(limit).execute()
        except Exception as e:
            raise PersistenceError(f"Failed to query transactions: {e}") from e

        return [_row_to_transaction(row) for row in result.data or []]

    async def get_position_totals(
        self,
        wallet_ids: list[str],
        since: datetime | None = None,
        mint: str | None = None,
    ) -> list[TokenPosition]:
        """Raw per (wallet, mint) totals; one position per wallet and mint."""
        if not wallet_ids:
            return []

        params = {
            "p_wallet_ids": wallet_ids,
            "p_since": since.isoformat() if since else None,
            "p_mint": mint,
        }
        try:
            rows = await self._client.rpc("token_position_totals", params)
        except Exception as e:
            raise PersistenceError(f"Failed to load token positions: {e}") from e

        return [
            TokenPosition(
                mint=row["mint"],
                symbol=row.get("symbol"),
                name=row.get("name"),
                total_tokens_bought=float(row["total_tokens_bought"]),
                total_tokens_sold=float(row["total_tokens_sold"]),
                total_spent_sol=float(row["total_spent_sol"]),
                total_received_sol=float(row["total_received_sol"]),
                buy_count=int(row["buy_count"]),
                sell_count=int(row["sell_count"]),
                wallet_count=1,
            )
            for row in rows or []
        ]
