"""Solana parsed-transaction classifier.

Turns a `getTransaction` (jsonParsed) payload into a ParsedTransaction
for one monitored wallet:

    BUY:  wallet SOL decreased by more than the dust threshold,
          token accounts owned by the wallet increased.
    SELL: wallet SOL increased by more than the dust threshold,
          token accounts owned by the wallet decreased.

Stateless, safe for concurrent use.
"""

from collections import defaultdict
from typing import Any

import structlog

from solwatch.core.utils import short
from solwatch.core.exceptions import MalformedTransactionError
from solwatch.data.models.transaction import ParsedTransaction, TokenDelta, TransactionType

log = structlog.get_logger(__name__)

LAMPORTS_PER_SOL = 1_000_000_000
WRAPPED_SOL_MINT = "So11111111111111111111111111111111111111112"


def find_account_index(message: dict[str, Any], address: str) -> int:
    """Index of `address` in the message account keys, -1 if absent.

    jsonParsed keys are `{"pubkey": ...}` objects; raw encodings use strings.
    """
    keys = message.get("accountKeys") or message.get("staticAccountKeys") or []
    for index, key in enumerate(keys):
        pubkey = key.get("pubkey") if isinstance(key, dict) else key
        if pubkey == address:
            return index
    return -1


def has_complete_meta(raw_transaction: dict[str, Any]) -> bool:
    """Whether the payload carries the balance arrays classification needs."""
    meta = raw_transaction.get("meta")
    if not isinstance(meta, dict):
        return False
    return isinstance(meta.get("preBalances"), list) and isinstance(
        meta.get("postBalances"), list
    )


class TransactionParser:
    """Classifier for one wallet's view of a transaction.

    Attributes:
        dust_threshold_sol: SOL deltas with absolute value at or below this
            are fee noise and the transaction is discarded.
    """

    def __init__(self, dust_threshold_sol: float = 0.001) -> None:
        self.dust_threshold_sol = dust_threshold_sol

    def parse(
        self,
        raw_transaction: dict[str, Any],
        wallet_address: str,
        signature: str,
        block_time: int | None = None,
    ) -> ParsedTransaction | None:
        """Classify a transaction for `wallet_address`.

        Args:
            raw_transaction: `getTransaction` result with complete meta.
            wallet_address: Monitored wallet whose balances are examined.
            signature: Transaction signature (for logs and the result).
            block_time: Fallback when the payload has no `blockTime`.

        Returns:
            ParsedTransaction, or None when the transaction is discarded
            (failed on-chain, dust, or no token moved in the classified
            direction).

        Raises:
            MalformedTransactionError: Wallet absent from account keys,
                balance arrays too short, or no block time at all.
        """
        meta = raw_transaction["meta"]
        if meta.get("err") is not None:
            log.debug("transaction_discarded_failed", signature=short(signature, 16))
            return None

        message = (raw_transaction.get("transaction") or {}).get("message") or {}
        wallet_index = find_account_index(message, wallet_address)
        if wallet_index < 0:
            raise MalformedTransactionError(signature, "wallet not in account keys")

        pre_balances = meta["preBalances"]
        post_balances = meta["postBalances"]
        if wallet_index >= len(pre_balances) or wallet_index >= len(post_balances):
            raise MalformedTransactionError(signature, "balance arrays shorter than account keys")

        sol_delta = (post_balances[wallet_index] - pre_balances[wallet_index]) / LAMPORTS_PER_SOL
        tx_type = self.classify(sol_delta)
        if tx_type is None:
            log.debug(
                "transaction_discarded_dust",
                signature=short(signature, 16),
                sol_delta=sol_delta,
            )
            return None

        deltas = self.token_deltas(meta, wallet_address, tx_type)
        if not deltas:
            log.debug(
                "transaction_discarded_no_token_change",
                signature=short(signature, 16),
                tx_type=tx_type.value,
            )
            return None

        resolved_time = raw_transaction.get("blockTime") or block_time
        if resolved_time is None:
            raise MalformedTransactionError(signature, "no block time")

        return ParsedTransaction(
            signature=signature,
            wallet_address=wallet_address,
            block_time=int(resolved_time),
            tx_type=tx_type,
            sol_amount=abs(sol_delta),
            token_deltas=deltas,
        )

    def classify(self, sol_delta: float) -> TransactionType | None:
        """BUY when SOL left the wallet, SELL when it arrived, None for dust."""
        if sol_delta < -self.dust_threshold_sol:
            return TransactionType.BUY
        if sol_delta > self.dust_threshold_sol:
            return TransactionType.SELL
        return None

    def token_deltas(
        self,
        meta: dict[str, Any],
        wallet_address: str,
        tx_type: TransactionType,
    ) -> list[TokenDelta]:
        """Per-mint token changes of the wallet that agree with `tx_type`.

        Balances are matched by (mint, accountIndex); a side missing from
        pre or post state counts as zero. Only accounts owned by the wallet
        are considered, wrapped SOL is skipped, and every account whose
        change contradicts the direction is dropped before summing.
        """
        accounts: dict[tuple[str, int], dict[str, Any]] = {}

        for side, entries in (
            ("pre", meta.get("preTokenBalances") or []),
            ("post", meta.get("postTokenBalances") or []),
        ):
            for entry in entries:
                amount = entry.get("uiTokenAmount") or {}
                key = (entry.get("mint", ""), entry.get("accountIndex", -1))
                account = accounts.setdefault(
                    key,
                    {
                        "owner": entry.get("owner"),
                        "decimals": amount.get("decimals", 0),
                        "pre": 0,
                        "post": 0,
                    },
                )
                account[side] = int(amount.get("amount") or 0)
                account["owner"] = account["owner"] or entry.get("owner")

        totals: dict[str, int] = defaultdict(int)
        decimals: dict[str, int] = {}
        for (mint, _), account in accounts.items():
            if not mint or mint == WRAPPED_SOL_MINT:
                continue
            if account["owner"] != wallet_address:
                continue

            raw_delta = account["post"] - account["pre"]
            if tx_type == TransactionType.BUY and raw_delta <= 0:
                continue
            if tx_type == TransactionType.SELL and raw_delta >= 0:
                continue

            totals[mint] += abs(raw_delta)
            decimals.setdefault(mint, int(account["decimals"]))

        return [
            TokenDelta(mint=mint, raw_amount=raw, decimals=decimals[mint])
            for mint, raw in totals.items()
        ]
