"""Pydantic models for data validation and serialization."""

from solwatch.data.models.pnl import PnLSnapshot, TokenPosition
from solwatch.data.models.price import PriceQuote, PriceSource
from solwatch.data.models.token import Token, TokenInfo, TokenSource
from solwatch.data.models.transaction import (
    ParsedTransaction,
    SignatureEvent,
    TokenDelta,
    TokenOperation,
    TokenOperationDraft,
    Transaction,
    TransactionDraft,
    TransactionType,
)
from solwatch.data.models.wallet import Group, Wallet, WalletStat, WalletWithStats

__all__ = [
    "Group",
    "ParsedTransaction",
    "PnLSnapshot",
    "PriceQuote",
    "PriceSource",
    "SignatureEvent",
    "Token",
    "TokenDelta",
    "TokenInfo",
    "TokenOperation",
    "TokenOperationDraft",
    "TokenPosition",
    "TokenSource",
    "Transaction",
    "TransactionDraft",
    "TransactionType",
    "Wallet",
    "WalletStat",
    "WalletWithStats",
]
