"""Transaction-related Pydantic models.

Covers the ingestion event, the parser output, and the persisted
transaction with its token operations.
"""

from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class TransactionType(str, Enum):
    """Direction of a wallet transaction relative to SOL."""

    BUY = "buy"
    SELL = "sell"


class SignatureEvent(BaseModel):
    """A signature was seen for a monitored wallet.

    Attributes:
        signature: Transaction signature (idempotency key).
        wallet_address: Monitored wallet the signature mentions.
        block_time: Unix seconds if known at delivery time.
        attempt: Processing attempts already made (re-enqueue counter).
    """

    signature: str
    wallet_address: str
    block_time: int | None = None
    attempt: int = Field(default=0, ge=0)

    @field_validator("signature")
    @classmethod
    def validate_signature(cls, v: str) -> str:
        """Validate transaction signature is not empty."""
        if not v or not v.strip():
            msg = "Transaction signature cannot be empty"
            raise ValueError(msg)
        return v.strip()


class TokenDelta(BaseModel):
    """Aggregated token balance change of the wallet for one mint.

    Attributes:
        mint: Token mint address.
        raw_amount: Absolute change in base units (always > 0).
        decimals: Decimals reported by the RPC balance entry.
    """

    mint: str
    raw_amount: int = Field(gt=0)
    decimals: int = Field(ge=0)

    @property
    def amount(self) -> Decimal:
        """Change in token units."""
        return Decimal(self.raw_amount) / (Decimal(10) ** self.decimals)


class ParsedTransaction(BaseModel):
    """Result of classifying a fetched transaction for one wallet."""

    signature: str
    wallet_address: str
    block_time: int
    tx_type: TransactionType
    sol_amount: float = Field(ge=0)
    token_deltas: list[TokenDelta] = Field(default_factory=list)


class TokenOperationDraft(BaseModel):
    """Token operation ready to persist (metadata resolved)."""

    mint: str
    symbol: str
    name: str
    decimals: int
    logo_uri: str | None = None
    amount: Decimal = Field(gt=0)
    operation_type: TransactionType


class TransactionDraft(BaseModel):
    """Normalized transaction ready to persist as a single atomic unit."""

    wallet_id: str
    wallet_address: str
    wallet_name: str | None = None
    group_id: str | None = None
    signature: str
    block_time: datetime
    tx_type: TransactionType
    sol_amount: float = Field(ge=0)
    usd_amount: float | None = None
    operations: list[TokenOperationDraft] = Field(min_length=1)

    @field_validator("operations")
    @classmethod
    def validate_direction(cls, v: list[TokenOperationDraft], info) -> list[TokenOperationDraft]:
        """Every operation carries the parent transaction's direction."""
        tx_type = info.data.get("tx_type")
        if tx_type is not None and any(op.operation_type != tx_type for op in v):
            msg = "Token operation direction must match transaction type"
            raise ValueError(msg)
        return v


class TokenOperation(BaseModel):
    """Persisted token operation with token metadata inlined."""

    id: str | None = None
    transaction_id: str | None = None
    mint: str
    symbol: str | None = None
    name: str | None = None
    decimals: int | None = None
    logo_uri: str | None = None
    amount: Decimal = Field(gt=0)
    operation_type: TransactionType


class Transaction(BaseModel):
    """Persisted normalized transaction. Immutable after creation."""

    id: str
    wallet_id: str
    wallet_address: str | None = None
    wallet_name: str | None = None
    group_id: str | None = None
    signature: str
    block_time: datetime
    tx_type: TransactionType
    sol_amount: float
    usd_amount: float | None = None
    operations: list[TokenOperation] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
