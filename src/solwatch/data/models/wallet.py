"""Wallet, group and wallet statistics models."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from solwatch.core.wallet.validator import is_valid_solana_address


class Wallet(BaseModel):
    """Monitored wallet row.

    Attributes:
        id: Primary key.
        address: Base58 public key, unique and immutable once created.
        display_name: Optional label shown on the dashboard.
        group_id: Optional group membership (at most one group).
        is_active: False once soft-removed.
        created_at: Registration time.
    """

    id: str
    address: str
    display_name: str | None = None
    group_id: str | None = None
    is_active: bool = True
    created_at: datetime | None = None

    @field_validator("address")
    @classmethod
    def validate_address(cls, v: str) -> str:
        """Validate Solana address format."""
        if not is_valid_solana_address(v):
            msg = f"Invalid Solana address: {v}"
            raise ValueError(msg)
        return v.strip()


class Group(BaseModel):
    """Optional partition of wallets for scoped dashboards."""

    id: str
    name: str
    wallet_count: int = 0


class WalletStat(BaseModel):
    """Materialized per-wallet statistics.

    Recomputed from transactions and token operations, never patched
    incrementally. A cache with explicit invalidation, not a source of truth.
    """

    wallet_id: str
    total_spent_sol: float = 0.0
    total_received_sol: float = 0.0
    total_buy_tx: int = 0
    total_sell_tx: int = 0
    unique_tokens_bought: int = 0
    unique_tokens_sold: int = 0
    last_transaction_at: datetime | None = None


class WalletWithStats(Wallet):
    """Wallet row with its statistics attached (list endpoint)."""

    stats: WalletStat | None = Field(default=None)
