"""Pydantic models for Helius token metadata and webhook payloads."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class NativeTransfer(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_user_account: str | None = Field(default=None, alias="fromUserAccount")
    to_user_account: str | None = Field(default=None, alias="toUserAccount")
    amount: int = 0


class TokenTransfer(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_user_account: str | None = Field(default=None, alias="fromUserAccount")
    to_user_account: str | None = Field(default=None, alias="toUserAccount")
    mint: str | None = None


class AccountData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    account: str
    native_balance_change: int = Field(default=0, alias="nativeBalanceChange")


class WebhookTransaction(BaseModel):
    """Enhanced transaction delivered by a Helius webhook.

    Only the fields needed to route the signature to monitored wallets are
    modelled; the transaction itself is re-fetched over RPC.
    """

    model_config = ConfigDict(populate_by_name=True)

    signature: str
    timestamp: int | None = None
    fee_payer: str | None = Field(default=None, alias="feePayer")
    native_transfers: list[NativeTransfer] = Field(default_factory=list, alias="nativeTransfers")
    token_transfers: list[TokenTransfer] = Field(default_factory=list, alias="tokenTransfers")
    account_data: list[AccountData] = Field(default_factory=list, alias="accountData")
    transaction_error: Any = Field(default=None, alias="transactionError")

    def involved_accounts(self) -> set[str]:
        """Every account the payload names as payer, sender, receiver or touched."""
        accounts: set[str] = set()
        if self.fee_payer:
            accounts.add(self.fee_payer)
        for transfer in [*self.native_transfers, *self.token_transfers]:
            if transfer.from_user_account:
                accounts.add(transfer.from_user_account)
            if transfer.to_user_account:
                accounts.add(transfer.to_user_account)
        accounts.update(entry.account for entry in self.account_data)
        return accounts


class HeliusTokenMetadata(BaseModel):
    """Flattened view of one `/v0/token-metadata` entry."""

    mint: str
    symbol: str | None = None
    name: str | None = None
    decimals: int | None = None
    logo_uri: str | None = None

    @classmethod
    def from_api(cls, entry: dict[str, Any]) -> "HeliusTokenMetadata":
        """Merge on-chain, legacy and off-chain sections, on-chain first."""
        on_chain = ((entry.get("onChainMetadata") or {}).get("metadata") or {}).get("data") or {}
        legacy = entry.get("legacyMetadata") or {}
        off_chain = (entry.get("offChainMetadata") or {}).get("metadata") or {}
        raw_data = ((entry.get("onChainAccountInfo") or {}).get("accountInfo") or {}).get("data")
        account_info = (
            ((raw_data.get("parsed") or {}).get("info") or {}) if isinstance(raw_data, dict) else {}
        )

        def first(*values: Any) -> Any:
            for value in values:
                if isinstance(value, str):
                    value = value.strip().strip("\x00")
                if value not in (None, ""):
                    return value
            return None

        decimals = first(account_info.get("decimals"), legacy.get("decimals"))
        return cls(
            mint=entry.get("account", ""),
            symbol=first(on_chain.get("symbol"), legacy.get("symbol"), off_chain.get("symbol")),
            name=first(on_chain.get("name"), legacy.get("name"), off_chain.get("name")),
            decimals=int(decimals) if decimals is not None else None,
            logo_uri=first(legacy.get("logoURI"), off_chain.get("image")),
        )
