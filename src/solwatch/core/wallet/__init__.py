"""Wallet address validation."""

from solwatch.core.wallet.validator import is_valid_solana_address, require_valid_address

__all__ = ["is_valid_solana_address", "require_valid_address"]
