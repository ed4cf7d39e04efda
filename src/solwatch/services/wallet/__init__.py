"""Wallet registry service."""

from solwatch.services.wallet.registry import WalletRegistry

__all__ = ["WalletRegistry"]
