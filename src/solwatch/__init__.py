"""Solwatch - Solana wallet transaction ingestion and PnL service."""

__version__ = "1.0.0"
