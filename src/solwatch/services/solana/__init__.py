"""Solana RPC, transaction parsing and log streaming."""

from solwatch.services.solana.rpc_client import SolanaRPCClient
from solwatch.services.solana.transaction_parser import TransactionParser

__all__ = ["SolanaRPCClient", "TransactionParser"]
