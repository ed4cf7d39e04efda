"""Repository pattern implementations."""

from solwatch.data.supabase.repositories.token_repo import TokenRepository
from solwatch.data.supabase.repositories.transaction_repo import TransactionRepository
from solwatch.data.supabase.repositories.wallet_repo import GroupRepository, WalletRepository
from solwatch.data.supabase.repositories.wallet_stats_repo import WalletStatsRepository

__all__ = [
    "GroupRepository",
    "TokenRepository",
    "TransactionRepository",
    "WalletRepository",
    "WalletStatsRepository",
]
