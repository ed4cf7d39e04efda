"""DexScreener API integration."""

from solwatch.services.dexscreener.client import DexScreenerClient, best_pair
from solwatch.services.dexscreener.models import TokenPair

__all__ = ["DexScreenerClient", "TokenPair", "best_pair"]
