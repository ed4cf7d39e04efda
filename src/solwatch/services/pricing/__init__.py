"""Price resolution: providers, pool weighting and the fallback resolver."""

from solwatch.services.pricing.pool_source import NATIVE_MINT, PoolPriceProvider, weighted_price
from solwatch.services.pricing.price_resolver import PriceResolver
from solwatch.services.pricing.providers import (
    DexScreenerProvider,
    JupiterPriceProvider,
    PriceProvider,
)

__all__ = [
    "NATIVE_MINT",
    "DexScreenerProvider",
    "JupiterPriceProvider",
    "PoolPriceProvider",
    "PriceProvider",
    "PriceResolver",
    "weighted_price",
]
