"""Aggregator price providers.

Each provider exposes `source` and `get_prices(mints)`; errors propagate
so the resolver can log them and move on to the next source.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from solwatch.data.models.price import PriceQuote, PriceSource
from solwatch.services.dexscreener.client import best_pair

if TYPE_CHECKING:
    from solwatch.services.dexscreener.client import DexScreenerClient
    from solwatch.services.jupiter.client import JupiterPriceClient


class PriceProvider(Protocol):
    """One stage of the price fallback chain."""

    source: PriceSource

    async def get_prices(self, mints: list[str]) -> dict[str, PriceQuote]:
        """Prices for the mints this source knows; others are absent."""
        ...


@dataclass
class DexScreenerProvider:
    """Highest 24h-volume pair per mint."""

    client: DexScreenerClient
    source: PriceSource = field(default=PriceSource.DEXSCREENER, init=False)

    async def get_prices(self, mints: list[str]) -> dict[str, PriceQuote]:
        pairs_by_mint = await self.client.get_pairs(mints)
        prices: dict[str, PriceQuote] = {}
        for mint, pairs in pairs_by_mint.items():
            pair = best_pair(pairs)
            if pair is not None and pair.price is not None:
                prices[mint] = PriceQuote(
                    mint=mint,
                    price=pair.price,
                    source=self.source,
                    liquidity=pair.liquidity_usd,
                )
        return prices


@dataclass
class JupiterPriceProvider:
    """Single routed price per mint."""

    client: JupiterPriceClient
    source: PriceSource = field(default=PriceSource.JUPITER, init=False)

    async def get_prices(self, mints: list[str]) -> dict[str, PriceQuote]:
        found = await self.client.get_prices(mints)
        return {
            mint: PriceQuote(mint=mint, price=price, source=self.source)
            for mint, price in found.items()
        }
