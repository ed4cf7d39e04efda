"""On-chain liquidity pool price source.

Pools pairing the mint with SOL or a USD stablecoin are discovered via
the Raydium API; reserves are read from the pool vault token accounts.
The price is the liquidity-weighted average across pools:

    price = sum(price_i * liquidity_i) / sum(liquidity_i)

Pools under `min_liquidity_usd` are excluded. When the weights sum to
zero the deepest single pool is used.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from solwatch.core.utils import short
from solwatch.data.models.price import PriceQuote, PriceSource

if TYPE_CHECKING:
    from solwatch.services.raydium.client import PoolInfo, RaydiumPoolClient
    from solwatch.services.solana.rpc_client import SolanaRPCClient

log = structlog.get_logger(__name__)

NATIVE_MINT = "So11111111111111111111111111111111111111112"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
USDT_MINT = "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"
STABLE_MINTS = (USDC_MINT, USDT_MINT)


@dataclass(frozen=True)
class PoolQuote:
    """Price of a mint implied by one pool."""

    pool_id: str
    price_usd: float
    liquidity_usd: float


def weighted_price(quotes: list[PoolQuote], min_liquidity_usd: float) -> PoolQuote | None:
    """Liquidity-weighted price over pools above the liquidity floor.

    Returns a synthetic PoolQuote whose liquidity is the summed liquidity
    of the pools used, or None when no pool qualifies.
    """
    eligible = [
        q for q in quotes if q.price_usd > 0 and q.liquidity_usd >= min_liquidity_usd
    ]
    if not eligible:
        return None

    total_liquidity = sum(q.liquidity_usd for q in eligible)
    if total_liquidity <= 0:
        best = max(eligible, key=lambda q: q.liquidity_usd)
        return PoolQuote(pool_id=best.pool_id, price_usd=best.price_usd, liquidity_usd=0.0)

    price = sum(q.price_usd * q.liquidity_usd for q in eligible) / total_liquidity
    pool_id = eligible[0].pool_id if len(eligible) == 1 else "weighted"
    return PoolQuote(pool_id=pool_id, price_usd=price, liquidity_usd=total_liquidity)


def _ui_amount(balance: dict[str, Any] | None) -> float:
    if not balance:
        return 0.0
    if balance.get("uiAmountString") is not None:
        return float(balance["uiAmountString"])
    return int(balance.get("amount") or 0) / (10 ** int(balance.get("decimals") or 0))


@dataclass
class PoolPriceProvider:
    """Price provider backed by pool reserves.

    `native_usd` returns the current SOL/USD price (or None); SOL-quoted
    pools are skipped while it is unknown.
    """

    raydium: RaydiumPoolClient
    rpc: SolanaRPCClient
    min_liquidity_usd: float = 1000.0
    pools_per_pair: int = 3
    native_usd: Callable[[], float | None] = field(default=lambda: None)
    source: PriceSource = field(default=PriceSource.POOLS, init=False)

    async def get_prices(self, mints: list[str]) -> dict[str, PriceQuote]:
        """Weighted pool prices for the mints that have qualifying pools.

        Raises:
            Exception: The first upstream error, when every mint failed.
        """
        outcomes = await asyncio.gather(
            *(self._price_for(mint) for mint in mints), return_exceptions=True
        )

        prices: dict[str, PriceQuote] = {}
        errors: list[BaseException] = []
        for mint, outcome in zip(mints, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                errors.append(outcome)
                log.debug("pool_price_failed", mint=short(mint), error=str(outcome))
            elif outcome is not None:
                prices[mint] = outcome

        if errors and len(errors) == len(mints):
            raise errors[0]
        return prices

    async def _price_for(self, mint: str) -> PriceQuote | None:
        quote_mints = STABLE_MINTS if mint == NATIVE_MINT else (NATIVE_MINT, *STABLE_MINTS)
        quotes: list[PoolQuote] = []

        for quote_mint in quote_mints:
            quote_usd = 1.0 if quote_mint in STABLE_MINTS else self.native_usd()
            if not quote_usd:
                continue
            pools = await self.raydium.find_pools(mint, quote_mint, limit=self.pools_per_pair)
            for pool in pools:
                quote = await self._quote_pool(pool, mint, quote_usd)
                if quote is not None:
                    quotes.append(quote)

        best = weighted_price(quotes, self.min_liquidity_usd)
        if best is None:
            log.debug("pool_price_no_liquid_pool", mint=short(mint), pools=len(quotes))
            return None

        return PriceQuote(
            mint=mint,
            price=best.price_usd,
            source=PriceSource.POOLS,
            liquidity=best.liquidity_usd,
        )

    async def _quote_pool(self, pool: PoolInfo, mint: str, quote_usd: float) -> PoolQuote | None:
        if pool.mint_a == mint:
            mint_vault, quote_vault = pool.vault_a, pool.vault_b
        elif pool.mint_b == mint:
            mint_vault, quote_vault = pool.vault_b, pool.vault_a
        else:
            return None

        mint_balance, quote_balance = await asyncio.gather(
            self.rpc.get_token_account_balance(mint_vault),
            self.rpc.get_token_account_balance(quote_vault),
        )
        mint_reserve = _ui_amount(mint_balance)
        quote_reserve = _ui_amount(quote_balance)
        if mint_reserve <= 0 or quote_reserve <= 0:
            return None

        return PoolQuote(
            pool_id=pool.id,
            price_usd=quote_reserve / mint_reserve * quote_usd,
            liquidity_usd=2 * quote_reserve * quote_usd,
        )
