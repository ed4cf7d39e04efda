"""Token PnL with a weighted-average cost basis.

For a group (or any multi-wallet scope) the raw bought/sold/spent/received
totals of every wallet are summed first and the PnL is computed once on
the pooled totals. This is not the same as summing per-wallet PnLs when
the wallets entered at different prices.

USD figures use the current SOL/USD price at read time, including the
realized part.
"""

from datetime import UTC, datetime, timedelta

import structlog

from solwatch.core.exceptions import NotFoundError
from solwatch.data.models.pnl import PnLSnapshot, TokenPosition
from solwatch.data.models.price import PriceQuote
from solwatch.data.supabase.repositories.transaction_repo import TransactionRepository
from solwatch.data.supabase.repositories.wallet_repo import WalletRepository
from solwatch.services.pricing.price_resolver import PriceResolver

log = structlog.get_logger(__name__)


def pool_positions(positions: list[TokenPosition]) -> dict[str, TokenPosition]:
    """Sum positions per mint across wallets."""
    pooled: dict[str, TokenPosition] = {}
    for position in positions:
        existing = pooled.get(position.mint)
        pooled[position.mint] = existing.merge(position) if existing else position
    return pooled


def compute_snapshot(
    position: TokenPosition,
    token_quote: PriceQuote | None = None,
    native_quote: PriceQuote | None = None,
) -> PnLSnapshot:
    """Apply the cost-basis formulas to one (pooled) position.

    Args:
        position: Raw totals for the scope.
        token_quote: Current token USD price, if any source had one.
        native_quote: Current SOL USD price.
    """
    bought = position.total_tokens_bought
    sold = position.total_tokens_sold

    avg_buy_price = position.total_spent_sol / bought if bought > 0 else 0.0
    # Sells beyond recorded buys come from data gaps; cap them
    sold_tokens = min(sold, bought)
    holdings = max(0.0, bought - sold)

    realized = position.total_received_sol - sold_tokens * avg_buy_price if sold_tokens > 0 else 0.0

    native_usd = native_quote.price if native_quote else None
    price_usd = token_quote.price if token_quote else None
    price_sol = price_usd / native_usd if price_usd is not None and native_usd else None

    unrealized = 0.0
    if holdings > 0 and price_sol is not None:
        unrealized = holdings * price_sol - holdings * avg_buy_price

    total = realized + unrealized

    def usd(value: float) -> float | None:
        return value * native_usd if native_usd else None

    return PnLSnapshot(
        mint=position.mint,
        symbol=position.symbol,
        name=position.name,
        total_tokens_bought=bought,
        total_tokens_sold=sold,
        total_spent_sol=position.total_spent_sol,
        total_received_sol=position.total_received_sol,
        avg_buy_price_sol=avg_buy_price,
        sold_tokens=sold_tokens,
        current_holdings=holdings,
        current_price_usd=price_usd,
        current_price_sol=price_sol,
        native_price_usd=native_usd,
        realized_pnl_sol=realized,
        unrealized_pnl_sol=unrealized,
        total_pnl_sol=total,
        realized_pnl_usd=usd(realized),
        unrealized_pnl_usd=usd(unrealized),
        total_pnl_usd=usd(total),
        price_source=token_quote.source if token_quote else None,
        wallet_count=position.wallet_count,
    )


class PnLAggregator:
    """Computes PnL snapshots for a wallet or a group of wallets."""

    def __init__(
        self,
        transaction_repo: TransactionRepository,
        wallet_repo: WalletRepository,
        price_resolver: PriceResolver,
    ) -> None:
        self.transaction_repo = transaction_repo
        self.wallet_repo = wallet_repo
        self.price_resolver = price_resolver

    async def _scope_wallet_ids(
        self, wallet_address: str | None, group_id: str | None
    ) -> list[str]:
        if wallet_address:
            wallet = await self.wallet_repo.get_by_address(wallet_address)
            if wallet is None:
                raise NotFoundError("wallet", wallet_address)
            return [wallet.id]
        wallets = await self.wallet_repo.list_active(group_id)
        return [wallet.id for wallet in wallets]

    async def compute_token_pnl(
        self,
        mint: str,
        wallet_address: str | None = None,
        group_id: str | None = None,
    ) -> PnLSnapshot:
        """PnL for one token over the whole history of the scope.

        Raises:
            NotFoundError: Unknown wallet, or the scope never traded the token.
        """
        wallet_ids = await self._scope_wallet_ids(wallet_address, group_id)
        positions = await self.transaction_repo.get_position_totals(wallet_ids, mint=mint)
        pooled = pool_positions(positions)
        if mint not in pooled:
            raise NotFoundError("position", mint)

        quotes = await self.price_resolver.get_prices([mint])
        native = await self.price_resolver.get_native_price()
        return compute_snapshot(pooled[mint], quotes.get(mint), native)

    async def compute_all(
        self,
        wallet_address: str | None = None,
        group_id: str | None = None,
        hours: int | None = None,
    ) -> list[PnLSnapshot]:
        """PnL for every token the scope traded, optionally within the last `hours`.

        Sorted by total SOL PnL, best first.
        """
        wallet_ids = await self._scope_wallet_ids(wallet_address, group_id)
        since = datetime.now(UTC) - timedelta(hours=hours) if hours else None
        positions = await self.transaction_repo.get_position_totals(wallet_ids, since=since)
        pooled = pool_positions(positions)
        if not pooled:
            return []

        quotes = await self.price_resolver.get_prices(list(pooled))
        native = await self.price_resolver.get_native_price()

        snapshots = [
            compute_snapshot(position, quotes.get(mint), native)
            for mint, position in pooled.items()
        ]
        snapshots.sort(key=lambda s: s.total_pnl_sol, reverse=True)
        log.debug(
            "pnl_computed",
            tokens=len(snapshots),
            wallets=len(wallet_ids),
            group_id=group_id,
            hours=hours,
        )
        return snapshots
