"""PnL models."""

from pydantic import BaseModel, Field

from solwatch.data.models.price import PriceSource


class TokenPosition(BaseModel):
    """Raw bought/sold/spent/received totals for one token.

    For a group scope the totals of every wallet are summed before any
    PnL math (pooled cost basis).
    """

    mint: str
    symbol: str | None = None
    name: str | None = None
    total_tokens_bought: float = Field(default=0.0, ge=0)
    total_tokens_sold: float = Field(default=0.0, ge=0)
    total_spent_sol: float = Field(default=0.0, ge=0)
    total_received_sol: float = Field(default=0.0, ge=0)
    buy_count: int = 0
    sell_count: int = 0
    wallet_count: int = 0

    def merge(self, other: "TokenPosition") -> "TokenPosition":
        """Pool two positions of the same mint."""
        return TokenPosition(
            mint=self.mint,
            symbol=self.symbol or other.symbol,
            name=self.name or other.name,
            total_tokens_bought=self.total_tokens_bought + other.total_tokens_bought,
            total_tokens_sold=self.total_tokens_sold + other.total_tokens_sold,
            total_spent_sol=self.total_spent_sol + other.total_spent_sol,
            total_received_sol=self.total_received_sol + other.total_received_sol,
            buy_count=self.buy_count + other.buy_count,
            sell_count=self.sell_count + other.sell_count,
            wallet_count=self.wallet_count + other.wallet_count,
        )


class PnLSnapshot(BaseModel):
    """Weighted-average cost basis PnL for one token in a scope.

    SOL figures are exact from the position; USD figures use the SOL/USD
    price at read time (realized USD drifts with the current SOL price).
    """

    mint: str
    symbol: str | None = None
    name: str | None = None
    total_tokens_bought: float
    total_tokens_sold: float
    total_spent_sol: float
    total_received_sol: float
    avg_buy_price_sol: float
    sold_tokens: float
    current_holdings: float
    current_price_usd: float | None = None
    current_price_sol: float | None = None
    native_price_usd: float | None = None
    realized_pnl_sol: float
    unrealized_pnl_sol: float
    total_pnl_sol: float
    realized_pnl_usd: float | None = None
    unrealized_pnl_usd: float | None = None
    total_pnl_usd: float | None = None
    price_source: PriceSource | None = None
    wallet_count: int = 0
