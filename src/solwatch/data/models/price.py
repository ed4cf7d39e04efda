"""Price quote model."""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field


class PriceSource(str, Enum):
    """Price sources in fallback order, plus degraded tags."""

    POOLS = "pools"
    DEXSCREENER = "aggregator1"
    JUPITER = "aggregator2"
    STALE = "stale"
    FALLBACK = "fallback"


# Sources whose prices are not fresh upstream observations
DEGRADED_SOURCES = frozenset({PriceSource.STALE, PriceSource.FALLBACK})


class PriceQuote(BaseModel):
    """Ephemeral cached price. Never persisted to durable storage.

    Attributes:
        mint: Token mint (or the wrapped SOL mint for the native asset).
        price: USD price.
        source: Which stage of the fallback chain produced the price.
        liquidity: Pool liquidity in USD when known.
        timestamp: When the price was observed upstream.
    """

    mint: str
    price: float = Field(gt=0)
    source: PriceSource
    liquidity: float | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def age_seconds(self) -> float:
        return (datetime.now(UTC) - self.timestamp).total_seconds()

    @property
    def is_degraded(self) -> bool:
        return self.source in DEGRADED_SOURCES
