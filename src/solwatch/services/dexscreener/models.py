"""Pydantic models for DexScreener pair responses.

API Documentation: https://docs.dexscreener.com/api/reference
"""

from pydantic import BaseModel, ConfigDict, Field


class PairToken(BaseModel):
    address: str
    name: str | None = None
    symbol: str | None = None


class VolumeInfo(BaseModel):
    h24: float | None = None
    h6: float | None = None
    h1: float | None = None


class LiquidityInfo(BaseModel):
    usd: float | None = None
    base: float | None = None
    quote: float | None = None


class TokenPair(BaseModel):
    """DEX pair with market data; `price_usd` prices the base token."""

    model_config = ConfigDict(populate_by_name=True)

    chain_id: str = Field(alias="chainId")
    dex_id: str = Field(alias="dexId")
    pair_address: str = Field(alias="pairAddress")
    base_token: PairToken = Field(alias="baseToken")
    quote_token: PairToken | None = Field(default=None, alias="quoteToken")
    price_usd: str | None = Field(default=None, alias="priceUsd")
    volume: VolumeInfo | None = None
    liquidity: LiquidityInfo | None = None

    @property
    def price(self) -> float | None:
        try:
            value = float(self.price_usd) if self.price_usd is not None else None
        except ValueError:
            return None
        return value if value and value > 0 else None

    @property
    def volume_h24(self) -> float:
        return (self.volume.h24 if self.volume else None) or 0.0

    @property
    def liquidity_usd(self) -> float | None:
        return self.liquidity.usd if self.liquidity else None


class TokenPairsResponse(BaseModel):
    pairs: list[TokenPair] | None = None
