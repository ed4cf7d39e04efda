"""Price query routes."""

from datetime import datetime

from fastapi import APIRouter
from pydantic import BaseModel, Field

from solwatch.api.dependencies import PriceResolverDep
from solwatch.core.wallet.validator import require_valid_address
from solwatch.data.models.price import PriceSource

router = APIRouter(tags=["prices"])


class PriceRequest(BaseModel):
    mints: list[str] = Field(..., min_length=1, max_length=100)


class PriceEntry(BaseModel):
    price: float
    source: PriceSource
    timestamp: datetime


class NativePriceResponse(BaseModel):
    price: float
    source: PriceSource


@router.post("/prices", response_model=dict[str, PriceEntry])
async def get_prices(request: PriceRequest, resolver: PriceResolverDep) -> dict[str, PriceEntry]:
    """USD prices for many mints; mints without any price are omitted."""
    mints = [require_valid_address(mint) for mint in request.mints]
    quotes = await resolver.get_prices(mints)
    return {
        mint: PriceEntry(price=quote.price, source=quote.source, timestamp=quote.timestamp)
        for mint, quote in quotes.items()
    }


@router.get("/price/native", response_model=NativePriceResponse)
async def get_native_price(resolver: PriceResolverDep) -> NativePriceResponse:
    """Current SOL/USD; `source` is `fallback` when every upstream failed."""
    quote = await resolver.get_native_price()
    return NativePriceResponse(price=quote.price, source=quote.source)
