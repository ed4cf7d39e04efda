"""Token PnL routes."""

from typing import Annotated

from fastapi import APIRouter, Query

from solwatch.api.dependencies import PnLAggregatorDep
from solwatch.data.models.pnl import PnLSnapshot

router = APIRouter(prefix="/pnl", tags=["pnl"])


@router.get("/tokens", response_model=list[PnLSnapshot])
async def list_token_pnl(
    aggregator: PnLAggregatorDep,
    group_id: Annotated[str | None, Query(alias="groupId")] = None,
    wallet_address: Annotated[str | None, Query(alias="walletAddress")] = None,
    hours: Annotated[int | None, Query(ge=1, le=24 * 365)] = None,
) -> list[PnLSnapshot]:
    """PnL of every token traded in scope, pooled across wallets."""
    return await aggregator.compute_all(
        wallet_address=wallet_address, group_id=group_id, hours=hours
    )


@router.get("/tokens/{mint}", response_model=PnLSnapshot)
async def get_token_pnl(
    mint: str,
    aggregator: PnLAggregatorDep,
    group_id: Annotated[str | None, Query(alias="groupId")] = None,
    wallet_address: Annotated[str | None, Query(alias="walletAddress")] = None,
) -> PnLSnapshot:
    return await aggregator.compute_token_pnl(
        mint, wallet_address=wallet_address, group_id=group_id
    )
