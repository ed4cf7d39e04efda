"""Wallet management routes."""

from typing import Annotated

from fastapi import APIRouter, Query, Response, status
from pydantic import BaseModel, Field

from solwatch.api.dependencies import WalletRegistryDep
from solwatch.data.models.wallet import Wallet, WalletWithStats

router = APIRouter(prefix="/wallets", tags=["wallets"])


class AddWalletRequest(BaseModel):
    """Request to start monitoring a wallet."""

    address: str = Field(..., min_length=1)
    name: str | None = Field(default=None, max_length=100)
    group_id: str | None = Field(default=None, alias="groupId")

    model_config = {"populate_by_name": True}


class RemoveAllResponse(BaseModel):
    count: int


@router.post("", response_model=Wallet, status_code=status.HTTP_201_CREATED)
async def add_wallet(request: AddWalletRequest, registry: WalletRegistryDep) -> Wallet:
    """Register a wallet, or update and reactivate it if it already exists."""
    return await registry.add_wallet(request.address, name=request.name, group_id=request.group_id)


@router.delete("/{address}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_wallet(address: str, registry: WalletRegistryDep) -> Response:
    await registry.remove_wallet(address)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("", response_model=RemoveAllResponse)
async def remove_all_wallets(
    registry: WalletRegistryDep,
    group_id: Annotated[str | None, Query(alias="groupId")] = None,
) -> RemoveAllResponse:
    """Remove every wallet, or every wallet of one group."""
    count = await registry.remove_all_wallets(group_id)
    return RemoveAllResponse(count=count)


@router.get("", response_model=list[WalletWithStats])
async def list_wallets(
    registry: WalletRegistryDep,
    group_id: Annotated[str | None, Query(alias="groupId")] = None,
) -> list[WalletWithStats]:
    """List active wallets with their stats attached."""
    return await registry.list_wallets_with_stats(group_id)
