"""Wallet group routes."""

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from solwatch.api.dependencies import GroupRepoDep
from solwatch.data.models.wallet import Group

router = APIRouter(prefix="/groups", tags=["groups"])


class CreateGroupRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


@router.post("", response_model=Group, status_code=status.HTTP_201_CREATED)
async def create_group(request: CreateGroupRequest, repo: GroupRepoDep) -> Group:
    return await repo.create(request.name.strip())


@router.get("", response_model=list[Group])
async def list_groups(repo: GroupRepoDep) -> list[Group]:
    """List groups with their wallet counts."""
    return await repo.list_groups()
