"""Operational status route."""

from typing import Any

from fastapi import APIRouter

from solwatch.api.dependencies import ContainerDep

router = APIRouter(prefix="/monitoring", tags=["monitoring"])


@router.get("/status")
async def monitoring_status(container: ContainerDep) -> dict[str, Any]:
    """Queue depth, worker metrics, stream state and cache statistics."""
    return await container.get_status()
