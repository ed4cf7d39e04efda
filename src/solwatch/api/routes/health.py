"""Health check endpoint with storage status."""

from typing import Any

from fastapi import APIRouter

from solwatch.api.dependencies import ContainerDep, SettingsDep

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(container: ContainerDep, settings: SettingsDep) -> dict[str, Any]:
    """
    Health check endpoint with storage status.

    Returns:
        dict with overall status, version and per-backend health. Redis
        reports `in_memory` when no REDIS_URL is configured.
    """
    supabase_health = await container.supabase.health_check()
    if container.redis is not None:
        redis_health = await container.redis.health_check()
    else:
        redis_health = {"status": "in_memory", "healthy": True}

    all_healthy = supabase_health["healthy"] and redis_health["healthy"]

    return {
        "status": "ok" if all_healthy else "degraded",
        "version": settings.app_version,
        "databases": {
            "supabase": supabase_health,
            "redis": redis_health,
        },
        "worker": {"running": container.worker.running},
    }
