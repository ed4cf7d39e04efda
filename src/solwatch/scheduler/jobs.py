"""Periodic maintenance jobs.

- Cache eviction: drops expired entries from in-process caches so that
  request handling never pays for eviction inline.
- Native price refresh: keeps SOL/USD warm since every USD conversion
  depends on it.
"""

from collections.abc import Callable, Iterable

import structlog
from apscheduler.triggers.interval import IntervalTrigger

from solwatch.scheduler.scheduler import MaintenanceScheduler
from solwatch.services.pricing.price_resolver import PriceResolver

log = structlog.get_logger(__name__)

JOB_ID_CACHE_EVICTION = "cache_eviction"
JOB_ID_NATIVE_REFRESH = "native_price_refresh"

Evictor = Callable[[], int]


async def evict_caches_job(evictors: Iterable[tuple[str, Evictor]]) -> dict[str, int]:
    """Run every evictor; one failing cache does not stop the others.

    Returns:
        Entries evicted per cache name.
    """
    evicted: dict[str, int] = {}
    for name, evict in evictors:
        try:
            evicted[name] = evict()
        except Exception as e:
            log.error("cache_eviction_failed", cache=name, error=str(e))
    if any(evicted.values()):
        log.debug("cache_eviction_done", **evicted)
    return evicted


async def refresh_native_job(resolver: PriceResolver) -> None:
    """Refresh SOL/USD in the background; failures only get logged."""
    try:
        quote = await resolver.refresh_native()
        log.debug("native_price_refreshed", price=quote.price, source=quote.source.value)
    except Exception as e:
        log.error("native_price_refresh_failed", error=str(e))


def register_maintenance_jobs(
    scheduler: MaintenanceScheduler,
    evictors: list[tuple[str, Evictor]],
    price_resolver: PriceResolver,
    eviction_interval_seconds: int,
    native_refresh_seconds: int,
) -> None:
    """Add (or replace) the eviction and native refresh jobs."""
    scheduler.scheduler.add_job(
        evict_caches_job,
        trigger=IntervalTrigger(seconds=eviction_interval_seconds),
        args=[evictors],
        id=JOB_ID_CACHE_EVICTION,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.scheduler.add_job(
        refresh_native_job,
        trigger=IntervalTrigger(seconds=native_refresh_seconds),
        args=[price_resolver],
        id=JOB_ID_NATIVE_REFRESH,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    log.info(
        "maintenance_jobs_scheduled",
        eviction_interval_seconds=eviction_interval_seconds,
        native_refresh_seconds=native_refresh_seconds,
    )
