"""Webhook intake for Helius enhanced transactions."""

import time
from typing import Any

import structlog
from fastapi import APIRouter, HTTPException, Request

from solwatch.api.dependencies import MonitorDep

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/helius")
async def receive_helius_webhook(request: Request, monitor: MonitorDep) -> dict[str, Any]:
    """Queue the signatures of a single or batched payload.

    Transactions are re-fetched over RPC by the ingestion worker, so only
    the signature and the involved accounts are read here.
    """
    start_time = time.perf_counter()
    try:
        payload = await request.json()
    except ValueError as e:
        log.warning("webhook_payload_invalid", error=str(e))
        raise HTTPException(status_code=400, detail="Invalid JSON payload") from e

    counts = await monitor.ingest_webhook(payload)
    processing_time_ms = (time.perf_counter() - start_time) * 1000

    return {
        "status": "accepted",
        **counts,
        "processing_time_ms": round(processing_time_ms, 2),
    }
