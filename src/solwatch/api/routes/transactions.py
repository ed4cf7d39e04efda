"""Transaction query and live stream routes."""

from collections.abc import AsyncIterator
from typing import Annotated

import structlog
from fastapi import APIRouter, Query, Request
from fastapi.responses import StreamingResponse

from solwatch.api.dependencies import BrokerDep, TransactionRepoDep
from solwatch.core.exceptions import NotFoundError
from solwatch.data.models.transaction import Transaction, TransactionType

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.get("", response_model=list[Transaction])
async def list_transactions(
    repo: TransactionRepoDep,
    hours: Annotated[int, Query(ge=1, le=24 * 30)] = 24,
    tx_type: Annotated[TransactionType | None, Query(alias="type")] = None,
    group_id: Annotated[str | None, Query(alias="groupId")] = None,
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
) -> list[Transaction]:
    """Most recent transactions first, token metadata inlined."""
    return await repo.get_recent(hours=hours, tx_type=tx_type, group_id=group_id, limit=limit)


@router.get("/stream")
async def stream_transactions(
    request: Request,
    broker: BrokerDep,
    group_id: Annotated[str | None, Query(alias="groupId")] = None,
) -> StreamingResponse:
    """One JSON transaction per line as they are saved. No replay on reconnect."""

    async def lines() -> AsyncIterator[str]:
        async for transaction in broker.subscribe(group_id):
            if await request.is_disconnected():
                break
            yield transaction.model_dump_json() + "\n"

    log.info("transaction_stream_opened", group_id=group_id)
    return StreamingResponse(lines(), media_type="application/x-ndjson")


@router.get("/{signature}", response_model=Transaction)
async def get_transaction(signature: str, repo: TransactionRepoDep) -> Transaction:
    transaction = await repo.get_by_signature(signature)
    if transaction is None:
        raise NotFoundError("transaction", signature)
    return transaction
