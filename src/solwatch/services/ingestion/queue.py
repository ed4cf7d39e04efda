"""Signature ingestion queue.

Wraps a WorkQueue backend with the idempotency marker protocol:

- enqueue: set the `processed:<signature>` marker with NX; if it was
  already set the event is a duplicate delivery and is dropped.
- permanent failure: the marker is overwritten with a long expiry so the
  signature is not retried forever.
- persistence failure: the marker is released so the next delivery is
  accepted.
"""

import asyncio
import contextlib

import structlog
from pydantic import ValidationError as PydanticValidationError

from solwatch.core.utils import short
from solwatch.data.models.transaction import SignatureEvent
from solwatch.data.redis.queue import WorkQueue

log = structlog.get_logger(__name__)


class SignatureQueue:
    """FIFO of SignatureEvents with duplicate suppression.

    Example:
        queue = SignatureQueue(MemoryWorkQueue())
        await queue.enqueue(SignatureEvent(signature="5h3...", wallet_address="9xQ..."))
        events = await queue.pop_batch(200)
    """

    def __init__(
        self,
        backend: WorkQueue,
        marker_ttl_seconds: int = 60,
        failed_marker_ttl_seconds: int = 24 * 3600,
    ) -> None:
        self.backend = backend
        self.marker_ttl_seconds = marker_ttl_seconds
        self.failed_marker_ttl_seconds = failed_marker_ttl_seconds
        self.enqueued = 0
        self.duplicates = 0
        self._wake = asyncio.Event()

    async def enqueue(self, event: SignatureEvent) -> bool:
        """Queue an event unless its signature is already marked.

        Returns:
            True if queued, False if dropped as a duplicate.
        """
        if not await self.backend.mark(event.signature, self.marker_ttl_seconds):
            self.duplicates += 1
            log.debug(
                "signature_duplicate_dropped",
                signature=short(event.signature, 16),
                wallet_address=short(event.wallet_address),
            )
            return False

        await self.backend.push(event.model_dump_json())
        self.enqueued += 1
        self._wake.set()
        log.debug(
            "signature_enqueued",
            signature=short(event.signature, 16),
            wallet_address=short(event.wallet_address),
        )
        return True

    async def requeue_later(self, event: SignatureEvent, delay: float) -> None:
        """Re-deliver an event after `delay` seconds with its attempt counter bumped."""
        retry = event.model_copy(update={"attempt": event.attempt + 1})
        await self.backend.push_delayed(retry.model_dump_json(), delay)
        log.info(
            "signature_requeued",
            signature=short(event.signature, 16),
            attempt=retry.attempt,
            delay_seconds=round(delay, 2),
        )

    async def pop_batch(self, size: int) -> list[SignatureEvent]:
        """Pop up to `size` events; undecodable entries are logged and skipped."""
        events = []
        for item in await self.backend.pop_batch(size):
            try:
                events.append(SignatureEvent.model_validate_json(item))
            except PydanticValidationError as e:
                log.error("signature_event_undecodable", item=str(item)[:80], error=str(e))
        return events

    async def mark_failed(self, signature: str) -> None:
        await self.backend.mark_failed(signature, self.failed_marker_ttl_seconds)

    async def release(self, signature: str) -> None:
        await self.backend.unmark(signature)

    async def length(self) -> int:
        return await self.backend.length()

    async def next_due_in(self) -> float | None:
        return await self.backend.next_due_in()

    def wake(self) -> None:
        """Interrupt a pending wait_for_work."""
        self._wake.set()

    async def wait_for_work(self, timeout: float) -> bool:
        """Block until an enqueue happens or `timeout` elapses.

        Returns:
            True if woken by an enqueue.
        """
        woken = False
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(self._wake.wait(), timeout=timeout)
            woken = True
        self._wake.clear()
        return woken

    def get_status(self) -> dict[str, int]:
        return {"enqueued": self.enqueued, "duplicates": self.duplicates}
