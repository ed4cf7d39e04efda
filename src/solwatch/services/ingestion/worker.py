"""Queue drain loop with a bounded worker pool.

The loop pops a batch, fans it out under a semaphore and immediately pops
again while items keep coming. When a pass finds nothing it sleeps until
the next enqueue (or the next delayed retry becomes due).

Failure handling per event:
    retryable and attempts left  -> re-enqueued with the policy's backoff
    not found / malformed / spent -> marked failed, logged, never retried
    persistence failure           -> marker released, re-enqueued
"""

import asyncio
from datetime import UTC, datetime

import structlog

from solwatch.core.utils import short
from solwatch.core.exceptions import (
    MalformedTransactionError,
    PersistenceError,
    TransactionNotFoundError,
)
from solwatch.core.retry import RetryPolicy
from solwatch.data.models.transaction import SignatureEvent
from solwatch.services.ingestion.processor import TransactionProcessor
from solwatch.services.ingestion.queue import SignatureQueue

log = structlog.get_logger(__name__)


class IngestionWorker:
    """Single drain loop feeding a bounded pool of processors.

    Attributes:
        running: Loop running state.
        processed: Events that produced a new transaction.
        discarded: Events that produced nothing (duplicates, dust, no token change).
        failed: Events given up on.
        retried: Re-enqueues.
    """

    def __init__(
        self,
        queue: SignatureQueue,
        processor: TransactionProcessor,
        retry_policy: RetryPolicy,
        batch_size: int = 200,
        concurrency: int = 10,
        idle_timeout: float = 5.0,
    ) -> None:
        self.queue = queue
        self.processor = processor
        self.retry_policy = retry_policy
        self.batch_size = batch_size
        self.concurrency = concurrency
        self.idle_timeout = idle_timeout

        self.running = False
        self.processed = 0
        self.discarded = 0
        self.failed = 0
        self.retried = 0
        self._in_flight = 0
        self._semaphore = asyncio.Semaphore(concurrency)
        self._last_run: datetime | None = None
        self._current_state = "stopped"  # idle | processing | stopped | error

        log.info(
            "ingestion_worker_initialized",
            batch_size=batch_size,
            concurrency=concurrency,
        )

    async def run(self) -> None:
        """Drain until stopped. Meant to run as one supervised task."""
        log.info("ingestion_worker_starting")
        self.running = True

        consecutive_errors = 0
        while self.running:
            try:
                handled = await self.drain_once()
                consecutive_errors = 0
                if handled == 0:
                    self._current_state = "idle"
                    await self._wait_for_work()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                consecutive_errors += 1
                self._current_state = "error"
                backoff = min(2**consecutive_errors, 60)
                log.error(
                    "ingestion_drain_error",
                    error=str(e),
                    consecutive_errors=consecutive_errors,
                    backoff_seconds=backoff,
                )
                await asyncio.sleep(backoff)

        self._current_state = "stopped"
        log.info("ingestion_worker_stopped")

    async def stop(self) -> None:
        self.running = False
        self.queue.wake()

    async def drain_once(self) -> int:
        """Pop one batch and process it; returns the number of events handled."""
        events = await self.queue.pop_batch(self.batch_size)
        if not events:
            return 0

        self._current_state = "processing"
        await asyncio.gather(*(self._run_one(event) for event in events))
        self._last_run = datetime.now(UTC)
        log.debug("ingestion_batch_done", size=len(events))
        return len(events)

    async def _wait_for_work(self) -> None:
        due = await self.queue.next_due_in()
        timeout = self.idle_timeout if due is None else min(due, self.idle_timeout)
        await self.queue.wait_for_work(max(timeout, 0.01))

    async def _run_one(self, event: SignatureEvent) -> None:
        async with self._semaphore:
            self._in_flight += 1
            try:
                await self.handle(event)
            finally:
                self._in_flight -= 1

    async def handle(self, event: SignatureEvent) -> None:
        """Process one event and apply the failure policy. Never raises."""
        attempts = event.attempt + 1
        signature = short(event.signature, 16)
        try:
            transaction = await self.processor.process(event)
        except MalformedTransactionError as e:
            self.failed += 1
            log.warning("transaction_malformed", signature=signature, reason=e.reason)
            await self.queue.mark_failed(event.signature)
            return
        except PersistenceError as e:
            await self.queue.release(event.signature)
            if attempts < self.retry_policy.max_attempts:
                self.retried += 1
                await self.queue.requeue_later(event, self.retry_policy.delay_for(attempts))
            else:
                self.failed += 1
                log.error(
                    "transaction_persist_gave_up",
                    signature=signature,
                    attempts=attempts,
                    error=str(e),
                )
            return
        except Exception as e:
            if self.retry_policy.can_retry(attempts, e):
                self.retried += 1
                await self.queue.requeue_later(event, self.retry_policy.delay_for(attempts))
                return

            self.failed += 1
            if isinstance(e, TransactionNotFoundError):
                log.warning("transaction_not_found_permanent", signature=signature, attempts=attempts)
            else:
                log.error(
                    "transaction_processing_gave_up",
                    signature=signature,
                    attempts=attempts,
                    error=str(e),
                    error_type=type(e).__name__,
                )
            await self.queue.mark_failed(event.signature)
            return

        if transaction is None:
            self.discarded += 1
        else:
            self.processed += 1

    def get_status(self) -> dict:
        """Worker status for the monitoring endpoint."""
        return {
            "running": self.running,
            "current_state": self._current_state,
            "last_run": self._last_run,
            "in_flight": self._in_flight,
            "concurrency": self.concurrency,
            "processed": self.processed,
            "discarded": self.discarded,
            "failed": self.failed,
            "retried": self.retried,
        }
