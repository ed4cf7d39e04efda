"""Reusable retry policy built on tenacity.

One policy object describes max attempts, exponential backoff, jitter and
which exceptions are worth retrying. It is applied at three boundaries:

- Metadata resolver: wraps the metadata HTTP fetch.
- Transaction processor: wraps the RPC transaction fetch.
- Ingestion worker: computes the re-enqueue delay of a failed event.

The price resolver does not retry a source; it falls through its chain.
"""

from __future__ import annotations

import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from solwatch.core.exceptions import (
    CircuitBreakerOpenError,
    ExternalServiceError,
    MalformedTransactionError,
    ValidationError,
)

log = structlog.get_logger(__name__)

T = TypeVar("T")


def default_retryable(exc: BaseException) -> bool:
    """Transient upstream errors are retryable; data and client errors are not."""
    if isinstance(exc, (MalformedTransactionError, ValidationError)):
        return False
    if isinstance(exc, CircuitBreakerOpenError):
        return True
    if isinstance(exc, ExternalServiceError):
        # 4xx other than 429 will not succeed on retry
        code = exc.status_code
        return code is None or code == 429 or code >= 500
    return isinstance(exc, (TimeoutError, ConnectionError, OSError))


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential-backoff retry policy.

    Attributes:
        max_attempts: Total attempts including the first one.
        base_delay: Delay before the second attempt, in seconds.
        max_delay: Upper bound for any single delay.
        jitter: Maximum extra random delay as a fraction of the computed delay.
        retryable: Predicate deciding whether an exception is retried.
        name: Label used in log events.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    jitter: float = 0.1
    retryable: Callable[[BaseException], bool] = field(default=default_retryable)
    name: str = "default"

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after the given (1-based) failed attempt."""
        delay = min(self.base_delay * (2 ** max(attempt - 1, 0)), self.max_delay)
        if self.jitter:
            delay += random.uniform(0, delay * self.jitter)
        return min(delay, self.max_delay)

    def is_retryable(self, exc: BaseException) -> bool:
        return self.retryable(exc)

    def can_retry(self, attempt: int, exc: BaseException) -> bool:
        """Whether another attempt is allowed after `attempt` failed with `exc`."""
        return attempt < self.max_attempts and self.is_retryable(exc)

    def _log_retry(self, state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        log.warning(
            "retry_scheduled",
            policy=self.name,
            attempt=state.attempt_number,
            max_attempts=self.max_attempts,
            sleep_seconds=round(state.next_action.sleep, 2) if state.next_action else 0,
            error=str(exc),
        )

    async def call(
        self, fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any
    ) -> T:
        """Run `fn` under this policy, re-raising the last error when exhausted."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential_jitter(
                initial=self.base_delay,
                max=self.max_delay,
                jitter=self.base_delay * self.jitter,
            ),
            retry=retry_if_exception(self.retryable),
            before_sleep=self._log_retry,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await fn(*args, **kwargs)
        raise AssertionError("unreachable")  # pragma: no cover
