"""Base HTTP client with circuit breaker and bounded retry.

Every upstream HTTP integration (RPC, price aggregators, pool discovery,
token metadata) derives from `BaseAPIClient`.
"""

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx
import structlog

from solwatch.core.exceptions import CircuitBreakerOpenError, ExternalServiceError

log = structlog.get_logger(__name__)


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreaker:
    """Consecutive-failure circuit breaker.

    Opens after `failure_threshold` failures in a row. Once `cooldown_seconds`
    have passed, one trial request is let through (half-open); its outcome
    closes or reopens the circuit.
    """

    name: str = "upstream"
    failure_threshold: int = 5
    cooldown_seconds: float = 30.0
    failure_count: int = field(default=0, init=False)
    opened_at: float | None = field(default=None, init=False)
    state: CircuitState = field(default=CircuitState.CLOSED, init=False)

    def record_success(self) -> None:
        if self.state != CircuitState.CLOSED:
            log.info("circuit_breaker_closed", service=self.name)
        self.failure_count = 0
        self.opened_at = None
        self.state = CircuitState.CLOSED

    def record_failure(self) -> None:
        self.failure_count += 1

        if self.state == CircuitState.HALF_OPEN:
            self.state = CircuitState.OPEN
            self.opened_at = time.monotonic()
            log.warning("circuit_breaker_reopened", service=self.name)
        elif self.state == CircuitState.CLOSED and self.failure_count >= self.failure_threshold:
            self.state = CircuitState.OPEN
            self.opened_at = time.monotonic()
            log.warning(
                "circuit_breaker_opened",
                service=self.name,
                failure_count=self.failure_count,
                threshold=self.failure_threshold,
            )

    def can_execute(self) -> bool:
        if self.state != CircuitState.OPEN:
            return True

        if self.opened_at is not None and time.monotonic() - self.opened_at >= self.cooldown_seconds:
            self.state = CircuitState.HALF_OPEN
            log.info("circuit_breaker_half_open", service=self.name)
            return True
        return False

    def raise_if_open(self) -> None:
        """Raises CircuitBreakerOpenError while the cooldown is running."""
        if not self.can_execute():
            remaining = self.cooldown_seconds - (time.monotonic() - (self.opened_at or 0.0))
            raise CircuitBreakerOpenError(
                f"{self.name}: circuit open, next trial in {max(remaining, 0.0):.1f}s"
            )

    def snapshot(self) -> dict[str, Any]:
        return {"state": self.state.value, "failure_count": self.failure_count}


class BaseAPIClient:
    """HTTP client with lazy httpx session, retry and circuit breaker.

    429, 5xx, timeouts and connection errors are retried up to
    `max_retries` attempts with exponential backoff (capped at
    `backoff_cap`). Other 4xx responses fail at once.

    Example:
        client = BaseAPIClient("jupiter", "https://lite-api.jup.ag", max_retries=1)
        data = await client.get_json("/price/v2", params={"ids": mint})
        await client.close()
    """

    def __init__(
        self,
        service_name: str,
        base_url: str,
        timeout: float = 10.0,
        headers: dict[str, str] | None = None,
        max_retries: int = 3,
        backoff_cap: float = 4.0,
        circuit_breaker_threshold: int = 5,
        circuit_breaker_cooldown: float = 30.0,
    ) -> None:
        self.service_name = service_name
        self.base_url = base_url
        self.timeout = timeout
        self.headers = headers or {}
        self.max_retries = max_retries
        self.backoff_cap = backoff_cap
        self._client: httpx.AsyncClient | None = None
        self._circuit_breaker = CircuitBreaker(
            name=service_name,
            failure_threshold=circuit_breaker_threshold,
            cooldown_seconds=circuit_breaker_cooldown,
        )

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        return self._circuit_breaker

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=self.headers,
            )
            log.debug("httpx_client_created", service=self.service_name)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            log.debug("httpx_client_closed", service=self.service_name)

    async def _request(
        self,
        method: str,
        path: str,
        max_retries: int | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request under the retry and circuit breaker rules.

        Raises:
            CircuitBreakerOpenError: If the circuit is open.
            ExternalServiceError: On a non-retryable status or after the
                last attempt.
        """
        self._circuit_breaker.raise_if_open()

        attempts = max_retries if max_retries is not None else self.max_retries
        client = await self._get_client()
        last_error: Exception | None = None
        last_status: int | None = None

        for attempt in range(attempts):
            try:
                response = await client.request(method, path, **kwargs)
                response.raise_for_status()
                self._circuit_breaker.record_success()
                return response

            except httpx.HTTPStatusError as e:
                status_code = e.response.status_code
                if 400 <= status_code < 500 and status_code != 429:
                    log.warning(
                        "request_client_error",
                        service=self.service_name,
                        path=path,
                        status_code=status_code,
                    )
                    raise ExternalServiceError(
                        service=self.service_name,
                        message=f"{method} {path} returned {status_code}",
                        status_code=status_code,
                    ) from e

                self._circuit_breaker.record_failure()
                last_error = e
                last_status = status_code
                log.warning(
                    "request_server_error",
                    service=self.service_name,
                    path=path,
                    status_code=status_code,
                    attempt=attempt + 1,
                    max_retries=attempts,
                )

            except httpx.RequestError as e:
                self._circuit_breaker.record_failure()
                last_error = e
                last_status = None
                log.warning(
                    "request_connection_error",
                    service=self.service_name,
                    path=path,
                    error=str(e) or type(e).__name__,
                    attempt=attempt + 1,
                    max_retries=attempts,
                )

            if attempt < attempts - 1:
                await asyncio.sleep(min(2**attempt, self.backoff_cap))

        raise ExternalServiceError(
            service=self.service_name,
            message=f"{method} {path} failed after {attempts} attempts: {last_error}",
            status_code=last_status,
        )

    async def get(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self._request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self._request("POST", path, **kwargs)

    async def get_json(self, path: str, **kwargs: Any) -> Any:
        """GET and decode the JSON body."""
        return self._decode(await self.get(path, **kwargs), path)

    async def post_json(self, path: str, **kwargs: Any) -> Any:
        """POST and decode the JSON body."""
        return self._decode(await self.post(path, **kwargs), path)

    def _decode(self, response: httpx.Response, path: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ExternalServiceError(
                service=self.service_name,
                message=f"{path} returned invalid JSON",
                status_code=response.status_code,
            ) from e
