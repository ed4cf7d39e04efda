"""Websocket `logsSubscribe` client for monitored wallets.

One connection carries a `logsSubscribe {mentions: [address]}` subscription
per wallet. Every notification for a successful transaction is handed to
`on_signature(address, signature)`.

Reconnect state machine:

    disconnected -> connecting -> subscribed
    subscribed   -> degraded (connection lost, retrying with backoff)
    degraded     -> connecting (next attempt)
    degraded     -> disconnected (attempts exhausted)

Every subscription is re-sent after a reconnect.
"""

import asyncio
import json
import random
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

import structlog
import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from solwatch.core.utils import short

log = structlog.get_logger(__name__)

SignatureHandler = Callable[[str, str], Awaitable[None]]


class StreamState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"
    DEGRADED = "degraded"


class LogStreamClient:
    """Reconnecting logs subscription client.

    Attributes:
        state: Current StreamState.
        attempts: Consecutive failed connection attempts.
    """

    def __init__(
        self,
        ws_url: str,
        on_signature: SignatureHandler,
        max_reconnect_attempts: int = 10,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        connect: Callable[..., Any] = websockets.connect,
    ) -> None:
        self._ws_url = ws_url
        self._on_signature = on_signature
        self._max_attempts = max_reconnect_attempts
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._connect = connect

        self.state = StreamState.DISCONNECTED
        self.attempts = 0
        self.reconnect_count = 0
        self.notifications = 0

        self._addresses: set[str] = set()
        self._subscription_ids: dict[str, int] = {}
        self._pending: dict[int, str] = {}
        self._request_id = 0
        self._ws: Any = None
        self._task: asyncio.Task[None] | None = None
        self._running = False
        self._has_addresses = asyncio.Event()

    @property
    def subscribed_count(self) -> int:
        return len(self._subscription_ids)

    def _transition(self, state: StreamState) -> None:
        if state != self.state:
            log.info("log_stream_state_changed", previous=self.state.value, state=state.value)
            self.state = state

    def backoff_delay(self, attempt: int) -> float:
        """Exponential delay with up to 10% jitter for the given attempt."""
        delay = min(self._base_delay * (2 ** max(attempt - 1, 0)), self._max_delay)
        return delay + delay * 0.1 * random.random()

    async def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._running = True
        self.attempts = 0
        self._task = asyncio.create_task(self._run(), name="log-stream")
        log.info("log_stream_started", wallets=len(self._addresses))

    async def stop(self) -> None:
        self._running = False
        self._has_addresses.set()
        if self._ws is not None:
            await self._ws.close()
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self._transition(StreamState.DISCONNECTED)
        log.info("log_stream_stopped")

    async def subscribe(self, address: str) -> None:
        """Track a wallet; sent right away when connected, else on connect."""
        self._addresses.add(address)
        self._has_addresses.set()
        if self._ws is not None and self.state == StreamState.SUBSCRIBED:
            await self._send_subscribe(address)
        elif self._running and (self._task is None or self._task.done()):
            # gave up earlier; a new wallet restarts the machine
            self._task = None
            await self.start()

    async def unsubscribe(self, address: str) -> None:
        self._addresses.discard(address)
        subscription_id = self._subscription_ids.pop(address, None)
        if subscription_id is not None and self._ws is not None:
            await self._send("logsUnsubscribe", [subscription_id])
        if not self._addresses:
            self._has_addresses.clear()
        log.info("log_stream_unsubscribed", wallet_address=short(address))

    async def unsubscribe_all(self, addresses: list[str] | None = None) -> None:
        for address in list(addresses if addresses is not None else self._addresses):
            await self.unsubscribe(address)

    async def _send(self, method: str, params: list[Any]) -> int:
        self._request_id += 1
        await self._ws.send(
            json.dumps({"jsonrpc": "2.0", "id": self._request_id, "method": method, "params": params})
        )
        return self._request_id

    async def _send_subscribe(self, address: str) -> None:
        request_id = await self._send(
            "logsSubscribe", [{"mentions": [address]}, {"commitment": "confirmed"}]
        )
        self._pending[request_id] = address

    async def _run(self) -> None:
        while self._running:
            if not self._addresses:
                await self._has_addresses.wait()
                continue

            self._transition(StreamState.CONNECTING)
            try:
                async with self._connect(self._ws_url, ping_interval=20, ping_timeout=20) as ws:
                    self._ws = ws
                    self._subscription_ids.clear()
                    self._pending.clear()
                    for address in list(self._addresses):
                        await self._send_subscribe(address)
                    if self.attempts:
                        self.reconnect_count += 1
                    self.attempts = 0
                    self._transition(StreamState.SUBSCRIBED)

                    async for raw in ws:
                        await self._handle_message(raw)

                # server closed cleanly; treat like a drop
                raise ConnectionClosed(None, None)

            except asyncio.CancelledError:
                raise
            except (ConnectionClosed, WebSocketException, OSError, TimeoutError) as e:
                if not await self._back_off(e):
                    return
            except Exception as e:
                log.exception("log_stream_unexpected_error", error=str(e))
                if not await self._back_off(e):
                    return
            finally:
                self._ws = None

        self._transition(StreamState.DISCONNECTED)

    async def _back_off(self, error: BaseException) -> bool:
        """Sleep before the next attempt; False once attempts are exhausted."""
        self._ws = None
        self.attempts += 1
        if self.attempts >= self._max_attempts:
            log.error(
                "log_stream_gave_up",
                attempts=self.attempts,
                error=str(error) or type(error).__name__,
            )
            self._transition(StreamState.DISCONNECTED)
            return False

        self._transition(StreamState.DEGRADED)
        delay = self.backoff_delay(self.attempts)
        log.warning(
            "log_stream_reconnecting",
            attempt=self.attempts,
            max_attempts=self._max_attempts,
            delay_seconds=round(delay, 2),
            error=str(error) or type(error).__name__,
        )
        await asyncio.sleep(delay)
        return True

    async def _handle_message(self, raw: str | bytes) -> None:
        try:
            message = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            log.warning("log_stream_message_invalid")
            return

        request_id = message.get("id")
        if request_id is not None and request_id in self._pending:
            address = self._pending.pop(request_id)
            if "result" in message and address in self._addresses:
                self._subscription_ids[address] = message["result"]
                log.debug("log_stream_subscribed", wallet_address=short(address))
            elif "error" in message:
                log.warning(
                    "log_stream_subscribe_failed",
                    wallet_address=short(address),
                    error=message["error"],
                )
            return

        if message.get("method") != "logsNotification":
            return

        params = message.get("params") or {}
        subscription_id = params.get("subscription")
        value = (params.get("result") or {}).get("value") or {}
        address = next(
            (a for a, sid in self._subscription_ids.items() if sid == subscription_id), None
        )
        signature = value.get("signature")
        if address is None or not signature or value.get("err") is not None:
            return

        self.notifications += 1
        try:
            await self._on_signature(address, signature)
        except Exception as e:
            log.error(
                "log_stream_handler_failed",
                wallet_address=short(address),
                signature=short(signature),
                error=str(e),
            )

    def get_status(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "attempts": self.attempts,
            "reconnect_count": self.reconnect_count,
            "wallets": len(self._addresses),
            "subscribed": len(self._subscription_ids),
            "notifications": self.notifications,
        }
