"""Live transaction fan-out.

Publishing is best-effort and at-most-once: a transport failure is logged
and dropped, and subscribers only see transactions published while they
are attached. Reconnecting clients re-fetch history through the query API.
"""

from collections.abc import AsyncIterator

import structlog

from solwatch.core.utils import short
from solwatch.data.models.transaction import Transaction
from solwatch.data.redis.pubsub import PubSubTransport

log = structlog.get_logger(__name__)

CHANNEL = "transactions"


class TransactionBroker:
    """Publish/subscribe over a PubSubTransport with group filtering."""

    def __init__(self, transport: PubSubTransport, channel: str = CHANNEL) -> None:
        self._transport = transport
        self._channel = channel
        self.subscribers = 0
        self.published = 0
        self.publish_failures = 0

    async def publish(self, transaction: Transaction) -> int:
        """Send to current subscribers; returns how many received it."""
        try:
            delivered = await self._transport.publish(
                self._channel, transaction.model_dump(mode="json")
            )
        except Exception as e:
            self.publish_failures += 1
            log.warning(
                "broker_publish_failed",
                signature=short(transaction.signature, 16),
                error=str(e),
            )
            return 0

        self.published += 1
        log.debug(
            "broker_published",
            signature=short(transaction.signature, 16),
            delivered=delivered,
        )
        return delivered

    async def subscribe(self, group_id: str | None = None) -> AsyncIterator[Transaction]:
        """Stream transactions published from now on, optionally one group only."""
        self.subscribers += 1
        log.info("broker_subscriber_attached", group_id=group_id, subscribers=self.subscribers)
        try:
            async for message in self._transport.listen(self._channel):
                transaction = Transaction.model_validate(message)
                if group_id and transaction.group_id != group_id:
                    continue
                yield transaction
        finally:
            self.subscribers -= 1
            log.info("broker_subscriber_detached", group_id=group_id, subscribers=self.subscribers)

    def get_status(self) -> dict:
        return {
            "subscribers": self.subscribers,
            "published": self.published,
            "publish_failures": self.publish_failures,
        }
