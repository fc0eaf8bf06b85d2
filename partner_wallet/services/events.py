"""Balance change events.

After a transfer commits, one ``partner_balance_updated`` message per mutated
balance is published on Redis pub/sub so consoles can refresh their cached
partner lists. Delivery is best-effort: the transfer is already committed.
"""

from typing import TYPE_CHECKING

from redis.asyncio import Redis
from redis.exceptions import RedisError

from partner_wallet.logging_config import get_logger
from partner_wallet.utils.json_utils import json_dumps, json_loads

if TYPE_CHECKING:
    from partner_wallet.services.transfer import TransferResult

logger = get_logger(__name__)

BALANCE_UPDATED_EVENT = "partner_balance_updated"


class BalanceEventPublisher:
    """Publishes committed balance changes."""

    def __init__(self, redis: Redis | None, channel: str = BALANCE_UPDATED_EVENT):
        self.redis = redis
        self.channel = channel

    @staticmethod
    def build_messages(result: "TransferResult") -> list[dict]:
        return [
            {
                "event": BALANCE_UPDATED_EVENT,
                "transferId": result.transfer_id,
                "partnerId": record.partner_id,
                "channel": record.channel,
                "amount": record.amount,
                "balanceAfter": record.balance_after,
                "transactionKind": record.transaction_kind.value,
                "forced": record.forced,
            }
            for record in result.records
        ]

    async def publish_transfer(self, result: "TransferResult") -> int:
        """Publish one message per mutated balance.

        Returns:
            Number of messages published (0 when Redis is disabled or failed)
        """
        if self.redis is None:
            return 0

        published = 0
        try:
            for message in self.build_messages(result):
                await self.redis.publish(self.channel, json_dumps(message))
                published += 1
        except RedisError as e:
            logger.warning(
                "balance_event_publish_failed",
                transfer_id=result.transfer_id,
                published=published,
                error=str(e),
            )
        return published


class BalanceEventSubscription:
    """A console's subscription to balance change events.

    Registered in a ``SessionRegistry`` under the console session id and
    closed with it.
    """

    def __init__(self, redis: Redis, channel: str = BALANCE_UPDATED_EVENT):
        self.redis = redis
        self.channel = channel
        self._pubsub = None
        self.closed = False

    async def start(self) -> "BalanceEventSubscription":
        self._pubsub = self.redis.pubsub()
        await self._pubsub.subscribe(self.channel)
        return self

    async def next_message(self, timeout: float = 1.0) -> dict | None:
        """Next decoded event, or None if nothing arrived within ``timeout``."""
        if self._pubsub is None or self.closed:
            return None
        message = await self._pubsub.get_message(
            ignore_subscribe_messages=True,
            timeout=timeout,
        )
        if message is None:
            return None
        return json_loads(message["data"])

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._pubsub is not None:
            await self._pubsub.unsubscribe(self.channel)
            await self._pubsub.aclose()
            self._pubsub = None
