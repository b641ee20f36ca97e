"""Fan-out of vessel updates to connected consumers.

A consumer is any object with an async ``send(message)``. Delivery is best
effort: a consumer whose send raises is dropped on the spot and never
retried. Snapshots and broadcasts run one at a time, so a joining consumer
sees every change made after its snapshot was taken.
"""

import asyncio
import logging
from typing import Any, Callable, Iterable, Protocol, Union

from straitwatch.ais.models import VesselRecord
from straitwatch.relay.messages import removal_message, status_message, update_message

logger = logging.getLogger(__name__)


class ChannelClosed(Exception):
    """Raised by a consumer channel whose transport is gone."""


class Consumer(Protocol):
    async def send(self, message: dict[str, Any]) -> None:
        ...


class Broadcaster:
    """Maintains the consumer set and delivers messages to each consumer."""

    def __init__(self) -> None:
        # dict keeps registration order, values unused
        self._consumers: dict[Consumer, None] = {}
        self._messages_sent = 0
        self._consumers_dropped = 0
        self._lock = asyncio.Lock()

    @property
    def consumer_count(self) -> int:
        return len(self._consumers)

    @property
    def consumers(self) -> list[Consumer]:
        return list(self._consumers)

    def __contains__(self, consumer: object) -> bool:
        return consumer in self._consumers

    async def add_consumer(
        self,
        consumer: Consumer,
        records: Union[Iterable[VesselRecord], Callable[[], Iterable[VesselRecord]]],
        state: str,
        detail: str,
    ) -> bool:
        """Register a consumer after sending it the current status and snapshot.

        No broadcast runs while the snapshot is sent. Changes made meanwhile
        are delivered once the consumer is registered.

        Args:
            consumer: Delivery channel
            records: Current vessel records, or a callable returning them
                that is read once the snapshot can no longer interleave
            state: Current ingestion state
            detail: Current ingestion status detail

        Returns:
            True if the consumer was registered
        """
        async with self._lock:
            records = list(records() if callable(records) else records)
            try:
                await consumer.send(status_message(state, detail, len(records)))
                for record in records:
                    await consumer.send(update_message(record))
            except Exception as e:
                logger.warning(f"Consumer failed during initial snapshot, not registered: {e}")
                return False

            self._messages_sent += 1 + len(records)
            self._consumers[consumer] = None
        logger.info(f"Consumer connected. Total consumers: {len(self._consumers)}")
        return True

    def remove_consumer(self, consumer: Consumer) -> None:
        """Deregister a consumer. Idempotent."""
        if self._consumers.pop(consumer, False) is not False:
            logger.info(f"Consumer disconnected. Total consumers: {len(self._consumers)}")

    async def publish_update(self, record: VesselRecord) -> int:
        return await self._broadcast(update_message(record))

    async def publish_removal(self, vessel_id: str) -> int:
        return await self._broadcast(removal_message(vessel_id))

    async def publish_status(self, state: str, detail: str, active_count: int) -> int:
        return await self._broadcast(status_message(state, detail, active_count))

    async def _broadcast(self, message: dict[str, Any]) -> int:
        """Deliver a message to every registered consumer.

        Returns:
            Number of successful deliveries
        """
        delivered = 0

        async with self._lock:
            for consumer in list(self._consumers):
                try:
                    await consumer.send(message)
                    delivered += 1
                except Exception as e:
                    logger.warning(
                        f"Dropping consumer after failed {message['type']} delivery: {e}"
                    )
                    self._consumers.pop(consumer, None)
                    self._consumers_dropped += 1

        self._messages_sent += delivered
        return delivered

    def get_statistics(self) -> dict[str, int]:
        return {
            "consumer_count": len(self._consumers),
            "messages_sent": self._messages_sent,
            "consumers_dropped": self._consumers_dropped,
        }
