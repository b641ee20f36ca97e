"""The relay aggregate: one owner for the vessel table, throttle and consumers.

All mutation happens on the event loop that runs the relay. Three things
drive it: the ingestion task, the eviction task and consumer
connect/disconnect calls from the HTTP layer.
"""

import asyncio
import logging
import time
from typing import Any, Callable, Optional

from straitwatch.ais.manager import IngestionManager
from straitwatch.ais.models import BoundingBox, RawVesselEvent, VesselRecord
from straitwatch.ais.normalizer import FilterStage, UpdateThrottle, normalize_event
from straitwatch.config import Settings
from straitwatch.relay.broadcaster import Broadcaster, Consumer
from straitwatch.relay.eviction import EvictionScheduler
from straitwatch.relay.store import VesselStore

logger = logging.getLogger(__name__)

# Ingestion states reported to consumers, mapped to the stats "mode"
_MODES = {"connected": "live", "bridge": "bridge", "demo": "demo"}


class VesselRelay:
    """Ingests vessel events, keeps the live table and fans out changes."""

    def __init__(
        self,
        bbox: BoundingBox,
        max_vessels: int = 500,
        throttle_seconds: float = 30.0,
        filter_mode: str = "passthrough",
        eviction_interval_seconds: float = 60.0,
        stale_after_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the relay.

        Args:
            bbox: Area of interest for live-feed records
            max_vessels: Store capacity
            throttle_seconds: Minimum interval between accepted updates per vessel
            filter_mode: "passthrough" or "exclude"
            eviction_interval_seconds: Period between eviction sweeps
            stale_after_seconds: Age after which a vessel is evicted
            clock: Monotonic time source
        """
        self.bbox = bbox
        self.clock = clock
        self.store = VesselStore(max_vessels)
        self.throttle = UpdateThrottle(throttle_seconds)
        self.filters = FilterStage(bbox, self.throttle, filter_mode=filter_mode)
        self.broadcaster = Broadcaster()
        self.eviction = EvictionScheduler(
            self.store,
            self.broadcaster,
            self.throttle,
            interval_seconds=eviction_interval_seconds,
            stale_after_seconds=stale_after_seconds,
            clock=clock,
        )

        self.status_state = "disconnected"
        self.status_detail = "Not started"
        self.ingestion: Optional[IngestionManager] = None
        self._ingestion_task: Optional[asyncio.Task] = None
        self._events_received = 0
        self._updates_published = 0

    @classmethod
    def from_settings(
        cls, settings: Settings, clock: Callable[[], float] = time.monotonic
    ) -> "VesselRelay":
        return cls(
            bbox=settings.bounding_box,
            max_vessels=settings.max_vessels,
            throttle_seconds=settings.update_throttle_seconds,
            filter_mode=settings.filter_mode,
            eviction_interval_seconds=settings.eviction_interval_seconds,
            stale_after_seconds=settings.stale_after_seconds,
            clock=clock,
        )

    @property
    def mode(self) -> str:
        return _MODES.get(self.status_state, "disconnected")

    @property
    def is_connected(self) -> bool:
        return self.status_state in _MODES

    @property
    def is_running(self) -> bool:
        return self._ingestion_task is not None and not self._ingestion_task.done()

    async def handle_event(self, event: RawVesselEvent) -> Optional[VesselRecord]:
        """Run one raw event through normalization, filters, store and fan-out.

        Returns:
            The stored record, or None if the event was dropped
        """
        self._events_received += 1
        now = self.clock()

        record = normalize_event(event, now)
        if record is None:
            return None

        if not self.filters.admit(record, now):
            return None

        is_new = record.id not in self.store
        if not self.store.upsert(record):
            logger.debug(f"Vessel table full, ignoring new vessel {record.id}")
            return None

        self.throttle.record(record.id, now)
        if is_new:
            logger.info(f"New vessel detected: {record.name} ({record.id})")

        await self.broadcaster.publish_update(record)
        self._updates_published += 1
        return record

    async def set_status(self, state: str, detail: str) -> None:
        """Record the ingestion status and tell every consumer."""
        self.status_state = state
        self.status_detail = detail
        logger.info(f"Ingestion status: {state} - {detail}")
        await self.broadcaster.publish_status(state, detail, self.store.size())

    async def subscribe(self, consumer: Consumer) -> bool:
        return await self.broadcaster.add_consumer(
            consumer, self.store.all, self.status_state, self.status_detail
        )

    def unsubscribe(self, consumer: Consumer) -> None:
        self.broadcaster.remove_consumer(consumer)

    async def evict(self) -> list[str]:
        return await self.eviction.sweep()

    async def start(self, ingestion: IngestionManager) -> None:
        """Start the ingestion and eviction tasks on the running loop."""
        if self.is_running:
            logger.warning("Relay already running")
            return

        self.ingestion = ingestion
        self._ingestion_task = asyncio.create_task(self._run_ingestion())
        self.eviction.start()

    async def stop(self) -> None:
        """Cancel background tasks and close the active source."""
        await self.eviction.stop()

        if self._ingestion_task:
            self._ingestion_task.cancel()
            try:
                await self._ingestion_task
            except asyncio.CancelledError:
                pass
            self._ingestion_task = None

        if self.ingestion:
            await self.ingestion.stop()

    async def _run_ingestion(self) -> None:
        assert self.ingestion is not None

        try:
            async for event in self.ingestion.events():
                try:
                    await self.handle_event(event)
                except Exception as e:
                    logger.error(f"Error processing {event.source} event: {e}")
        except Exception as e:
            logger.error(f"Ingestion stopped unexpectedly: {e}")

        await self.set_status("error", "No AIS data source available")

    def snapshot(self) -> dict[str, Any]:
        """Current vessels, ingestion state and consumer count."""
        return {
            "vessels": [record.to_dict() for record in self.store.all()],
            "vessel_count": self.store.size(),
            "status": {"state": self.status_state, "detail": self.status_detail},
            "mode": self.mode,
            "consumer_count": self.broadcaster.consumer_count,
        }

    def get_stats(self) -> dict[str, Any]:
        reconnect_attempts = 0
        if self.ingestion is not None:
            info = self.ingestion.active_adapter.get_source_info()
            reconnect_attempts = info.extra_info.get("reconnect_attempts", 0)

        return {
            "connected": self.is_connected,
            "mode": self.mode,
            "client_count": self.broadcaster.consumer_count,
            "ship_count": self.store.size(),
            "reconnect_attempts": reconnect_attempts,
            "bounding_box": self.bbox.to_dict(),
        }

    def get_statistics(self) -> dict[str, Any]:
        """Detailed counters for the status endpoint."""
        return {
            **self.get_stats(),
            "status": {"state": self.status_state, "detail": self.status_detail},
            "events_received": self._events_received,
            "updates_published": self._updates_published,
            "rejected_at_capacity": self.store.rejected_at_capacity,
            "filters": self.filters.get_statistics(),
            "broadcaster": self.broadcaster.get_statistics(),
            "eviction": self.eviction.get_statistics(),
            "ingestion": self.ingestion.get_statistics() if self.ingestion else None,
        }
