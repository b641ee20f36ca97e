"""Periodic removal of vessels that stopped reporting."""

import asyncio
import logging
import time
from typing import Callable, Optional

from straitwatch.ais.normalizer import UpdateThrottle
from straitwatch.relay.broadcaster import Broadcaster
from straitwatch.relay.store import VesselStore

logger = logging.getLogger(__name__)


class EvictionScheduler:
    """Sweeps the store on a fixed period and publishes removals."""

    def __init__(
        self,
        store: VesselStore,
        broadcaster: Broadcaster,
        throttle: UpdateThrottle,
        interval_seconds: float = 60.0,
        stale_after_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize eviction scheduler.

        Args:
            store: Vessel table to sweep
            broadcaster: Receives one removal per evicted vessel
            throttle: Throttle entries of evicted vessels are forgotten
            interval_seconds: Period between sweeps
            stale_after_seconds: Maximum record age
            clock: Monotonic time source
        """
        self.store = store
        self.broadcaster = broadcaster
        self.throttle = throttle
        self.interval_seconds = interval_seconds
        self.stale_after_seconds = stale_after_seconds
        self.clock = clock
        self._task: Optional[asyncio.Task] = None
        self._sweep_count = 0
        self._evicted_total = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sweep(self) -> list[str]:
        """Remove every stale record.

        Returns:
            Ids of evicted vessels
        """
        now = self.clock()
        evicted = []

        for vessel_id in self.store.stale_ids(now, self.stale_after_seconds):
            if self.store.remove(vessel_id) is None:
                continue
            self.throttle.forget(vessel_id)
            evicted.append(vessel_id)
            await self.broadcaster.publish_removal(vessel_id)

        self._sweep_count += 1
        self._evicted_total += len(evicted)

        if evicted:
            logger.info(
                f"Cleaned up {len(evicted)} old vessels. Active vessels: {self.store.size()}"
            )
        return evicted

    def start(self) -> None:
        """Start the sweep loop on the running event loop."""
        if self.is_running:
            logger.warning("Eviction scheduler already running")
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Cancel the sweep loop."""
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _run(self) -> None:
        logger.debug(
            f"Eviction loop started (every {self.interval_seconds}s, "
            f"max age {self.stale_after_seconds}s)"
        )
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.sweep()
            except Exception as e:
                logger.error(f"Error in eviction sweep: {e}")

    def get_statistics(self) -> dict[str, float]:
        return {
            "interval_seconds": self.interval_seconds,
            "stale_after_seconds": self.stale_after_seconds,
            "sweep_count": self._sweep_count,
            "evicted_total": self._evicted_total,
        }
