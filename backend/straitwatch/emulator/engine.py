"""Traffic emulator engine for generating vessel movements.

The orchestrator for the synthetic vessel feed used when the live feed
is unavailable.
"""

import asyncio
import logging
import random
from typing import Any, AsyncIterator, Callable, Optional

from straitwatch.ais.models import SOURCE_SYNTHETIC, BoundingBox, RawVesselEvent
from straitwatch.emulator.scenarios import Fleet, default_fleet
from straitwatch.emulator.vessel import SimulatedVessel, advance_vessel

logger = logging.getLogger(__name__)


class TrafficEmulator:
    """Moves a seed fleet on a fixed tick and reports every vessel per tick."""

    def __init__(
        self,
        bbox: BoundingBox,
        fleet: Optional[Fleet] = None,
        tick_seconds: float = 30.0,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ):
        """Initialize traffic emulator.

        Args:
            bbox: Area the vessels are kept in
            fleet: Seed fleet (built-in Istanbul Strait fleet by default)
            tick_seconds: Seconds between position updates
            rng: Random source for course and speed perturbation
            sleep: Awaitable delay between ticks (replaced in tests)
        """
        self.bbox = bbox
        self.fleet = fleet or default_fleet()
        self.tick_seconds = tick_seconds
        self.rng = rng or random.Random()
        self._sleep = sleep
        self.vessels: list[SimulatedVessel] = self.fleet.build()
        self._tick_count = 0

    @property
    def vessel_count(self) -> int:
        return len(self.vessels)

    @property
    def tick_count(self) -> int:
        return self._tick_count

    def step(self) -> list[RawVesselEvent]:
        """Advance all vessels by one tick.

        Returns:
            One position event per vessel
        """
        for vessel in self.vessels:
            advance_vessel(vessel, self.tick_seconds, self.bbox, self.rng)
        self._tick_count += 1
        return self.snapshot_events()

    def snapshot_events(self) -> list[RawVesselEvent]:
        return [
            RawVesselEvent(source=SOURCE_SYNTHETIC, payload=vessel.to_payload())
            for vessel in self.vessels
        ]

    async def events(self) -> AsyncIterator[RawVesselEvent]:
        """Yield the seed positions, then every vessel once per tick, forever."""
        logger.info(
            f"Emulating {len(self.vessels)} vessels "
            f"(update interval: {self.tick_seconds}s)"
        )
        for event in self.snapshot_events():
            yield event

        while True:
            await self._sleep(self.tick_seconds)
            for event in self.step():
                yield event

    def get_statistics(self) -> dict[str, Any]:
        """Get emulator statistics."""
        speeds = [v.speed for v in self.vessels]
        avg_speed = sum(speeds) / len(speeds) if speeds else 0

        return {
            "fleet_name": self.fleet.name,
            "vessel_count": len(self.vessels),
            "tick_count": self._tick_count,
            "tick_seconds": self.tick_seconds,
            "average_speed_knots": round(avg_speed, 1),
        }
