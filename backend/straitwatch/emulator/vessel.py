"""Simulated vessel and its motion model.

Flat-earth dead reckoning: good enough for a strait a few dozen
kilometres wide, not meant to be geodetically accurate.
"""

import math
import random
from dataclasses import dataclass
from typing import Any

from straitwatch.ais.models import BoundingBox

KNOTS_TO_METERS_PER_SECOND = 0.514444
METERS_PER_DEGREE = 111320.0

HEADING_JITTER_DEGREES = 2.5
SPEED_JITTER_KNOTS = 0.25
MIN_SPEED_KNOTS = 2.0
MAX_SPEED_KNOTS = 15.0


@dataclass
class SimulatedVessel:
    """Configuration and current state of one emulated vessel."""

    mmsi: str
    name: str
    latitude: float
    longitude: float
    heading: float
    speed: float
    category: str = "cargo"
    destination: str = "Unknown"

    def to_payload(self) -> dict[str, Any]:
        """Current state as a flat event payload."""
        return {
            "id": self.mmsi,
            "name": self.name,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "heading": self.heading,
            "speed": self.speed,
            "category": self.category,
            "destination": self.destination,
        }

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "SimulatedVessel":
        """Create a simulated vessel from a configuration dictionary.

        Raises:
            KeyError: If mmsi, name or start_position is missing
        """
        start = config["start_position"]
        return cls(
            mmsi=str(config["mmsi"]),
            name=config["name"],
            latitude=float(start[0]),
            longitude=float(start[1]),
            heading=float(config.get("heading", 0.0)) % 360,
            speed=float(config.get("speed", 8.0)),
            category=config.get("type", "cargo"),
            destination=config.get("destination", "Unknown"),
        )

    def __repr__(self) -> str:
        return (
            f"<SimulatedVessel(mmsi={self.mmsi}, name={self.name}, "
            f"pos=({self.latitude:.4f}, {self.longitude:.4f}), "
            f"speed={self.speed:.1f}kn, heading={self.heading:.1f})>"
        )


def advance_vessel(
    vessel: SimulatedVessel,
    seconds: float,
    bbox: BoundingBox,
    rng: random.Random,
) -> None:
    """Move a vessel along its heading for ``seconds`` and perturb its course.

    A vessel that leaves the bounding box turns around; it is back inside
    after at most one more step.
    """
    distance_m = vessel.speed * KNOTS_TO_METERS_PER_SECOND * seconds
    distance_deg = distance_m / METERS_PER_DEGREE

    heading_rad = math.radians(vessel.heading)
    vessel.latitude += math.cos(heading_rad) * distance_deg
    vessel.longitude += math.sin(heading_rad) * distance_deg

    if not bbox.contains(vessel.latitude, vessel.longitude):
        vessel.heading = (vessel.heading + 180) % 360

    vessel.heading += rng.uniform(-HEADING_JITTER_DEGREES, HEADING_JITTER_DEGREES)
    vessel.heading = (vessel.heading + 360) % 360

    vessel.speed += rng.uniform(-SPEED_JITTER_KNOTS, SPEED_JITTER_KNOTS)
    vessel.speed = max(MIN_SPEED_KNOTS, min(vessel.speed, MAX_SPEED_KNOTS))
