"""AIS emulator module.

Provides the synthetic vessel feed used when the live feed is unavailable.
"""

from straitwatch.emulator.engine import TrafficEmulator
from straitwatch.emulator.scenarios import (
    ISTANBUL_STRAIT_FLEET,
    Fleet,
    FleetLoadError,
    FleetValidationError,
    default_fleet,
    load_fleet,
)
from straitwatch.emulator.vessel import (
    KNOTS_TO_METERS_PER_SECOND,
    METERS_PER_DEGREE,
    SimulatedVessel,
    advance_vessel,
)

__all__ = [
    # Engine
    "TrafficEmulator",
    # Vessel
    "SimulatedVessel",
    "advance_vessel",
    "KNOTS_TO_METERS_PER_SECOND",
    "METERS_PER_DEGREE",
    # Fleets
    "Fleet",
    "ISTANBUL_STRAIT_FLEET",
    "default_fleet",
    "load_fleet",
    "FleetLoadError",
    "FleetValidationError",
]
