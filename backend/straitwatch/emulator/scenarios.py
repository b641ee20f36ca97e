"""Seed fleets for the traffic emulator.

Handles loading YAML fleet files and validating their structure. Without a
fleet file the emulator uses the built-in Istanbul Strait fleet.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from straitwatch.emulator.vessel import SimulatedVessel

logger = logging.getLogger(__name__)


class FleetLoadError(Exception):
    """Exception raised when loading a fleet file fails."""

    pass


class FleetValidationError(Exception):
    """Exception raised when fleet validation fails."""

    pass


VALID_TYPES = ["cargo", "tanker", "passenger", "fishing", "military", "other", "unknown"]

ISTANBUL_STRAIT_FLEET: list[dict[str, Any]] = [
    {
        "mmsi": 271001001,
        "name": "BOSPHORUS CARGO",
        "type": "cargo",
        "start_position": [41.0335, 29.0095],
        "heading": 15,
        "speed": 8.5,
        "destination": "Haydarpasa",
    },
    {
        "mmsi": 271001002,
        "name": "ISTANBUL TANKER",
        "type": "tanker",
        "start_position": [41.0285, 29.0145],
        "heading": 195,
        "speed": 6.2,
        "destination": "Aliaga",
    },
    {
        "mmsi": 271001003,
        "name": "GOLDEN HORN FERRY",
        "type": "passenger",
        "start_position": [41.0385, 29.0065],
        "heading": 135,
        "speed": 12.0,
        "destination": "Kadikoy",
    },
    {
        "mmsi": 271001004,
        "name": "MARMARA EXPRESS",
        "type": "passenger",
        "start_position": [41.0405, 29.0125],
        "heading": 325,
        "speed": 14.3,
        "destination": "Eminonu",
    },
    {
        "mmsi": 271001005,
        "name": "BLACK SEA TRADER",
        "type": "cargo",
        "start_position": [41.0455, 29.0185],
        "heading": 45,
        "speed": 9.8,
        "destination": "Samsun",
    },
]


@dataclass
class Fleet:
    """Fleet definition loaded from YAML."""

    name: str
    description: str
    vessels: list[dict[str, Any]]

    @property
    def vessel_count(self) -> int:
        """Get number of vessels in fleet."""
        return len(self.vessels)

    def build(self) -> list[SimulatedVessel]:
        """Create fresh simulated vessels from the configuration."""
        return [SimulatedVessel.from_config(config) for config in self.vessels]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_vessel_config(vessel: dict[str, Any], index: int) -> None:
    """Validate a vessel configuration.

    Args:
        vessel: Vessel configuration dictionary
        index: Index in vessels list for error messages

    Raises:
        FleetValidationError: If validation fails
    """
    if not isinstance(vessel, dict):
        raise FleetValidationError(f"Vessel {index}: must be a mapping, got {vessel!r}")

    for field_name in ["mmsi", "name", "type", "start_position"]:
        if field_name not in vessel:
            raise FleetValidationError(
                f"Vessel {index}: missing required field '{field_name}'"
            )

    mmsi = vessel["mmsi"]
    if not isinstance(mmsi, int) or not (100000000 <= mmsi <= 999999999):
        raise FleetValidationError(
            f"Vessel {index}: invalid MMSI '{mmsi}' (must be 9-digit integer)"
        )

    start_pos = vessel["start_position"]
    if not isinstance(start_pos, list) or len(start_pos) != 2:
        raise FleetValidationError(
            f"Vessel {index}: start_position must be [lat, lon] list"
        )

    lat, lon = start_pos
    if not _is_number(lat) or not (-90 <= lat <= 90):
        raise FleetValidationError(f"Vessel {index}: invalid latitude {lat}")
    if not _is_number(lon) or not (-180 <= lon <= 180):
        raise FleetValidationError(f"Vessel {index}: invalid longitude {lon}")

    vessel_type = str(vessel["type"]).lower()
    if vessel_type not in VALID_TYPES:
        raise FleetValidationError(
            f"Vessel {index}: invalid type '{vessel_type}'. Valid types: {VALID_TYPES}"
        )

    speed = vessel.get("speed", 8.0)
    if not _is_number(speed) or speed < 0 or speed > 50:
        raise FleetValidationError(
            f"Vessel {index}: speed must be between 0 and 50 knots"
        )

    heading = vessel.get("heading", 0.0)
    if not _is_number(heading) or heading < 0 or heading >= 360:
        raise FleetValidationError(
            f"Vessel {index}: heading must be between 0 and 359 degrees"
        )


def validate_fleet(data: dict[str, Any]) -> None:
    """Validate fleet data structure.

    Raises:
        FleetValidationError: If validation fails
    """
    if not isinstance(data, dict):
        raise FleetValidationError("Fleet file must contain a mapping")

    if "vessels" not in data:
        raise FleetValidationError("Missing required field: vessels")

    vessels = data["vessels"]
    if not isinstance(vessels, list) or len(vessels) == 0:
        raise FleetValidationError("vessels must be a non-empty list")

    for idx, vessel in enumerate(vessels):
        validate_vessel_config(vessel, idx)

    mmsis = [v["mmsi"] for v in vessels]
    if len(mmsis) != len(set(mmsis)):
        raise FleetValidationError("Duplicate MMSI detected in vessels")


def load_fleet(filepath: str | Path) -> Fleet:
    """Load a fleet from a YAML file.

    Raises:
        FleetLoadError: If file cannot be loaded
        FleetValidationError: If fleet validation fails
    """
    filepath = Path(filepath)

    if not filepath.exists():
        raise FleetLoadError(f"Fleet file not found: {filepath}")

    if filepath.suffix not in (".yaml", ".yml"):
        raise FleetLoadError(f"Fleet file must have .yaml or .yml extension: {filepath}")

    try:
        with open(filepath, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise FleetLoadError(f"Failed to parse YAML: {e}")
    except (OSError, UnicodeDecodeError) as e:
        raise FleetLoadError(f"Failed to read fleet file: {e}")

    if data is None:
        raise FleetLoadError("Fleet file is empty")

    validate_fleet(data)

    fleet = Fleet(
        name=data.get("name", filepath.stem),
        description=data.get("description", ""),
        vessels=data["vessels"],
    )
    logger.info(f"Loaded fleet: {fleet.name} ({fleet.vessel_count} vessels)")
    return fleet


def default_fleet() -> Fleet:
    return Fleet(
        name="istanbul_strait",
        description="Five vessels transiting the Istanbul Strait",
        vessels=[dict(v) for v in ISTANBUL_STRAIT_FLEET],
    )
