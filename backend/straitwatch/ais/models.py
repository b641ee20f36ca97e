"""Internal AIS data representation models.

Source-agnostic data structures for raw vessel events and the
canonical vessel records held by the relay.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

# Event sources
SOURCE_AISSTREAM = "aisstream"
SOURCE_BRIDGE = "bridge"
SOURCE_SYNTHETIC = "synthetic"

# Sources whose positions must lie inside the bounding box
LIVE_SOURCES = frozenset({SOURCE_AISSTREAM, SOURCE_BRIDGE})


class VesselCategory(Enum):
    """Canonical vessel categories exposed to consumers."""

    CARGO = "cargo"
    TANKER = "tanker"
    PASSENGER = "passenger"
    FISHING = "fishing"
    MILITARY = "military"
    OTHER = "other"
    UNKNOWN = "unknown"

    @classmethod
    def from_ais_code(cls, code: Optional[int]) -> "VesselCategory":
        """Convert AIS ship type code to VesselCategory."""
        if not code:
            return cls.UNKNOWN

        if 70 <= code <= 79:
            return cls.CARGO
        elif 80 <= code <= 89:
            return cls.TANKER
        elif 60 <= code <= 69:
            return cls.PASSENGER
        elif code == 30:
            return cls.FISHING
        elif code == 35:
            return cls.MILITARY
        return cls.OTHER

    @classmethod
    def from_text(cls, text: Optional[str]) -> "VesselCategory":
        """Classify a free-text vessel type by substring."""
        if not text:
            return cls.OTHER

        value = text.lower()
        if "cargo" in value or "container" in value:
            return cls.CARGO
        if "tanker" in value or "oil" in value:
            return cls.TANKER
        if "passenger" in value or "ferry" in value:
            return cls.PASSENGER
        if "fishing" in value:
            return cls.FISHING
        if "military" in value or "naval" in value:
            return cls.MILITARY
        if value == cls.UNKNOWN.value:
            return cls.UNKNOWN
        return cls.OTHER

    @property
    def display_text(self) -> str:
        """Return human-readable category."""
        return self.value.title()


@dataclass
class BoundingBox:
    """Geographic bounding box (south-west / north-east corners)."""

    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    def __post_init__(self) -> None:
        """Validate bounding box coordinates."""
        if not (-90 <= self.min_lat <= 90 and -90 <= self.max_lat <= 90):
            raise ValueError("Latitude must be between -90 and 90")
        if not (-180 <= self.min_lon <= 180 and -180 <= self.max_lon <= 180):
            raise ValueError("Longitude must be between -180 and 180")
        if self.min_lat > self.max_lat:
            raise ValueError("min_lat must be <= max_lat")
        if self.min_lon > self.max_lon:
            raise ValueError("min_lon must be <= max_lon")

    def contains(self, latitude: float, longitude: float) -> bool:
        """Check if a point is within the bounding box."""
        return (
            self.min_lat <= latitude <= self.max_lat
            and self.min_lon <= longitude <= self.max_lon
        )

    def to_subscription(self) -> list[list[float]]:
        """Return as [[sw_lat, sw_lon], [ne_lat, ne_lon]] for aisstream.io."""
        return [[self.min_lat, self.min_lon], [self.max_lat, self.max_lon]]

    def to_dict(self) -> dict[str, float]:
        """Convert to dictionary."""
        return {
            "min_lat": self.min_lat,
            "max_lat": self.max_lat,
            "min_lon": self.min_lon,
            "max_lon": self.max_lon,
        }


@dataclass(frozen=True)
class RawVesselEvent:
    """One inbound event exactly as an adapter received or produced it."""

    source: str
    payload: dict[str, Any]


@dataclass
class VesselRecord:
    """Latest known state of one tracked vessel.

    Every accepted event replaces the whole record; ``last_update`` is a
    monotonic ingestion time and the only input to eviction.
    """

    id: str
    latitude: float
    longitude: float
    last_update: float
    name: str = ""
    heading: float = 0.0
    speed: float = 0.0
    category: VesselCategory = VesselCategory.UNKNOWN
    destination: str = "Unknown"
    type_code: Optional[int] = None
    source: str = SOURCE_AISSTREAM
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        """Validate and normalize record data."""
        self.id = str(self.id).strip()
        if not self.id:
            raise ValueError("Vessel id must not be empty")

        if not (-90 <= self.latitude <= 90):
            raise ValueError(f"Invalid latitude: {self.latitude}")
        if not (-180 <= self.longitude <= 180):
            raise ValueError(f"Invalid longitude: {self.longitude}")

        if not self.name:
            self.name = f"Ship {self.id}"

        self.heading = self.heading % 360
        self.speed = max(0.0, self.speed)

    @property
    def position(self) -> tuple[float, float]:
        """Return as (lat, lon) tuple."""
        return (self.latitude, self.longitude)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "heading": round(self.heading, 1),
            "speed": round(self.speed, 1),
            "category": self.category.value,
            "type_code": self.type_code,
            "destination": self.destination,
            "source": self.source,
            "timestamp": self.timestamp.isoformat(),
        }
