"""Normalization and filtering of inbound vessel events.

Provides:
- Field extraction for aisstream.io position reports and flat payloads
- Vessel category classification
- Exclusion filter for the bridge use case
- Bounding box and per-vessel throttle checks
"""

import logging
from typing import Any, Optional

from straitwatch.ais.models import (
    LIVE_SOURCES,
    SOURCE_AISSTREAM,
    BoundingBox,
    RawVesselEvent,
    VesselCategory,
    VesselRecord,
)

logger = logging.getLogger(__name__)

# AIS "heading not available"
HEADING_NOT_AVAILABLE = 511

# Passenger, fishing, pleasure craft, pilot/SAR/tug/law enforcement
EXCLUDED_TYPE_CODES = frozenset(
    list(range(60, 70)) + [30, 36, 37] + list(range(50, 60))
)

EXCLUDED_CATEGORIES = frozenset({VesselCategory.PASSENGER, VesselCategory.FISHING})

EXCLUDED_NAME_KEYWORDS = (
    "ferry",
    "passenger",
    "cruise",
    "fishing",
    "yacht",
    "pleasure",
    "pilot",
    "tug",
    "rescue",
    "coast guard",
    "police",
    "patrol",
)


def _first_present(*values: Any) -> Any:
    """Return the first value that is not None or empty."""
    for value in values:
        if value is not None and value != "":
            return value
    return None


def _to_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def type_label(code: Optional[int]) -> str:
    """Display label for an AIS ship type code."""
    if not code:
        return "Unknown"
    if 70 <= code <= 79:
        return "Cargo"
    if 80 <= code <= 89:
        return "Tanker"
    if 60 <= code <= 69:
        return "Passenger"
    if code == 30:
        return "Fishing"
    if 36 <= code <= 37:
        return "Pleasure"
    return f"Type-{code}"


def classify_category(raw_type: Any) -> tuple[VesselCategory, Optional[int]]:
    """Map a numeric code or free-text vessel type to a category.

    Returns:
        (category, type_code) where type_code is set for numeric input
    """
    if raw_type is None or raw_type == "":
        return VesselCategory.UNKNOWN, None

    code = _to_int(raw_type)
    if code is not None:
        return VesselCategory.from_ais_code(code), code

    return VesselCategory.from_text(str(raw_type)), None


def _extract_aisstream(payload: dict[str, Any]) -> Optional[dict[str, Any]]:
    """Pull fields out of an aisstream.io PositionReport message."""
    if payload.get("MessageType") != "PositionReport":
        return None

    report = (payload.get("Message") or {}).get("PositionReport") or {}
    meta = payload.get("MetaData") or payload.get("Metadata") or {}
    if not report and not meta:
        return None

    heading = _to_float(report.get("TrueHeading"))
    if heading == HEADING_NOT_AVAILABLE:
        heading = None

    name = meta.get("ShipName")
    if isinstance(name, str):
        name = name.strip()

    return {
        "id": _first_present(meta.get("MMSI"), report.get("UserID")),
        "name": name,
        # Metadata position overrides the embedded report position
        "latitude": _first_present(
            meta.get("latitude"), meta.get("Latitude"), report.get("Latitude")
        ),
        "longitude": _first_present(
            meta.get("longitude"), meta.get("Longitude"), report.get("Longitude")
        ),
        "heading": _first_present(
            heading, report.get("Cog"), report.get("CourseOverGround")
        ),
        "speed": _first_present(report.get("Sog"), report.get("SpeedOverGround")),
        "type": _first_present(meta.get("VesselType"), meta.get("ShipType")),
        "destination": meta.get("Destination"),
    }


def _extract_flat(payload: dict[str, Any]) -> dict[str, Any]:
    """Pull fields out of a bridge or emulator payload."""
    return {
        "id": _first_present(payload.get("id"), payload.get("mmsi")),
        "name": _first_present(payload.get("name"), payload.get("shipName")),
        "latitude": payload.get("latitude"),
        "longitude": payload.get("longitude"),
        "heading": payload.get("heading"),
        "speed": payload.get("speed"),
        "type": _first_present(
            payload.get("type_code"),
            payload.get("category"),
            payload.get("vesselType"),
        ),
        "destination": payload.get("destination"),
    }


def normalize_event(event: RawVesselEvent, now: float) -> Optional[VesselRecord]:
    """Convert a raw event into a canonical VesselRecord.

    Args:
        event: Raw event from an ingestion adapter
        now: Monotonic ingestion time stamped on the record

    Returns:
        VesselRecord, or None when the event carries no usable position
    """
    if event.source == SOURCE_AISSTREAM:
        fields = _extract_aisstream(event.payload)
    else:
        fields = _extract_flat(event.payload)

    if fields is None:
        return None

    vessel_id = fields["id"]
    latitude = _to_float(fields["latitude"])
    longitude = _to_float(fields["longitude"])
    if vessel_id is None or str(vessel_id).strip() == "":
        return None
    if latitude is None or longitude is None:
        return None

    category, type_code = classify_category(fields["type"])

    try:
        return VesselRecord(
            id=str(vessel_id),
            name=fields["name"] or "",
            latitude=latitude,
            longitude=longitude,
            heading=_to_float(fields["heading"]) or 0.0,
            speed=_to_float(fields["speed"]) or 0.0,
            category=category,
            type_code=type_code,
            destination=fields["destination"] or "Unknown",
            source=event.source,
            last_update=now,
        )
    except ValueError as e:
        logger.debug(f"Dropping {event.source} event for {vessel_id}: {e}")
        return None


def should_exclude(record: VesselRecord) -> bool:
    """Check whether a vessel is outside the bridge's traffic of interest."""
    if record.type_code is not None and record.type_code in EXCLUDED_TYPE_CODES:
        return True
    if record.category in EXCLUDED_CATEGORIES:
        return True

    name = record.name.lower()
    return any(keyword in name for keyword in EXCLUDED_NAME_KEYWORDS)


class UpdateThrottle:
    """Per-vessel minimum interval between accepted updates."""

    def __init__(self, window_seconds: float):
        self.window_seconds = window_seconds
        self._accepted_at: dict[str, float] = {}

    def is_throttled(self, vessel_id: str, now: float) -> bool:
        last = self._accepted_at.get(vessel_id)
        return last is not None and now - last < self.window_seconds

    def record(self, vessel_id: str, now: float) -> None:
        self._accepted_at[vessel_id] = now

    def forget(self, vessel_id: str) -> None:
        self._accepted_at.pop(vessel_id, None)

    def __len__(self) -> int:
        return len(self._accepted_at)


class FilterStage:
    """Exclusion, bounding box and throttle checks applied after normalization.

    Supports two modes:
    - passthrough: every vessel type is relayed, category is metadata
    - exclude: passenger/fishing/service traffic is dropped (bridge)
    """

    def __init__(
        self,
        bbox: BoundingBox,
        throttle: UpdateThrottle,
        filter_mode: str = "passthrough",
        throttled_sources: frozenset[str] = LIVE_SOURCES,
    ):
        if filter_mode not in ("passthrough", "exclude"):
            raise ValueError(f"Unknown filter mode: {filter_mode}")

        self.bbox = bbox
        self.throttle = throttle
        self.filter_mode = filter_mode
        self.throttled_sources = throttled_sources
        self._rejected: dict[str, int] = {"excluded": 0, "out_of_bounds": 0, "throttled": 0}

    def admit(self, record: VesselRecord, now: float) -> bool:
        """Decide whether a normalized record may be written to the store."""
        if self.filter_mode == "exclude" and should_exclude(record):
            self._rejected["excluded"] += 1
            return False

        if record.source in LIVE_SOURCES and not self.bbox.contains(
            record.latitude, record.longitude
        ):
            self._rejected["out_of_bounds"] += 1
            return False

        if record.source in self.throttled_sources and self.throttle.is_throttled(
            record.id, now
        ):
            self._rejected["throttled"] += 1
            return False

        return True

    def get_statistics(self) -> dict[str, Any]:
        return {"filter_mode": self.filter_mode, "rejected": dict(self._rejected)}
