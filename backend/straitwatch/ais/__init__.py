"""AIS ingestion module.

This module provides:
- Source-agnostic vessel record representation
- Adapter pattern for the live feed, local bridge and emulator
- Ingestion manager with one-way failover
- Normalization and filtering of inbound events
"""

from straitwatch.ais.adapters.base import (
    AdapterError,
    IngestionAdapter,
    SourceInfo,
)
from straitwatch.ais.manager import IngestionManager
from straitwatch.ais.models import (
    BoundingBox,
    RawVesselEvent,
    VesselCategory,
    VesselRecord,
)
from straitwatch.ais.normalizer import (
    FilterStage,
    UpdateThrottle,
    classify_category,
    normalize_event,
    should_exclude,
)

__all__ = [
    # Models
    "BoundingBox",
    "RawVesselEvent",
    "VesselCategory",
    "VesselRecord",
    # Adapters
    "AdapterError",
    "IngestionAdapter",
    "SourceInfo",
    # Manager
    "IngestionManager",
    # Normalization
    "FilterStage",
    "UpdateThrottle",
    "classify_category",
    "normalize_event",
    "should_exclude",
]
