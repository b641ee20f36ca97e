"""Serializers for messages pushed to consumers.

Message shapes:
- update:  {"type": "update", "record": {...}}
- removal: {"type": "removal", "id": "..."}
- status:  {"type": "status", "state": "...", "detail": "...", "active_count": n}
"""

from datetime import datetime, timezone
from typing import Any

from straitwatch.ais.models import VesselRecord

UPDATE = "update"
REMOVAL = "removal"
STATUS = "status"


def update_message(record: VesselRecord) -> dict[str, Any]:
    return {"type": UPDATE, "record": record.to_dict()}


def removal_message(vessel_id: str) -> dict[str, Any]:
    return {"type": REMOVAL, "id": vessel_id}


def status_message(state: str, detail: str, active_count: int) -> dict[str, Any]:
    """Ingestion status as seen by consumers.

    Args:
        state: connecting, connected, disconnected, error, bridge or demo
        detail: Human-readable description
        active_count: Number of vessels currently tracked
    """
    return {
        "type": STATUS,
        "state": state,
        "detail": detail,
        "active_count": active_count,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
