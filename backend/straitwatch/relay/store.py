"""Bounded in-memory table of currently visible vessels."""

import logging
from typing import Optional

from straitwatch.ais.models import VesselRecord

logger = logging.getLogger(__name__)


class VesselStore:
    """Maps vessel id to its latest record.

    Once ``max_vessels`` records are held, unseen ids are rejected while
    known ids keep updating. The store never notifies anybody; callers
    publish changes themselves.
    """

    def __init__(self, max_vessels: int):
        if max_vessels < 1:
            raise ValueError("max_vessels must be >= 1")
        self.max_vessels = max_vessels
        self._records: dict[str, VesselRecord] = {}
        self._rejected_at_capacity = 0

    def upsert(self, record: VesselRecord) -> bool:
        """Insert or replace a record.

        Returns:
            False if the store is full and the id is new, True otherwise
        """
        if record.id not in self._records and len(self._records) >= self.max_vessels:
            self._rejected_at_capacity += 1
            return False

        self._records[record.id] = record
        return True

    def get(self, vessel_id: str) -> Optional[VesselRecord]:
        return self._records.get(vessel_id)

    def all(self) -> list[VesselRecord]:
        """Unordered snapshot of all records."""
        return list(self._records.values())

    def remove(self, vessel_id: str) -> Optional[VesselRecord]:
        """Delete a record if present. Idempotent."""
        return self._records.pop(vessel_id, None)

    def size(self) -> int:
        return len(self._records)

    def stale_ids(self, now: float, max_age: float) -> list[str]:
        """Ids of records whose last update is older than ``max_age`` seconds."""
        return [
            vessel_id
            for vessel_id, record in self._records.items()
            if now - record.last_update > max_age
        ]

    @property
    def rejected_at_capacity(self) -> int:
        return self._rejected_at_capacity

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, vessel_id: object) -> bool:
        return vessel_id in self._records

    def __repr__(self) -> str:
        return f"<VesselStore(size={len(self._records)}, max={self.max_vessels})>"
