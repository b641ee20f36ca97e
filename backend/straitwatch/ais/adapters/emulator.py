"""Emulator adapter for the ingestion layer.

Provides vessel events from the traffic emulator when no live data is
available.
"""

import logging
from typing import AsyncIterator, Optional

from straitwatch.ais.adapters.base import IngestionAdapter, SourceInfo, StatusCallback
from straitwatch.ais.models import RawVesselEvent
from straitwatch.emulator.engine import TrafficEmulator

logger = logging.getLogger(__name__)

DEMO_STATE = "demo"
DEMO_DETAIL = "AIS Demo Mode - Simulated data active"


class EmulatorAdapter(IngestionAdapter):
    """Synthetic traffic adapter.

    Never fails and never ends; it is the last source in every chain.
    """

    source_type = "emulator"

    def __init__(
        self,
        emulator: TrafficEmulator,
        name: str = "Istanbul Strait Emulator",
        on_status: Optional[StatusCallback] = None,
    ):
        super().__init__(name, on_status)
        self.emulator = emulator

    async def start(self) -> None:
        logger.info(f"Starting emulator adapter: {self.name}")
        self._is_started = True
        await self.on_status(DEMO_STATE, DEMO_DETAIL)

    async def events(self) -> AsyncIterator[RawVesselEvent]:
        async for event in self.emulator.events():
            self._record_event()
            yield event

    async def health_check(self) -> bool:
        return self._is_started

    def get_source_info(self) -> SourceInfo:
        return SourceInfo(
            name=self.name,
            source_type=self.source_type,
            is_active=self._is_started,
            last_event_at=self._last_event_at,
            error_count=self._error_count,
            total_events=self._total_events,
            extra_info=self.emulator.get_statistics(),
        )
