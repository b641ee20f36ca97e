"""Ingestion manager for chaining sources with one-way failover.

Runs the primary adapter and, when it cannot start or its event sequence
ends, permanently switches to the next adapter in the chain.
"""

import logging
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Optional

from straitwatch.ais.adapters.base import AdapterError, IngestionAdapter, SourceInfo
from straitwatch.ais.models import RawVesselEvent

logger = logging.getLogger(__name__)


class IngestionManager:
    """Manages a chain of ingestion sources with failover logic.

    Supports:
    - Primary/secondary/tertiary source configuration
    - Failover on startup failure or end of a source's sequence
    - Never switching back to an earlier source
    - Statistics tracking
    """

    def __init__(
        self,
        primary_adapter: IngestionAdapter,
        secondary_adapter: Optional[IngestionAdapter] = None,
        tertiary_adapter: Optional[IngestionAdapter] = None,
    ):
        """Initialize ingestion manager.

        Args:
            primary_adapter: Preferred data source (required)
            secondary_adapter: Fallback data source
            tertiary_adapter: Last-resort data source
        """
        self.adapters: list[IngestionAdapter] = [primary_adapter]
        if secondary_adapter:
            self.adapters.append(secondary_adapter)
        if tertiary_adapter:
            self.adapters.append(tertiary_adapter)

        self.active_adapter_index = 0
        self._failover_count = 0
        self._total_events = 0
        self._start_time: Optional[datetime] = None

    @property
    def active_adapter(self) -> IngestionAdapter:
        """Get the currently active adapter."""
        return self.adapters[self.active_adapter_index]

    @property
    def active_adapter_name(self) -> str:
        return self.active_adapter.name

    @property
    def adapter_count(self) -> int:
        return len(self.adapters)

    @property
    def failover_count(self) -> int:
        return self._failover_count

    async def events(self) -> AsyncIterator[RawVesselEvent]:
        """Yield events from the active source, failing over down the chain."""
        self._start_time = datetime.now(timezone.utc)

        while True:
            adapter = self.active_adapter
            try:
                await adapter.start()
                async for event in adapter.events():
                    self._total_events += 1
                    yield event
                logger.warning(f"Source {adapter.name} stopped producing events")
            except AdapterError as e:
                logger.warning(f"Source {adapter.name} failed: {e}")
            finally:
                if adapter.is_started:
                    await adapter.stop()

            if self.active_adapter_index >= len(self.adapters) - 1:
                logger.error("All ingestion sources have failed")
                return
            self._perform_failover()

    def _perform_failover(self) -> None:
        """Switch to the next adapter. There is no way back."""
        old_name = self.active_adapter.name
        self.active_adapter_index += 1
        self._failover_count += 1

        logger.warning(
            f"Failover: {old_name} -> {self.active_adapter.name} "
            f"(total failovers: {self._failover_count})"
        )

    async def stop(self) -> None:
        """Stop the active adapter."""
        adapter = self.active_adapter
        if adapter.is_started:
            try:
                await adapter.stop()
            except Exception as e:
                logger.error(f"Error stopping adapter {adapter.name}: {e}")

    def get_all_source_info(self) -> list[SourceInfo]:
        return [adapter.get_source_info() for adapter in self.adapters]

    def get_statistics(self) -> dict[str, Any]:
        """Get manager statistics."""
        uptime = 0.0
        if self._start_time:
            uptime = (datetime.now(timezone.utc) - self._start_time).total_seconds()

        return {
            "adapter_count": len(self.adapters),
            "active_adapter": self.active_adapter.name,
            "active_adapter_index": self.active_adapter_index,
            "total_events": self._total_events,
            "failover_count": self._failover_count,
            "uptime_seconds": uptime,
            "adapters": [info.to_dict() for info in self.get_all_source_info()],
        }

    def __repr__(self) -> str:
        adapters_str = ", ".join(a.name for a in self.adapters)
        return (
            f"<IngestionManager(adapters=[{adapters_str}], "
            f"active={self.active_adapter.name})>"
        )
