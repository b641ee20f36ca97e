"""Abstract base class for ingestion adapters.

Defines the interface that all vessel event sources must implement.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from straitwatch.ais.models import RawVesselEvent

logger = logging.getLogger(__name__)

# Called with (state, detail) whenever an adapter changes ingestion status
StatusCallback = Callable[[str, str], Awaitable[None]]


async def _ignore_status(state: str, detail: str) -> None:
    return None


class AdapterError(Exception):
    """Exception raised when an adapter cannot start or produce data."""

    def __init__(self, message: str, source: Optional[str] = None):
        self.source = source
        super().__init__(f"[{source}] {message}" if source else message)


@dataclass
class SourceInfo:
    """Metadata about an ingestion source."""

    name: str
    source_type: str
    is_active: bool
    last_event_at: Optional[datetime] = None
    error_count: int = 0
    total_events: int = 0
    extra_info: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "type": self.source_type,
            "is_active": self.is_active,
            "last_event_at": (
                self.last_event_at.isoformat() if self.last_event_at else None
            ),
            "error_count": self.error_count,
            "total_events": self.total_events,
            "extra_info": self.extra_info,
        }


class IngestionAdapter(ABC):
    """Abstract base class for all vessel event sources.

    Implementations must provide:
    - events(): Lazy, infinite, non-restartable sequence of raw events
    - health_check(): Verify the source is available
    - get_source_info(): Return metadata about the source
    """

    source_type = "unknown"

    def __init__(self, name: str, on_status: Optional[StatusCallback] = None):
        """Initialize adapter.

        Args:
            name: Adapter name used in logs and statistics
            on_status: Awaited with (state, detail) on status changes
        """
        self.name = name
        self.on_status: StatusCallback = on_status or _ignore_status
        self._error_count = 0
        self._total_events = 0
        self._last_event_at: Optional[datetime] = None
        self._is_started = False

    @abstractmethod
    def events(self) -> AsyncIterator[RawVesselEvent]:
        """Yield raw vessel events until the source is exhausted or stopped."""

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the data source is available and healthy."""

    @abstractmethod
    def get_source_info(self) -> SourceInfo:
        """Get metadata about this data source."""

    async def start(self) -> None:
        """Prepare the adapter (e.g., check the source is reachable).

        Raises:
            AdapterError: If the source is unusable
        """
        self._is_started = True
        logger.info(f"Adapter '{self.name}' started")

    async def stop(self) -> None:
        """Release the adapter's resources."""
        self._is_started = False
        logger.info(f"Adapter '{self.name}' stopped")

    def _record_event(self) -> None:
        self._last_event_at = datetime.now(timezone.utc)
        self._total_events += 1

    def _record_error(self) -> None:
        self._error_count += 1

    @property
    def is_started(self) -> bool:
        return self._is_started

    @property
    def error_count(self) -> int:
        return self._error_count

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name={self.name})>"
