"""Local AIS bridge adapter.

Polls a bridge service (see ``straitwatch.bridge``) that holds its own
aisstream.io connection from a network the upstream accepts. Used where
the relay itself runs on a restricted network.
"""

import asyncio
import logging
from typing import Any, AsyncIterator, Callable, NoReturn, Optional

import httpx

from straitwatch.ais.adapters.base import (
    AdapterError,
    IngestionAdapter,
    SourceInfo,
    StatusCallback,
)
from straitwatch.ais.models import SOURCE_BRIDGE, RawVesselEvent

logger = logging.getLogger(__name__)


class BridgeAdapter(IngestionAdapter):
    """Polls ``/ais/ships`` of a local bridge on a fixed interval."""

    source_type = "bridge"

    def __init__(
        self,
        base_url: str,
        poll_interval: float = 120.0,
        name: str = "Local AIS Bridge",
        on_status: Optional[StatusCallback] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ):
        """Initialize bridge adapter.

        Args:
            base_url: Bridge root URL, e.g. http://localhost:3002
            poll_interval: Seconds between polls
            name: Adapter name
            on_status: Status callback
            timeout: HTTP timeout in seconds
            transport: httpx transport (replaced in tests)
            sleep: Awaitable delay between polls (replaced in tests)
        """
        super().__init__(name, on_status)
        self.base_url = base_url.rstrip("/")
        self.poll_interval = poll_interval
        self._sleep = sleep
        self._client = httpx.AsyncClient(
            base_url=self.base_url, timeout=timeout, transport=transport
        )
        self._poll_count = 0
        self._last_bridge_status: Optional[str] = None

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    async def start(self) -> None:
        """Check the bridge status endpoint.

        The HTTP client is closed when the check fails.

        Raises:
            AdapterError: If the bridge is not reachable or answers with
                something other than a JSON object
        """
        logger.info(f"Trying local AIS bridge at {self.base_url}")
        try:
            response = await self._client.get("/ais/status")
            response.raise_for_status()
            status = response.json()
        except (httpx.HTTPError, ValueError) as e:
            await self._fail_start(f"Local bridge not available: {e}")

        if not isinstance(status, dict):
            await self._fail_start(
                f"Local bridge returned an unexpected status response: {status!r}"
            )

        self._last_bridge_status = status.get("status")
        logger.info(f"Local AIS bridge found: {status}")
        self._is_started = True
        await self.on_status("bridge", "Connected to local AIS bridge")

    async def _fail_start(self, message: str) -> NoReturn:
        self._record_error()
        await self._client.aclose()
        raise AdapterError(message, source=self.name)

    async def fetch_ships(self) -> list[dict[str, Any]]:
        """Fetch the bridge's current vessel list. Errors yield an empty list."""
        try:
            response = await self._client.get("/ais/ships")
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            self._record_error()
            logger.error(f"Bridge fetch error: {e}")
            return []

        if not isinstance(data, dict):
            self._record_error()
            logger.error(f"Bridge returned an unexpected ships response: {data!r}")
            return []

        self._poll_count += 1
        self._last_bridge_status = data.get("status")
        ships = data.get("ships")
        if not isinstance(ships, list):
            ships = []
        logger.info(f"Fetched {len(ships)} ships from local bridge")
        return [ship for ship in ships if isinstance(ship, dict)]

    async def events(self) -> AsyncIterator[RawVesselEvent]:
        while True:
            for ship in await self.fetch_ships():
                self._record_event()
                yield RawVesselEvent(source=SOURCE_BRIDGE, payload=ship)
            await self._sleep(self.poll_interval)

    async def stop(self) -> None:
        await self._client.aclose()
        await super().stop()

    async def health_check(self) -> bool:
        if self._client.is_closed:
            return False
        try:
            response = await self._client.get("/ais/status")
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    def get_source_info(self) -> SourceInfo:
        return SourceInfo(
            name=self.name,
            source_type=self.source_type,
            is_active=self._is_started,
            last_event_at=self._last_event_at,
            error_count=self._error_count,
            total_events=self._total_events,
            extra_info={
                "base_url": self.base_url,
                "poll_interval": self.poll_interval,
                "poll_count": self._poll_count,
                "bridge_status": self._last_bridge_status,
            },
        )
