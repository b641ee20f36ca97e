"""aisstream.io WebSocket adapter, real-time AIS position reports.

Connects to the configured stream URL, subscribes to PositionReport messages
inside the bounding box and yields every parsed message as a raw event.
Reconnection and failover decisions come from the pure state machine in
``link_state``; this module only drives it.
"""

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Callable, Optional

import websockets

from straitwatch.ais.adapters.base import (
    IngestionAdapter,
    SourceInfo,
    StatusCallback,
)
from straitwatch.ais.adapters.link_state import (
    ABNORMAL_CLOSURE,
    NORMAL_CLOSURE,
    CloseTransport,
    Closed,
    Effect,
    Failover,
    LinkEvent,
    LinkPhase,
    LinkState,
    Notify,
    ReconnectDue,
    ReconnectPolicy,
    ScheduleReconnect,
    Shutdown,
    Start,
    Subscribed,
    transition,
)
from straitwatch.ais.models import SOURCE_AISSTREAM, BoundingBox, RawVesselEvent

logger = logging.getLogger(__name__)

POSITION_REPORT = "PositionReport"


class LiveFeedAdapter(IngestionAdapter):
    """Streams position reports from aisstream.io.

    The event sequence ends when the link fails over (sustained abnormal
    closures or exhausted reconnect attempts) or when the adapter is stopped.
    """

    source_type = "aisstream"

    def __init__(
        self,
        url: str,
        api_key: str,
        bbox: BoundingBox,
        policy: Optional[ReconnectPolicy] = None,
        name: str = "aisstream.io",
        on_status: Optional[StatusCallback] = None,
        open_timeout: float = 10.0,
        connect: Callable[..., Any] = websockets.connect,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ):
        """Initialize live feed adapter.

        Args:
            url: WebSocket URL of the stream
            api_key: aisstream.io API key
            bbox: Area of interest sent with the subscription
            policy: Reconnect and failover policy
            name: Adapter name
            on_status: Status callback
            open_timeout: Seconds allowed for the opening handshake
            connect: WebSocket connect factory (replaced in tests)
            sleep: Awaitable delay used between reconnects (replaced in tests)
        """
        super().__init__(name, on_status)
        self.url = url
        self.api_key = api_key
        self.bbox = bbox
        self.policy = policy or ReconnectPolicy()
        self.open_timeout = open_timeout
        self._connect = connect
        self._sleep = sleep
        self._state = LinkState()
        self._transport: Optional[Any] = None
        self._failover_reason: Optional[str] = None
        self._malformed_messages = 0

    @property
    def state(self) -> LinkState:
        return self._state

    @property
    def failed_over(self) -> bool:
        return self._state.phase is LinkPhase.FAILED_OVER

    @property
    def reconnect_attempts(self) -> int:
        return self._state.attempts

    def subscription_message(self) -> dict[str, Any]:
        return {
            "APIKey": self.api_key,
            "BoundingBoxes": [self.bbox.to_subscription()],
            "FilterMessageTypes": [POSITION_REPORT],
        }

    def parse_message(self, raw: Any) -> Optional[RawVesselEvent]:
        """Parse one WebSocket frame. Malformed frames are dropped."""
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            self._malformed_messages += 1
            logger.warning(f"Dropping malformed AIS message: {e}")
            return None

        if not isinstance(data, dict):
            self._malformed_messages += 1
            logger.warning("Dropping AIS message that is not a JSON object")
            return None

        if "error" in data:
            logger.error(f"aisstream.io reported an error: {data['error']}")
            return None

        if data.get("MessageType") != POSITION_REPORT:
            return None

        return RawVesselEvent(source=SOURCE_AISSTREAM, payload=data)

    async def _dispatch(self, event: LinkEvent) -> list[Effect]:
        """Apply an event to the link state and execute the resulting effects."""
        self._state, effects = transition(self._state, event, self.policy)

        for effect in effects:
            if isinstance(effect, Notify):
                await self.on_status(effect.state, effect.detail)
            elif isinstance(effect, ScheduleReconnect):
                logger.info(
                    f"Scheduling reconnect attempt {effect.attempt}"
                    f"/{self.policy.max_attempts or 'unlimited'} in {effect.delay:.0f}s"
                )
            elif isinstance(effect, Failover):
                self._failover_reason = effect.reason
                logger.warning(f"Live feed failing over: {effect.reason}")
            elif isinstance(effect, CloseTransport) and self._transport is not None:
                await self._transport.close()

        return effects

    async def events(self) -> AsyncIterator[RawVesselEvent]:
        await self._dispatch(Start())

        while self._state.phase is LinkPhase.CONNECTING:
            had_traffic = False
            code = ABNORMAL_CLOSURE
            reason = ""

            logger.info(f"Connecting to {self.url}")
            try:
                async with self._connect(self.url, open_timeout=self.open_timeout) as ws:
                    self._transport = ws
                    await ws.send(json.dumps(self.subscription_message()))
                    logger.info(
                        f"Subscription sent for bounding box {self.bbox.to_subscription()}"
                    )
                    await self._dispatch(Subscribed())

                    async for raw in ws:
                        event = self.parse_message(raw)
                        if event is None:
                            continue
                        had_traffic = True
                        self._record_event()
                        yield event

                    code = ws.close_code or NORMAL_CLOSURE
            except websockets.ConnectionClosed as e:
                code = e.rcvd.code if e.rcvd is not None else ABNORMAL_CLOSURE
                reason = e.rcvd.reason if e.rcvd is not None else str(e)
                self._record_error()
            except (websockets.WebSocketException, OSError, asyncio.TimeoutError) as e:
                reason = str(e) or e.__class__.__name__
                logger.warning(f"aisstream.io connection failed: {reason}")
                self._record_error()
            finally:
                self._transport = None

            logger.info(f"aisstream.io connection closed: {code} {reason}".rstrip())
            effects = await self._dispatch(Closed(code, reason, had_traffic))

            for effect in effects:
                if isinstance(effect, ScheduleReconnect):
                    await self._sleep(effect.delay)
                    await self._dispatch(ReconnectDue())

    async def stop(self) -> None:
        await self._dispatch(Shutdown())
        await super().stop()

    async def health_check(self) -> bool:
        return self._state.phase is LinkPhase.SUBSCRIBED

    def get_source_info(self) -> SourceInfo:
        return SourceInfo(
            name=self.name,
            source_type=self.source_type,
            is_active=self._state.phase is LinkPhase.SUBSCRIBED,
            last_event_at=self._last_event_at,
            error_count=self._error_count,
            total_events=self._total_events,
            extra_info={
                "phase": self._state.phase.value,
                "reconnect_attempts": self._state.attempts,
                "abnormal_streak": self._state.abnormal_streak,
                "last_close_code": self._state.last_close_code,
                "malformed_messages": self._malformed_messages,
                "failover_reason": self._failover_reason,
            },
        )
