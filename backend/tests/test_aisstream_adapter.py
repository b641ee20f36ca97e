"""Tests for the aisstream.io live feed adapter.

The WebSocket transport is replaced by in-memory fakes; reconnect delays
are recorded instead of slept.
"""

import json
from typing import Any, Optional

import pytest
import websockets
from websockets.frames import Close

from conftest import position_report
from straitwatch.ais.adapters.aisstream import LiveFeedAdapter
from straitwatch.ais.adapters.link_state import LinkPhase, ReconnectPolicy


class FakeWebSocket:
    """One WebSocket session delivering canned frames."""

    def __init__(
        self,
        frames: list[Any],
        error: Optional[Exception] = None,
        close_code: Optional[int] = 1000,
    ):
        self.frames = frames
        self.error = error
        self.close_code = close_code
        self.sent: list[dict[str, Any]] = []
        self.closed = False

    async def send(self, data: str) -> None:
        self.sent.append(json.loads(data))

    async def close(self) -> None:
        self.closed = True

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for frame in self.frames:
            if self.closed:
                return
            yield frame
        if self.error is not None:
            raise self.error

    async def __aenter__(self) -> "FakeWebSocket":
        return self

    async def __aexit__(self, *exc_info) -> bool:
        return False


class FailedHandshake:
    """Session whose opening handshake fails."""

    def __init__(self, error: Exception):
        self.error = error

    async def __aenter__(self):
        raise self.error

    async def __aexit__(self, *exc_info) -> bool:
        return False


class FakeConnect:
    """Stands in for ``websockets.connect``, handing out sessions in order."""

    def __init__(self, sessions: list[Any]):
        self.sessions = list(sessions)
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def __call__(self, url: str, **kwargs: Any) -> Any:
        self.calls.append((url, kwargs))
        return self.sessions.pop(0)


class StatusLog:
    def __init__(self) -> None:
        self.entries: list[tuple[str, str]] = []

    async def __call__(self, state: str, detail: str) -> None:
        self.entries.append((state, detail))

    @property
    def states(self) -> list[str]:
        return [state for state, _ in self.entries]


class SleepLog:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def make_adapter(bbox, sessions, policy=None):
    connect = FakeConnect(sessions)
    status = StatusLog()
    sleep = SleepLog()
    adapter = LiveFeedAdapter(
        url="wss://stream.example/v0/stream",
        api_key="secret",
        bbox=bbox,
        policy=policy or ReconnectPolicy(max_attempts=10, failover_after=3),
        on_status=status,
        connect=connect,
        sleep=sleep,
    )
    return adapter, connect, status, sleep


async def collect(adapter) -> list:
    return [event async for event in adapter.events()]


SINGLE_SESSION = ReconnectPolicy(max_attempts=0, failover_after=None)


class TestSubscription:
    """Test the subscription handshake."""

    @pytest.mark.asyncio
    async def test_subscription_sent_after_connect(self, bbox):
        ws = FakeWebSocket([])
        adapter, connect, status, _ = make_adapter(bbox, [ws], policy=SINGLE_SESSION)

        await collect(adapter)

        assert connect.calls[0][0] == "wss://stream.example/v0/stream"
        assert connect.calls[0][1]["open_timeout"] == 10.0
        assert ws.sent == [
            {
                "APIKey": "secret",
                "BoundingBoxes": [[[40.85, 28.75], [41.25, 29.30]]],
                "FilterMessageTypes": ["PositionReport"],
            }
        ]
        assert status.states[:2] == ["connecting", "connected"]


class TestMessages:
    """Test frame parsing."""

    @pytest.mark.asyncio
    async def test_only_position_reports_yielded(self, bbox):
        frames = [
            json.dumps(position_report()),
            "{not json",
            json.dumps(["a", "list"]),
            json.dumps({"MessageType": "ShipStaticData"}),
            json.dumps({"error": "Api Key Is Not Valid"}),
            json.dumps(position_report(mmsi=271001002)),
        ]
        adapter, _, _, _ = make_adapter(bbox, [FakeWebSocket(frames)], policy=SINGLE_SESSION)

        events = await collect(adapter)

        assert [e.payload["MetaData"]["MMSI"] for e in events] == [271001001, 271001002]
        assert all(e.source == "aisstream" for e in events)
        info = adapter.get_source_info()
        assert info.total_events == 2
        assert info.extra_info["malformed_messages"] == 2


class TestReconnect:
    """Test reconnect scheduling and failover."""

    @pytest.mark.asyncio
    async def test_three_abnormal_closures_end_the_feed(self, bbox):
        sessions = [FailedHandshake(OSError("connection refused")) for _ in range(3)]
        adapter, connect, status, sleep = make_adapter(bbox, sessions)

        events = await collect(adapter)

        assert events == []
        assert len(connect.calls) == 3
        assert sleep.delays == [5.0, 10.0]
        assert adapter.failed_over
        assert status.states.count("disconnected") == 3
        assert status.entries[-1] == ("disconnected", "AIS connection closed (1006)")
        assert adapter.get_source_info().extra_info["failover_reason"] == (
            "3 consecutive abnormal closures"
        )

    @pytest.mark.asyncio
    async def test_connection_closed_without_frame_is_abnormal(self, bbox):
        sessions = [
            FakeWebSocket([], error=websockets.ConnectionClosed(None, None))
            for _ in range(3)
        ]
        adapter, _, _, _ = make_adapter(bbox, sessions)

        await collect(adapter)

        assert adapter.failed_over
        assert adapter.state.last_close_code == 1006

    @pytest.mark.asyncio
    async def test_close_code_from_server_frame(self, bbox):
        error = websockets.ConnectionClosed(Close(1008, "policy violation"), None)
        adapter, _, status, _ = make_adapter(
            bbox, [FakeWebSocket([], error=error)], policy=SINGLE_SESSION
        )

        await collect(adapter)

        assert adapter.state.last_close_code == 1008
        assert ("disconnected", "AIS connection closed (1008)") in status.entries

    @pytest.mark.asyncio
    async def test_traffic_between_failures_resets_streak(self, bbox):
        report = json.dumps(position_report())
        sessions = [
            FailedHandshake(OSError("refused")),
            FailedHandshake(OSError("refused")),
            FakeWebSocket([report], error=websockets.ConnectionClosed(None, None)),
            FailedHandshake(OSError("refused")),
            FailedHandshake(OSError("refused")),
        ]
        adapter, connect, _, sleep = make_adapter(bbox, sessions)

        events = await collect(adapter)

        assert len(events) == 1
        assert len(connect.calls) == 5
        assert adapter.failed_over
        # Attempts restart after the successful subscription
        assert sleep.delays == [5.0, 10.0, 5.0, 10.0]


class TestStop:
    """Test graceful shutdown."""

    @pytest.mark.asyncio
    async def test_stop_closes_transport_without_reconnect(self, bbox):
        frames = [json.dumps(position_report()), json.dumps(position_report(mmsi=2))]
        ws = FakeWebSocket(frames)
        adapter, connect, status, sleep = make_adapter(bbox, [ws])
        await adapter.start()

        received = []
        async for event in adapter.events():
            received.append(event)
            await adapter.stop()

        assert len(received) == 1
        assert ws.closed
        assert adapter.state.phase is LinkPhase.CLOSING
        assert len(connect.calls) == 1
        assert sleep.delays == []
        assert "disconnected" not in status.states
        assert not adapter.is_started
