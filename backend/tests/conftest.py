"""Shared fixtures for relay tests."""

import asyncio
from typing import Any

import pytest

from straitwatch.ais.models import BoundingBox, RawVesselEvent
from straitwatch.config import Settings
from straitwatch.relay.broadcaster import ChannelClosed


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingChannel:
    """Consumer that keeps every message it receives."""

    def __init__(self) -> None:
        self.messages: list[dict[str, Any]] = []

    async def send(self, message: dict[str, Any]) -> None:
        self.messages.append(message)

    def of_type(self, message_type: str) -> list[dict[str, Any]]:
        return [m for m in self.messages if m["type"] == message_type]


class BlockingChannel(RecordingChannel):
    """Consumer whose sends wait until ``release`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.release = asyncio.Event()

    async def send(self, message: dict[str, Any]) -> None:
        await self.release.wait()
        await super().send(message)


class FailingChannel:
    """Consumer whose transport is gone after ``fail_after`` sends."""

    def __init__(self, fail_after: int = 0):
        self.fail_after = fail_after
        self.sent = 0

    async def send(self, message: dict[str, Any]) -> None:
        if self.sent >= self.fail_after:
            raise ChannelClosed("connection reset")
        self.sent += 1


def position_report(
    mmsi: Any = 271001001,
    latitude: float = 41.03,
    longitude: float = 29.01,
    vessel_type: Any = 70,
    name: str = "BOSPHORUS CARGO",
    true_heading: Any = 15,
    sog: float = 8.5,
) -> dict[str, Any]:
    """aisstream.io PositionReport message."""
    return {
        "MessageType": "PositionReport",
        "MetaData": {
            "MMSI": mmsi,
            "ShipName": name,
            "latitude": latitude,
            "longitude": longitude,
            "VesselType": vessel_type,
        },
        "Message": {
            "PositionReport": {
                "UserID": mmsi,
                "Latitude": latitude,
                "Longitude": longitude,
                "TrueHeading": true_heading,
                "Cog": 14.0,
                "Sog": sog,
            }
        },
    }


def live_event(**kwargs: Any) -> RawVesselEvent:
    return RawVesselEvent(source="aisstream", payload=position_report(**kwargs))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def bbox() -> BoundingBox:
    return BoundingBox(min_lat=40.85, max_lat=41.25, min_lon=28.75, max_lon=29.30)


@pytest.fixture
def channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        ais_source="synthetic",
        simulation_seed=7,
        railway_environment=None,
        environment="development",
    )
