"""Tests for consumer fan-out."""

import asyncio

import pytest

from conftest import BlockingChannel, FailingChannel, RecordingChannel
from straitwatch.ais.models import VesselRecord
from straitwatch.relay.broadcaster import Broadcaster


def make_record(vessel_id: str) -> VesselRecord:
    return VesselRecord(id=vessel_id, latitude=41.0, longitude=29.0, last_update=0)


class TestAddConsumer:
    """Test the initial snapshot sent to new consumers."""

    @pytest.mark.asyncio
    async def test_status_then_snapshot(self, channel):
        broadcaster = Broadcaster()
        records = [make_record("a"), make_record("b")]

        assert await broadcaster.add_consumer(channel, records, "connected", "ok")

        assert [m["type"] for m in channel.messages] == ["status", "update", "update"]
        assert channel.messages[0]["state"] == "connected"
        assert channel.messages[0]["active_count"] == 2
        assert {m["record"]["id"] for m in channel.of_type("update")} == {"a", "b"}
        assert channel in broadcaster

    @pytest.mark.asyncio
    async def test_failed_snapshot_not_registered(self):
        broadcaster = Broadcaster()
        failing = FailingChannel(fail_after=1)

        assert not await broadcaster.add_consumer(
            failing, [make_record("a")], "connected", "ok"
        )
        assert broadcaster.consumer_count == 0

    @pytest.mark.asyncio
    async def test_snapshot_taken_when_consumer_joins(self, channel):
        broadcaster = Broadcaster()
        records = [make_record("a")]

        await broadcaster.add_consumer(channel, lambda: records, "demo", "sim")

        assert channel.of_type("update")[0]["record"]["id"] == "a"

    @pytest.mark.asyncio
    async def test_broadcast_during_snapshot_delivered_after_it(self):
        broadcaster = Broadcaster()
        joining = BlockingChannel()

        join = asyncio.create_task(
            broadcaster.add_consumer(joining, [make_record("a")], "demo", "sim")
        )
        await asyncio.sleep(0)
        removal = asyncio.create_task(broadcaster.publish_removal("a"))
        await asyncio.sleep(0)
        joining.release.set()

        assert await join
        assert await removal == 1
        assert [m["type"] for m in joining.messages] == ["status", "update", "removal"]

    @pytest.mark.asyncio
    async def test_remove_is_idempotent(self, channel):
        broadcaster = Broadcaster()
        await broadcaster.add_consumer(channel, [], "demo", "sim")
        broadcaster.remove_consumer(channel)
        broadcaster.remove_consumer(channel)
        assert broadcaster.consumer_count == 0


class TestPublish:
    """Test delivery to registered consumers."""

    @pytest.mark.asyncio
    async def test_update_reaches_every_consumer(self):
        broadcaster = Broadcaster()
        first, second = RecordingChannel(), RecordingChannel()
        await broadcaster.add_consumer(first, [], "demo", "sim")
        await broadcaster.add_consumer(second, [], "demo", "sim")

        delivered = await broadcaster.publish_update(make_record("a"))

        assert delivered == 2
        assert first.of_type("update")[0]["record"]["id"] == "a"
        assert second.of_type("update")[0]["record"]["id"] == "a"

    @pytest.mark.asyncio
    async def test_failing_consumer_dropped(self, channel):
        broadcaster = Broadcaster()
        failing = FailingChannel(fail_after=1)
        await broadcaster.add_consumer(failing, [], "demo", "sim")
        await broadcaster.add_consumer(channel, [], "demo", "sim")

        delivered = await broadcaster.publish_removal("a")

        assert delivered == 1
        assert failing not in broadcaster
        assert channel.of_type("removal") == [{"type": "removal", "id": "a"}]
        assert broadcaster.get_statistics()["consumers_dropped"] == 1

        # Not retried on later messages
        await broadcaster.publish_removal("b")
        assert failing.sent == 1

    @pytest.mark.asyncio
    async def test_status_message_shape(self, channel):
        broadcaster = Broadcaster()
        await broadcaster.add_consumer(channel, [], "connecting", "Connecting")

        await broadcaster.publish_status("disconnected", "AIS connection closed (1006)", 4)

        status = channel.of_type("status")[-1]
        assert status["state"] == "disconnected"
        assert status["detail"] == "AIS connection closed (1006)"
        assert status["active_count"] == 4
        assert "timestamp" in status

    @pytest.mark.asyncio
    async def test_no_consumers(self):
        broadcaster = Broadcaster()
        assert await broadcaster.publish_update(make_record("a")) == 0
