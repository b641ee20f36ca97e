"""Tests for source selection at startup."""

import random

import pytest

from straitwatch.ais.adapters.aisstream import LiveFeedAdapter
from straitwatch.ais.adapters.bridge import BridgeAdapter
from straitwatch.ais.adapters.emulator import EmulatorAdapter
from straitwatch.ais.startup import (
    create_ingestion_manager,
    load_seed_fleet,
    reconnect_policy_from_settings,
    select_source_type,
)
from straitwatch.config import Settings


def make_settings(**overrides) -> Settings:
    values = dict(
        _env_file=None,
        ais_source="auto",
        environment="development",
        railway_environment=None,
        aisstream_ws_url="wss://stream.aisstream.io/v0/stream",
        aisstream_api_key="secret",
    )
    values.update(overrides)
    return Settings(**values)


class TestSelectSourceType:
    """Test the auto source decision."""

    def test_live_with_credentials(self):
        assert select_source_type(make_settings()) == "live"

    def test_bridge_on_cloud_platform(self):
        assert select_source_type(make_settings(railway_environment="production")) == "bridge"

    def test_bridge_in_production(self):
        assert select_source_type(make_settings(environment="production")) == "bridge"

    def test_bridge_without_credentials(self):
        assert select_source_type(make_settings(aisstream_api_key="")) == "bridge"

    @pytest.mark.parametrize("source", ["live", "bridge", "synthetic"])
    def test_explicit_source_wins(self, source):
        settings = make_settings(ais_source=source, environment="production")
        assert select_source_type(settings) == source


class TestCreateIngestionManager:
    """Test the source chains built from settings."""

    def test_live_then_emulator(self):
        manager = create_ingestion_manager(make_settings(), rng=random.Random(1))
        assert manager.adapter_count == 2
        assert isinstance(manager.adapters[0], LiveFeedAdapter)
        assert isinstance(manager.adapters[1], EmulatorAdapter)

    def test_bridge_then_emulator(self):
        manager = create_ingestion_manager(make_settings(ais_source="bridge"))
        assert isinstance(manager.adapters[0], BridgeAdapter)
        assert manager.adapters[0].base_url == "http://localhost:3002"
        assert isinstance(manager.adapters[1], EmulatorAdapter)

    def test_synthetic_only(self, settings):
        manager = create_ingestion_manager(settings)
        assert manager.adapter_count == 1
        assert isinstance(manager.active_adapter, EmulatorAdapter)

    def test_reconnect_policy(self):
        policy = reconnect_policy_from_settings(
            make_settings(max_reconnect_attempts=4, failover_after_abnormal_closures=2)
        )
        assert policy.max_attempts == 4
        assert policy.failover_after == 2
        assert policy.base_interval == 5.0
        assert policy.max_interval == 30.0


class TestSeedFleet:
    """Test fleet file fallback."""

    def test_default_without_file(self, settings):
        assert load_seed_fleet(settings).name == "istanbul_strait"

    def test_broken_file_falls_back(self, tmp_path):
        path = tmp_path / "fleet.yaml"
        path.write_text("vessels: []\n")
        fleet = load_seed_fleet(make_settings(simulation_fleet_file=str(path)))
        assert fleet.name == "istanbul_strait"

    def test_malformed_entries_fall_back(self, tmp_path):
        path = tmp_path / "fleet.yaml"
        path.write_text(
            "vessels:\n"
            "  - just a string\n"
            "  - mmsi: 271000001\n"
            "    name: BAD\n"
            "    type: cargo\n"
            "    start_position: [north, east]\n"
        )
        fleet = load_seed_fleet(make_settings(simulation_fleet_file=str(path)))
        assert fleet.name == "istanbul_strait"
        assert fleet.vessel_count == 5
