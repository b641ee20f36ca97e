"""Ingestion source selection for application startup.

Provides:
- Source chain selection based on configuration and environment
- Emulator seed fleet loading
"""

import logging
import random
from typing import Optional

from straitwatch.ais.adapters.aisstream import LiveFeedAdapter
from straitwatch.ais.adapters.base import IngestionAdapter, StatusCallback
from straitwatch.ais.adapters.bridge import BridgeAdapter
from straitwatch.ais.adapters.emulator import EmulatorAdapter
from straitwatch.ais.adapters.link_state import ReconnectPolicy
from straitwatch.ais.manager import IngestionManager
from straitwatch.config import Settings
from straitwatch.emulator.engine import TrafficEmulator
from straitwatch.emulator.scenarios import (
    Fleet,
    FleetLoadError,
    FleetValidationError,
    default_fleet,
    load_fleet,
)

logger = logging.getLogger(__name__)


def reconnect_policy_from_settings(settings: Settings) -> ReconnectPolicy:
    return ReconnectPolicy(
        base_interval=settings.reconnect_interval_seconds,
        max_interval=settings.reconnect_max_delay_seconds,
        max_attempts=settings.max_reconnect_attempts,
        failover_after=settings.failover_after_abnormal_closures,
    )


def load_seed_fleet(settings: Settings) -> Fleet:
    """Load the configured fleet file, falling back to the built-in fleet."""
    if not settings.simulation_fleet_file:
        return default_fleet()

    try:
        return load_fleet(settings.simulation_fleet_file)
    except (FleetLoadError, FleetValidationError) as e:
        logger.error(f"Failed to load fleet: {e}")
        logger.info("Falling back to the built-in Istanbul Strait fleet")
        return default_fleet()


def create_live_adapter(
    settings: Settings,
    on_status: Optional[StatusCallback] = None,
    policy: Optional[ReconnectPolicy] = None,
) -> LiveFeedAdapter:
    return LiveFeedAdapter(
        url=settings.aisstream_ws_url,
        api_key=settings.aisstream_api_key,
        bbox=settings.bounding_box,
        policy=policy or reconnect_policy_from_settings(settings),
        on_status=on_status,
        open_timeout=settings.connect_timeout_seconds,
    )


def create_emulator_adapter(
    settings: Settings,
    on_status: Optional[StatusCallback] = None,
    rng: Optional[random.Random] = None,
) -> EmulatorAdapter:
    emulator = TrafficEmulator(
        bbox=settings.bounding_box,
        fleet=load_seed_fleet(settings),
        tick_seconds=settings.simulation_tick_seconds,
        rng=rng or random.Random(settings.simulation_seed),
    )
    return EmulatorAdapter(emulator, on_status=on_status)


def create_bridge_adapter(
    settings: Settings,
    on_status: Optional[StatusCallback] = None,
) -> BridgeAdapter:
    return BridgeAdapter(
        base_url=settings.local_ais_bridge_url,
        poll_interval=settings.bridge_poll_interval_seconds,
        on_status=on_status,
    )


def select_source_type(settings: Settings) -> str:
    """Pick the preferred source once, at startup.

    Returns:
        "live", "bridge" or "synthetic"
    """
    if settings.ais_source != "auto":
        return settings.ais_source

    if settings.is_restricted_network:
        logger.info(
            "Detected cloud environment - aisstream.io blocks cloud IPs, "
            "skipping the live feed"
        )
        return "bridge"

    if not settings.has_live_feed_credentials:
        logger.info("Missing aisstream.io URL or API key, checking for local data bridge")
        return "bridge"

    return "live"


def create_ingestion_manager(
    settings: Settings,
    on_status: Optional[StatusCallback] = None,
    rng: Optional[random.Random] = None,
) -> IngestionManager:
    """Build the source chain: preferred source, then the emulator."""
    source_type = select_source_type(settings)
    emulator = create_emulator_adapter(settings, on_status, rng)

    primary: Optional[IngestionAdapter]
    if source_type == "live":
        primary = create_live_adapter(settings, on_status)
    elif source_type == "bridge":
        primary = create_bridge_adapter(settings, on_status)
    else:
        primary = None

    if primary is None:
        manager = IngestionManager(primary_adapter=emulator)
    else:
        manager = IngestionManager(primary_adapter=primary, secondary_adapter=emulator)

    logger.info(f"Ingestion sources: {manager}")
    return manager
