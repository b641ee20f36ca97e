"""Local AIS data bridge.

Runs the relay in filtering mode on a machine whose network aisstream.io
accepts, and serves the captured vessels over HTTP for a relay deployed on a
restricted network (see ``BridgeAdapter``). Limits are tuned for small
hosting plans: few vessels, throttled updates, no simulated fallback.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from straitwatch.ais.adapters.link_state import ReconnectPolicy
from straitwatch.ais.manager import IngestionManager
from straitwatch.ais.startup import create_live_adapter
from straitwatch.config import Settings, get_settings
from straitwatch.relay.relay import VesselRelay

logger = logging.getLogger(__name__)

DEFAULT_STREAM_URL = "wss://stream.aisstream.io/v0/stream"
BRIDGE_RECONNECT_SECONDS = 5.0


def create_bridge_relay(settings: Settings) -> VesselRelay:
    return VesselRelay(
        bbox=settings.bounding_box,
        max_vessels=settings.bridge_max_vessels,
        throttle_seconds=settings.update_throttle_seconds,
        filter_mode="exclude",
        eviction_interval_seconds=settings.bridge_eviction_seconds,
        stale_after_seconds=settings.bridge_eviction_seconds,
    )


def create_bridge_manager(relay: VesselRelay, settings: Settings) -> IngestionManager:
    """Live feed only, reconnecting every few seconds forever."""
    if not settings.aisstream_api_key:
        logger.error("AISSTREAM_API_KEY is not set, aisstream.io will reject the bridge")

    stream_settings = settings.model_copy(
        update={"aisstream_ws_url": settings.aisstream_ws_url or DEFAULT_STREAM_URL}
    )
    policy = ReconnectPolicy(
        base_interval=BRIDGE_RECONNECT_SECONDS,
        max_interval=BRIDGE_RECONNECT_SECONDS,
        max_attempts=None,
        failover_after=None,
    )
    adapter = create_live_adapter(stream_settings, on_status=relay.set_status, policy=policy)
    return IngestionManager(primary_adapter=adapter)


def create_bridge_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the bridge application serving ``/ais/ships`` and ``/ais/status``."""
    settings = settings or get_settings()
    relay = create_bridge_relay(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Starting AIS data bridge")
        await relay.start(create_bridge_manager(relay, settings))
        yield
        logger.info("Stopping AIS data bridge")
        await relay.stop()

    app = FastAPI(title="Istanbul Strait AIS Data Bridge", lifespan=lifespan)
    app.state.relay = relay
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/ais/ships")
    async def get_ships() -> dict[str, Any]:
        ships = [record.to_dict() for record in relay.store.all()]
        return {
            "ships": ships,
            "count": len(ships),
            "status": relay.status_state,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/ais/status")
    async def get_status() -> dict[str, Any]:
        return {
            "status": relay.status_state,
            "ship_count": relay.store.size(),
            "max_ships": relay.store.max_vessels,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app
