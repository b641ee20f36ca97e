"""Main FastAPI application entry point.

Initializes:
- FastAPI application with CORS middleware
- Vessel relay (vessel table, fan-out, eviction)
- Ingestion source chain (live feed, local bridge, emulator)
- Socket.IO server
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from straitwatch.ais.startup import create_ingestion_manager
from straitwatch.api.routes import router as api_router
from straitwatch.api.routes import stream_vessels
from straitwatch.config import Settings, get_settings
from straitwatch.relay.relay import VesselRelay
from straitwatch.socketio import create_socketio_server

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the relay application.

    Args:
        settings: Settings to use (cached environment settings by default)

    Returns:
        FastAPI application with the relay on ``app.state.relay``
    """
    settings = settings or get_settings()
    relay = VesselRelay.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan manager for startup and shutdown events."""
        logger.info("=" * 60)
        logger.info(f"Starting {settings.app_name}")
        logger.info("=" * 60)
        logger.info(f"Environment: {settings.environment}")
        logger.info(f"Bounding box: {settings.bounding_box.to_dict()}")

        manager = create_ingestion_manager(settings, on_status=relay.set_status)
        await relay.start(manager)

        logger.info(f"{settings.app_name} startup complete")

        yield

        logger.info("=" * 60)
        logger.info(f"Shutting down {settings.app_name}")
        logger.info("=" * 60)

        await relay.stop()

        logger.info("Shutdown complete")

    app = FastAPI(
        title=settings.app_name,
        description="Live vessel positions for the Istanbul Strait, relayed from "
        "aisstream.io with a simulated fallback.",
        version=VERSION,
        lifespan=lifespan,
        docs_url="/docs" if settings.environment != "production" else None,
        redoc_url="/redoc" if settings.environment != "production" else None,
    )
    app.state.relay = relay
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix="/api/v1")

    # Plain WebSocket clients connect to the root or /ws
    app.add_api_websocket_route("/", stream_vessels)
    app.add_api_websocket_route("/ws", stream_vessels)

    @app.get("/")
    async def root() -> dict[str, Any]:
        """Root endpoint."""
        return {
            "service": settings.app_name,
            "version": VERSION,
            "status": "running",
            "endpoints": {
                "websocket": "/ws",
                "socketio": "/socket.io",
                "ships": "/api/v1/ships",
                "stats": "/stats",
                "health": "/health",
            },
        }

    @app.get("/health")
    async def health_check() -> dict[str, Any]:
        """Health check endpoint for container orchestration."""
        stats = relay.get_stats()
        return {
            "status": "healthy" if stats["connected"] else "unhealthy",
            "service": "straitwatch",
            "environment": settings.environment,
            **stats,
        }

    @app.get("/stats")
    async def stats() -> dict[str, Any]:
        return relay.get_stats()

    @app.get("/status")
    async def system_status() -> dict[str, Any]:
        """Detailed system status endpoint."""
        return {
            "service": settings.app_name,
            "version": VERSION,
            "environment": settings.environment,
            "relay": relay.get_statistics(),
        }

    return app


def create_asgi_app(settings: Optional[Settings] = None) -> socketio.ASGIApp:
    """Wrap the FastAPI app with Socket.IO for WebSocket support."""
    settings = settings or get_settings()
    configure_logging(settings)

    fastapi_app = create_app(settings)
    sio = create_socketio_server(
        fastapi_app.state.relay, cors_allowed_origins=settings.cors_origins
    )
    return socketio.ASGIApp(sio, fastapi_app)
