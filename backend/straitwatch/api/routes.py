"""API routes for the vessel relay.

Read-only snapshots over HTTP and a raw WebSocket feed of relay messages.
"""

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request, WebSocket, WebSocketDisconnect

from straitwatch.relay.broadcaster import ChannelClosed
from straitwatch.relay.relay import VesselRelay

logger = logging.getLogger(__name__)

router = APIRouter()


class WebSocketChannel:
    """Delivers relay messages to one WebSocket client as JSON text frames."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket

    async def send(self, message: dict[str, Any]) -> None:
        try:
            await self.websocket.send_json(message)
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            raise ChannelClosed(str(e) or "WebSocket closed") from e


def get_relay(request: Request) -> VesselRelay:
    relay = getattr(request.app.state, "relay", None)
    if relay is None:
        raise HTTPException(status_code=503, detail="Relay not initialized")
    return relay


@router.get("/ships", tags=["Vessels"])
async def get_ships(request: Request) -> dict[str, Any]:
    """Get all currently tracked vessels with ingestion status.

    Returns:
        Snapshot with vessels, status, mode and consumer count
    """
    return get_relay(request).snapshot()


@router.get("/ships/{vessel_id}", tags=["Vessels"])
async def get_ship(vessel_id: str, request: Request) -> dict[str, Any]:
    """Get one tracked vessel by MMSI."""
    record = get_relay(request).store.get(vessel_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Vessel not tracked: {vessel_id}")
    return record.to_dict()


@router.get("/sources", tags=["AIS Sources"])
async def get_sources(request: Request) -> dict[str, Any]:
    """Get status of the ingestion source chain."""
    relay = get_relay(request)
    if relay.ingestion is None:
        raise HTTPException(status_code=503, detail="Ingestion not started")
    return relay.ingestion.get_statistics()


async def stream_vessels(websocket: WebSocket) -> None:
    """Push relay messages to a WebSocket client until it disconnects."""
    relay: VesselRelay = websocket.app.state.relay
    await websocket.accept()

    channel = WebSocketChannel(websocket)
    if not await relay.subscribe(channel):
        return

    try:
        while True:
            # Client messages are ignored; receiving detects the disconnect
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        relay.unsubscribe(channel)
