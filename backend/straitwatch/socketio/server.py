"""Socket.IO server configuration and event handlers.

Provides:
- AsyncServer bound to one relay
- Connection/disconnection handlers that subscribe clients to the relay
- A consumer channel that emits relay messages to a single client
"""

import logging
from typing import Any

import socketio

from straitwatch.relay.messages import REMOVAL, STATUS, UPDATE
from straitwatch.relay.relay import VesselRelay

logger = logging.getLogger(__name__)

EVENT_NAMES = {
    UPDATE: "vessel:update",
    REMOVAL: "vessel:remove",
    STATUS: "status:update",
}


class SocketIOChannel:
    """Delivers relay messages to one Socket.IO client."""

    def __init__(self, sio: socketio.AsyncServer, sid: str):
        self.sio = sio
        self.sid = sid

    async def send(self, message: dict[str, Any]) -> None:
        await self.sio.emit(EVENT_NAMES[message["type"]], message, to=self.sid)

    def __repr__(self) -> str:
        return f"<SocketIOChannel(sid={self.sid})>"


def create_socketio_server(
    relay: VesselRelay, cors_allowed_origins: Any = "*"
) -> socketio.AsyncServer:
    """Create a Socket.IO server whose clients are relay consumers.

    Args:
        relay: Relay the clients subscribe to
        cors_allowed_origins: Allowed origins for the Socket.IO handshake

    Returns:
        The Socket.IO server instance
    """
    sio = socketio.AsyncServer(
        async_mode="asgi",
        # Snapshot is emitted from the connect handler
        always_connect=True,
        cors_allowed_origins=cors_allowed_origins,
        logger=False,
        engineio_logger=False,
    )
    channels: dict[str, SocketIOChannel] = {}

    @sio.event
    async def connect(sid: str, environ: dict) -> None:
        """Handle client connection."""
        logger.info(f"Socket.IO client connected: {sid}")
        channel = SocketIOChannel(sio, sid)
        # Registered before the snapshot so a disconnect during it is seen
        channels[sid] = channel
        subscribed = await relay.subscribe(channel)

        if channels.get(sid) is not channel:
            logger.info(f"Socket.IO client {sid} left during its snapshot")
            relay.unsubscribe(channel)
        elif not subscribed:
            channels.pop(sid, None)

    @sio.event
    async def disconnect(sid: str, reason: Any = None) -> None:
        """Handle client disconnection."""
        logger.info(f"Socket.IO client disconnected: {sid}")
        channel = channels.pop(sid, None)
        if channel is not None:
            relay.unsubscribe(channel)

    logger.info("Socket.IO server initialized")
    return sio
