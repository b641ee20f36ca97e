"""Socket.IO module for real-time WebSocket communication."""

from straitwatch.socketio.server import (
    EVENT_NAMES,
    SocketIOChannel,
    create_socketio_server,
)

__all__ = [
    "EVENT_NAMES",
    "SocketIOChannel",
    "create_socketio_server",
]
