"""
WebSocket Emitters
==================

Purpose:
    Centralized Socket.IO emitter service for the dashboard fan-out.

Features:
- Broadcast events to every connected client.
- Reply to a single client (command acknowledgements, handshake snapshot).

Usage:
    Instantiate EmitterService with the SocketIO instance and call
    broadcast() or emit_to_client().
"""

import logging
from typing import Any

from flask_socketio import SocketIO

from irrigation.enums.events import WebSocketEvent

logger = logging.getLogger("emitters")

SOCKETIO_NAMESPACE_DEFAULT = "/"


def _event_name(event: WebSocketEvent | str) -> str:
    return event.value if isinstance(event, WebSocketEvent) else str(event)


class EmitterService:
    """
    Centralized WebSocket Emitter Service.

    Attributes:
        sio: The Socket.IO SocketIO instance for emitting events.
    """

    def __init__(self, sio: SocketIO, namespace: str = SOCKETIO_NAMESPACE_DEFAULT):
        self.sio = sio
        self.namespace = namespace

    def emit(
        self,
        event: WebSocketEvent | str,
        payload: Any,
        room: str | None = None,
    ):
        """
        Emit a Socket.IO event.

        Args:
            event: Event name (e.g., "sensor_update").
            payload: JSON serializable data to send.
            room (Optional[str]): Socket.IO room or client sid. Broadcasts if None.
        """
        name = _event_name(event)
        try:
            logger.debug("Emitting event='%s' to namespace='%s' room='%s'", name, self.namespace, room or "broadcast")
            self.sio.emit(name, payload, to=room, namespace=self.namespace)
        except Exception as e:
            logger.exception("[Emitter] Failed to emit event '%s' to room '%s': %s", name, room, e)

    def broadcast(self, event: WebSocketEvent | str, payload: Any):
        """Send an event to every connected client."""
        self.emit(event, payload)

    def emit_to_client(self, sid: str, event: WebSocketEvent | str, payload: Any):
        """
        Send an event to one client only.

        Every Socket.IO client is joined to a room named after its sid, so the
        reply never reaches other dashboards.
        """
        self.emit(event, payload, room=sid)
