"""
Enums Module
============

Enumeration types shared by the bridge, the decision engine and the
Socket.IO layer.
"""

from irrigation.enums.events import (
    ClientCommand,
    DeviceAction,
    DeviceStateField,
    MessageKind,
    WebSocketEvent,
)

__all__ = [
    "ClientCommand",
    "DeviceAction",
    "DeviceStateField",
    "MessageKind",
    "WebSocketEvent",
]
