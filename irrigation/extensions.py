"""Flask Extension Instances and Initialisation."""

import logging
import os

from flask import Flask
from flask_socketio import SocketIO


def _socketio_transports() -> list[str]:
    """Return allowed Engine.IO transports.

    Override with `IRRIGATION_SOCKETIO_TRANSPORTS`, e.g. `polling,websocket`.
    """
    raw = os.getenv("IRRIGATION_SOCKETIO_TRANSPORTS")
    if raw:
        transports = [t.strip() for t in raw.split(",") if t.strip()]
        if transports:
            return transports

    return ["polling", "websocket"]


# Threading mode: paho and the interval worker run on plain threads
socketio = SocketIO(
    async_mode="threading",
    cors_allowed_origins=[],
    logger=False,
    engineio_logger=False,
    ping_timeout=60,
    ping_interval=25,
    transports=_socketio_transports(),
)


def init_extensions(app: Flask, cors_origins: str) -> None:
    """Initialise Flask extension objects."""
    origins = cors_origins if isinstance(cors_origins, str) else "*"

    try:
        socketio.init_app(app, cors_allowed_origins=origins, logger=logging.getLogger("socketio"), engineio_logger=False)
        logging.info("Socket.IO initialized with CORS origins: %s", origins)
    except Exception as e:
        logging.error("Failed to initialize Socket.IO: %s", e, exc_info=True)
        raise
