"""
Socket.IO Event Handlers
========================

Dashboard handlers on the default namespace.

Usage:
    Import this module after socketio.init_app() to register all handlers.

    from irrigation.socketio import register_handlers
    register_handlers()
"""

import logging

logger = logging.getLogger(__name__)


def register_handlers():
    """
    Register all Socket.IO event handlers.

    This function must be called AFTER socketio.init_app().
    """
    # Import handlers to trigger @socketio.on() decorator registration
    from . import dashboard_handlers  # noqa: F401

    logger.info("Socket.IO handlers registered (dashboard)")
