"""irrigation.socketio.dashboard_handlers

Client-facing Socket.IO events. Handlers only unpack the request and hand it
to the transport bridge, which owns validation, publishing and the
``command_ack`` reply.
"""

import logging

from flask import current_app, request

from irrigation.enums.events import ClientCommand, WebSocketEvent
from irrigation.extensions import socketio
from irrigation.schemas.events import CommandAckPayload

logger = logging.getLogger(__name__)


def _bridge():
    return current_app.config["CONTAINER"].bridge


def _reject_payload(command: ClientCommand, data) -> None:
    logger.warning("Client %s sent invalid %s payload: %r", request.sid, command.value, data)
    ack = CommandAckPayload(success=False, message=f"Invalid {command.value} payload.")
    socketio.emit(WebSocketEvent.COMMAND_ACK.value, ack.model_dump(), to=request.sid)


@socketio.on("connect")
def handle_connect(auth=None):
    _bridge().handle_client_connect(request.sid)


@socketio.on("disconnect")
def handle_disconnect(*_args):
    logger.info("Client disconnected: %s", request.sid)


@socketio.on(ClientCommand.PUMP.value)
def handle_pump(enable):
    if not isinstance(enable, bool):
        _reject_payload(ClientCommand.PUMP, enable)
        return
    _bridge().request_pump(request.sid, enable)


@socketio.on(ClientCommand.TOGGLE_AUTO_MODE.value)
def handle_toggle_auto_mode(enable):
    if not isinstance(enable, bool):
        _reject_payload(ClientCommand.TOGGLE_AUTO_MODE, enable)
        return
    _bridge().request_auto_mode(request.sid, enable)


@socketio.on(ClientCommand.CHANGE_PLANT_TYPE.value)
def handle_change_plant_type(plant_type):
    if not isinstance(plant_type, str) or not plant_type.strip():
        _reject_payload(ClientCommand.CHANGE_PLANT_TYPE, plant_type)
        return
    _bridge().request_plant_change(request.sid, plant_type.strip())
