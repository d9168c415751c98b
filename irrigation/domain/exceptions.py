"""Exception hierarchy for the irrigation bridge.

Every error raised by the domain and service layers inherits from
:class:`IrrigationError` so the bridge can catch one base class at the
transport boundary and keep the MQTT loop and Socket.IO handlers alive.

Hierarchy
---------
::

    IrrigationError
    ├── MessageDecodeError     (malformed / unrecognised bus payload)
    ├── ProfileNotFoundError   (requested plant profile does not exist)
    ├── CommandRejected        (command contradicts the mirrored state)
    └── PublishError           (bus not connected or publish failed)
"""

from __future__ import annotations


class IrrigationError(Exception):
    """Base exception for all irrigation bridge errors.

    Parameters
    ----------
    message:
        Human-readable description.
    detail:
        Optional machine-readable context attached for structured logging.
    """

    def __init__(self, message: str = "", *, detail: dict | None = None) -> None:
        super().__init__(message)
        self.detail = detail or {}


class MessageDecodeError(IrrigationError):
    """Inbound bus payload is not valid JSON or matches no known message kind."""


class ProfileNotFoundError(IrrigationError):
    """No plant profile is stored under the requested plant type."""


class CommandRejected(IrrigationError):
    """A client command was refused because of the current device state."""


class PublishError(IrrigationError):
    """The command could not be handed to the MQTT broker."""
