"""
Bus Message Schemas
===================

Inbound device messages are decoded exactly once, at the MQTT boundary, into
a closed set of types selected by the ``kind`` discriminator:

- ``sensor_data``  -> :class:`SensorDataMessage`
- ``device_state`` -> :class:`DeviceStateMessage`

Firmware that predates the envelope sends no ``kind``; such payloads are
tagged by shape before validation (``sensorData`` vs ``state``/``enable``)
so the rest of the server only ever sees the typed messages.

Outbound command models render the JSON the controller expects on
``devices/{id}/commands``.
"""

from __future__ import annotations

import json
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from irrigation.domain.exceptions import MessageDecodeError
from irrigation.domain.plant_profile import SafeThresholds
from irrigation.domain.sensors import SensorReading
from irrigation.enums.events import DeviceAction, DeviceStateField, MessageKind


class SensorDataPayload(BaseModel):
    temperature: float
    humidity: float
    moisture: float


class SensorDataMessage(BaseModel):
    """A new sample from the device."""

    model_config = ConfigDict(populate_by_name=True)

    kind: Literal["sensor_data"] = "sensor_data"
    sensor_data: SensorDataPayload = Field(alias="sensorData")

    def to_reading(self) -> SensorReading:
        return SensorReading(
            temperature=self.sensor_data.temperature,
            humidity=self.sensor_data.humidity,
            moisture=self.sensor_data.moisture,
        )


class DeviceStateMessage(BaseModel):
    """Device confirmation that a flag now has ``enable`` as its value."""

    kind: Literal["device_state"] = "device_state"
    state: DeviceStateField
    enable: bool


DeviceMessage = Annotated[Union[SensorDataMessage, DeviceStateMessage], Field(discriminator="kind")]

_device_message_adapter: TypeAdapter = TypeAdapter(DeviceMessage)


def _infer_kind(raw: dict[str, Any]) -> str | None:
    if "sensorData" in raw or "sensor_data" in raw:
        return MessageKind.SENSOR_DATA.value
    if "enable" in raw:
        return MessageKind.DEVICE_STATE.value
    return None


def decode_device_message(payload: bytes | str) -> SensorDataMessage | DeviceStateMessage:
    """
    Decode a raw bus payload into a typed device message.

    Raises:
        MessageDecodeError: payload is not JSON, not an object, or matches no
            known message kind.
    """
    try:
        raw = json.loads(payload)
    except (TypeError, ValueError) as exc:
        raise MessageDecodeError(f"Payload is not valid JSON: {exc}") from exc

    if not isinstance(raw, dict):
        raise MessageDecodeError(f"Expected a JSON object, got {type(raw).__name__}")

    if "kind" not in raw:
        kind = _infer_kind(raw)
        if kind is None:
            raise MessageDecodeError("Unrecognised message shape", detail={"keys": sorted(raw)})
        raw = {**raw, "kind": kind}

    try:
        return _device_message_adapter.validate_python(raw)
    except PydanticValidationError as exc:
        raise MessageDecodeError(
            f"Invalid {raw.get('kind')} message", detail={"errors": exc.errors(include_url=False)}
        ) from exc


class PumpCommand(BaseModel):
    action: Literal[DeviceAction.PUMP] = DeviceAction.PUMP
    enable: bool


class ToggleAutoCommand(BaseModel):
    action: Literal[DeviceAction.TOGGLE_AUTO] = DeviceAction.TOGGLE_AUTO
    value: bool


class SetThresholdCommand(BaseModel):
    action: Literal[DeviceAction.SET_THRESHOLD] = DeviceAction.SET_THRESHOLD
    value: dict[str, dict[str, float]]

    @classmethod
    def from_thresholds(cls, thresholds: SafeThresholds) -> SetThresholdCommand:
        return cls(value=thresholds.to_dict())


class ForecastMessage(BaseModel):
    """Rain forecast pushed to the device on ``devices/{id}/forecast``."""

    rain_prob: int = Field(ge=0, le=100)


DeviceCommand = Union[PumpCommand, ToggleAutoCommand, SetThresholdCommand]


def encode_command(command: DeviceCommand | ForecastMessage) -> str:
    """Serialise an outbound command to the JSON string published on the bus."""
    return command.model_dump_json()
