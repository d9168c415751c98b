"""
Transport Bridge
================

Connects the device-facing MQTT bus with the client-facing Socket.IO fan-out.

Inbound (device -> server):
    Every payload on ``devices/{id}/data`` is decoded once into a typed
    message. Sensor samples are buffered and persisted, checked against the
    active profile, fed to the decision engine and broadcast. State reports
    are applied to the device mirror, which broadcasts only real changes, and
    clear the matching pending command.

Outbound (client -> device):
    ``pump``, ``toggle_auto_mode`` and ``change_plant_type`` are validated
    against the mirror, published on ``devices/{id}/commands`` and answered
    with a ``command_ack`` sent to the requesting client only. Pump and auto
    mode flags are never changed here; the device confirmation does that.

All entry points (bus callback, Socket.IO handlers, interval tick) run under
one re-entrant lock, so each event sees and mutates the state atomically in
arrival order.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Protocol

from irrigation.domain.device_state import DeviceStateMirror
from irrigation.domain.exceptions import CommandRejected, MessageDecodeError, ProfileNotFoundError, PublishError
from irrigation.enums.events import DeviceStateField, WebSocketEvent
from irrigation.schemas.events import (
    CommandAckPayload,
    CommandTimeoutPayload,
    SensorUpdatePayload,
    WeatherUpdatePayload,
)
from irrigation.schemas.messages import (
    DeviceCommand,
    DeviceStateMessage,
    ForecastMessage,
    PumpCommand,
    SensorDataMessage,
    SetThresholdCommand,
    ToggleAutoCommand,
    decode_device_message,
    encode_command,
)
from irrigation.services.decision_engine import DecisionEngine, PumpDecision
from irrigation.services.pending_commands import AUTO_REQUESTER, PendingCommandTracker
from irrigation.services.profile_store import PlantProfileStore
from irrigation.services.record_store import SensorRecordStore
from irrigation.services.threshold_monitor import ThresholdMonitor
from irrigation.utils.concurrency import synchronized
from irrigation.utils.emitters import EmitterService

logger = logging.getLogger(__name__)

MSG_PUMP_IN_AUTO = "Cannot manually start pump while in auto mode."
MSG_PUMP_UNCHANGED = "Pump state is already set to the requested value."
MSG_PUMP_PENDING = "A pump command is already waiting for device confirmation."
MSG_PUMP_SENT = "Pump command sent successfully. Please wait for device update..."
MSG_PUMP_FAILED = "Failed to send pump command to device"
MSG_AUTO_UNCHANGED = "Auto Mode is already set to the requested value."
MSG_AUTO_PENDING = "An Auto Mode update is already waiting for device confirmation."
MSG_AUTO_SENT = "Auto Mode update sent successfully. Please wait for device update..."
MSG_AUTO_FAILED = "Failed to send Auto Mode update to device"
MSG_PLANT_UNCHANGED = "Plant type is already set to the requested value."
MSG_PLANT_UPDATED = "Safe thresholds updated successfully."
MSG_PLANT_FAILED = "Failed to load plant profile from server."
MSG_COMMAND_TIMEOUT = "Device did not confirm the command in time."


class BusPublisher(Protocol):
    def publish(self, topic: str, payload: str) -> bool: ...


class TransportBridge:
    def __init__(
        self,
        *,
        mirror: DeviceStateMirror,
        record_store: SensorRecordStore,
        profile_store: PlantProfileStore,
        decision_engine: DecisionEngine,
        threshold_monitor: ThresholdMonitor,
        pending: PendingCommandTracker,
        emitter: EmitterService,
        publisher: BusPublisher | None,
        data_topic: str,
        commands_topic: str,
        forecast_topic: str,
    ) -> None:
        self.mirror = mirror
        self.record_store = record_store
        self.profile_store = profile_store
        self.decision_engine = decision_engine
        self.threshold_monitor = threshold_monitor
        self.pending = pending
        self.emitter = emitter
        self.publisher = publisher
        self.data_topic = data_topic
        self.commands_topic = commands_topic
        self.forecast_topic = forecast_topic
        self.last_forecast: WeatherUpdatePayload | None = None
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Bus -> server
    # ------------------------------------------------------------------

    def subscribe(self, client) -> None:
        """Register the device data topic on an MQTT client wrapper."""
        client.subscribe(self.data_topic, self.on_mqtt_message)

    def on_mqtt_message(self, client, userdata, msg) -> None:
        """paho callback; must never raise into the network loop."""
        try:
            self.handle_bus_message(msg.payload)
        except Exception as exc:
            logger.error("Unhandled error processing MQTT message on %s: %s", msg.topic, exc, exc_info=True)

    @synchronized
    def handle_bus_message(self, payload: bytes | str) -> SensorDataMessage | DeviceStateMessage | None:
        """Decode one bus payload and route it. Malformed payloads are logged and dropped."""
        try:
            message = decode_device_message(payload)
        except MessageDecodeError as exc:
            logger.warning("Dropping device message: %s %s", exc, exc.detail or "")
            return None

        if isinstance(message, SensorDataMessage):
            self._on_sensor_data(message)
        else:
            self._on_device_state(message)
        return message

    def _on_sensor_data(self, message: SensorDataMessage) -> None:
        reading = message.to_reading()
        logger.debug("Sensor data: %s", reading)

        profile = self.mirror.get_profile()
        self.threshold_monitor.check_and_notify(reading, profile)
        self.record_store.append(reading)

        decision = self.decision_engine.on_reading(reading, self.mirror.get_state(), profile)
        self._apply_decision(decision)

        self.emitter.broadcast(
            WebSocketEvent.SENSOR_UPDATE,
            SensorUpdatePayload.from_reading(reading.to_dict()).model_dump(),
        )

    def _on_device_state(self, message: DeviceStateMessage) -> None:
        self.mirror.apply_confirmed_update(message.state, message.enable)

        pending = self.pending.resolve(message.state)
        if pending is not None and pending.value != message.enable:
            logger.warning(
                "Device reported %s=%s while %s was pending",
                message.state.value,
                message.enable,
                pending.value,
            )

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def _apply_decision(self, decision: PumpDecision) -> bool:
        """Publish the pump directive unless it is already mirrored or pending."""
        target = decision.target
        if target is None:
            logger.debug("No pump action: %s", decision.reason)
            return False

        if target == self.mirror.get_state().pump_active:
            return False
        pending = self.pending.get(DeviceStateField.PUMP)
        if pending is not None and pending.value == target:
            logger.debug("Pump %s already pending; not re-sending", "on" if target else "off")
            return False

        try:
            self._publish_command(PumpCommand(enable=target))
        except PublishError as exc:
            logger.error("Auto irrigation command not sent: %s", exc)
            return False

        self.pending.register(DeviceStateField.PUMP, target, AUTO_REQUESTER)
        logger.info("Auto irrigation: pump %s (%s)", "ON" if target else "OFF", decision.reason)
        return True

    @synchronized
    def tick(self) -> None:
        """Interval job: expire unconfirmed commands, then run the periodic rule."""
        for command in self.pending.expire():
            payload = CommandTimeoutPayload(
                field=command.field.value, value=command.value, message=MSG_COMMAND_TIMEOUT
            ).model_dump()
            logger.warning(
                "Command %s=%s from %s was not confirmed by the device",
                command.field.value,
                command.value,
                command.requested_by,
            )
            if command.requested_by != AUTO_REQUESTER:
                self.emitter.emit_to_client(command.requested_by, WebSocketEvent.COMMAND_TIMEOUT, payload)

        if self.decision_engine.is_periodic:
            decision = self.decision_engine.on_tick(self.record_store.recent(), self.mirror.get_state())
            self._apply_decision(decision)

    # ------------------------------------------------------------------
    # Clients -> server
    # ------------------------------------------------------------------

    @synchronized
    def handle_client_connect(self, sid: str) -> None:
        """Send the handshake snapshot to a newly connected client."""
        logger.info("Client %s connected", sid)
        self.emitter.emit_to_client(sid, WebSocketEvent.INITIAL_RECORDS, self.record_store.to_payload())
        self.emitter.emit_to_client(sid, WebSocketEvent.SYSTEM_STATE, self.mirror.snapshot())
        try:
            plant_types = self.profile_store.list_plant_types()
        except Exception as exc:
            logger.error("Could not list plant types: %s", exc)
            plant_types = []
        self.emitter.emit_to_client(sid, WebSocketEvent.AVAILABLE_PLANTS, plant_types)
        if self.last_forecast is not None:
            self.emitter.emit_to_client(
                sid, WebSocketEvent.WEATHER_UPDATE, self.last_forecast.model_dump(by_alias=True)
            )

    @synchronized
    def request_pump(self, sid: str, enable: bool) -> CommandAckPayload:
        logger.info("[Pump] User %s requested pump state: %s", sid, enable)
        try:
            state = self.mirror.get_state()
            if state.auto_mode:
                raise CommandRejected(MSG_PUMP_IN_AUTO)
            if enable == state.pump_active:
                raise CommandRejected(MSG_PUMP_UNCHANGED)
            if self.pending.get(DeviceStateField.PUMP) is not None:
                raise CommandRejected(MSG_PUMP_PENDING)
        except CommandRejected as exc:
            logger.warning("Pump command ignored: %s", exc)
            return self._ack(sid, False, str(exc))

        try:
            self._publish_command(PumpCommand(enable=enable))
        except PublishError as exc:
            logger.error("Failed to publish pump command: %s", exc)
            return self._ack(sid, False, MSG_PUMP_FAILED)

        self.pending.register(DeviceStateField.PUMP, enable, sid)
        return self._ack(sid, True, MSG_PUMP_SENT)

    @synchronized
    def request_auto_mode(self, sid: str, enable: bool) -> CommandAckPayload:
        logger.info("[Config] User %s set Auto Mode to %s", sid, enable)
        try:
            if enable == self.mirror.get_state().auto_mode:
                raise CommandRejected(MSG_AUTO_UNCHANGED)
            if self.pending.get(DeviceStateField.AUTO_MODE) is not None:
                raise CommandRejected(MSG_AUTO_PENDING)
        except CommandRejected as exc:
            logger.warning("Auto Mode update ignored: %s", exc)
            return self._ack(sid, False, str(exc))

        try:
            self._publish_command(ToggleAutoCommand(value=enable))
        except PublishError as exc:
            logger.error("Failed to publish auto mode update: %s", exc)
            return self._ack(sid, False, MSG_AUTO_FAILED)

        self.pending.register(DeviceStateField.AUTO_MODE, enable, sid)
        return self._ack(sid, True, MSG_AUTO_SENT)

    @synchronized
    def request_plant_change(self, sid: str, plant_type: str) -> CommandAckPayload:
        """
        Switch the active plant profile.

        The profile has no device confirmation: once the thresholds are
        published the mirror is updated and ``plant_type_update`` broadcast.

        NOTE: unlike pump and auto mode this change is applied optimistically.
        The firmware never echoes SET_THRESHOLD back, so gating on a
        confirmation would leave the request pending until it times out.
        """
        logger.info("[Change Plant] User %s changed plant type to %s", sid, plant_type)
        if plant_type == self.mirror.get_state().current_plant_type:
            logger.warning("Plant type unchanged. No action taken.")
            return self._ack(sid, False, MSG_PLANT_UNCHANGED)

        try:
            profile = self.profile_store.get(plant_type)
            self._publish_command(SetThresholdCommand.from_thresholds(profile.safe_thresholds))
        except (ProfileNotFoundError, PublishError) as exc:
            logger.error("Failed to apply plant profile %s: %s", plant_type, exc)
            return self._ack(sid, False, MSG_PLANT_FAILED)

        self.mirror.apply_profile_change(profile)
        return self._ack(sid, True, MSG_PLANT_UPDATED)

    # ------------------------------------------------------------------
    # Forecast relay
    # ------------------------------------------------------------------

    @synchronized
    def publish_forecast(self, rain_probability: int) -> bool:
        """
        Relay a rain forecast to the device and to every client.

        Raises:
            pydantic.ValidationError: ``rain_probability`` is outside 0..100.
        """
        message = ForecastMessage(rain_prob=rain_probability)
        self.last_forecast = WeatherUpdatePayload(rain_probability=message.rain_prob)
        self.emitter.broadcast(WebSocketEvent.WEATHER_UPDATE, self.last_forecast.model_dump(by_alias=True))
        try:
            self._publish(self.forecast_topic, encode_command(message))
        except PublishError as exc:
            logger.error("Failed to publish forecast to device: %s", exc)
            return False
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _ack(self, sid: str, success: bool, message: str) -> CommandAckPayload:
        ack = CommandAckPayload(success=success, message=message)
        self.emitter.emit_to_client(sid, WebSocketEvent.COMMAND_ACK, ack.model_dump())
        return ack

    def _publish_command(self, command: DeviceCommand) -> None:
        self._publish(self.commands_topic, encode_command(command))

    def _publish(self, topic: str, payload: str) -> None:
        if self.publisher is None:
            raise PublishError("MQTT is disabled", detail={"topic": topic})
        if not self.publisher.publish(topic, payload):
            raise PublishError(f"Publish to {topic} failed", detail={"topic": topic})

    def status(self) -> dict[str, Any]:
        state = self.mirror.get_state()
        return {
            "pump": state.pump_active,
            "automode": state.auto_mode,
            "currentPlantType": state.current_plant_type,
            "bufferedRecords": len(self.record_store),
            "pendingCommands": len(self.pending),
            "decisionMode": self.decision_engine.mode,
        }
