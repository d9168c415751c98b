"""
Device State Mirror
===================
Holds the last state the physical controller *confirmed* over the bus, plus
the plant profile currently selected. It is the source of truth for every
newly connecting dashboard client.

Pump and auto-mode flags change only through :meth:`apply_confirmed_update`,
which the bridge calls when the device reports back. Profile changes go
through :meth:`apply_profile_change` and are applied when the thresholds are
pushed (the device has nothing physical to confirm for them).

Every applied change is reported to an optional change listener with the
changed field only, so clients can patch their view incrementally.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from typing import Any, Callable

from irrigation.domain.plant_profile import PlantProfile
from irrigation.enums.events import DeviceStateField, WebSocketEvent

logger = logging.getLogger(__name__)

ChangeListener = Callable[[WebSocketEvent, Any], None]


@dataclass(frozen=True)
class DeviceState:
    """Snapshot of the mirrored device state."""

    pump_active: bool = False
    auto_mode: bool = True
    current_plant_type: str | None = None

    def value_of(self, state_field: DeviceStateField) -> bool:
        if state_field is DeviceStateField.PUMP:
            return self.pump_active
        return self.auto_mode


class DeviceStateMirror:
    """Process-wide mirror of the device, owned by the service container."""

    def __init__(
        self,
        initial: DeviceState | None = None,
        profile: PlantProfile | None = None,
        on_change: ChangeListener | None = None,
    ) -> None:
        self._state = initial or DeviceState(current_plant_type=profile.plant_type if profile else None)
        self._profile = profile
        self._on_change = on_change
        self._lock = threading.RLock()

    def get_state(self) -> DeviceState:
        with self._lock:
            return self._state

    def get_profile(self) -> PlantProfile | None:
        with self._lock:
            return self._profile

    def apply_confirmed_update(self, state_field: DeviceStateField, value: bool) -> DeviceState:
        """Apply a device-confirmed flag change; equal values are a silent no-op."""
        with self._lock:
            if self._state.value_of(state_field) == value:
                logger.debug("Confirmed %s=%s matches mirror; nothing to apply", state_field.value, value)
                return self._state
            if state_field is DeviceStateField.PUMP:
                self._state = replace(self._state, pump_active=value)
            else:
                self._state = replace(self._state, auto_mode=value)
            state = self._state

        logger.info("Device confirmed %s=%s", state_field.value, value)
        self._notify(state_field.broadcast_event, value)
        return state

    def apply_profile_change(self, profile: PlantProfile) -> DeviceState:
        with self._lock:
            self._profile = profile
            self._state = replace(self._state, current_plant_type=profile.plant_type)
            state = self._state

        logger.info("Active plant profile set to %s", profile.plant_type)
        self._notify(
            WebSocketEvent.PLANT_TYPE_UPDATE,
            {"plantType": profile.plant_type, "thresholds": profile.safe_thresholds.to_dict()},
        )
        return state

    def snapshot(self) -> dict[str, Any]:
        """Render the ``system_state`` payload sent to a newly connected client."""
        with self._lock:
            state = self._state
            profile = self._profile
        return {
            "state": {"pump": state.pump_active, "automode": state.auto_mode},
            "currentPlantType": state.current_plant_type,
            "currentPlantProfile": profile.to_dict() if profile else None,
        }

    def _notify(self, event: WebSocketEvent, payload: Any) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(event, payload)
        except Exception as exc:
            logger.error("State change listener failed for %s: %s", event.value, exc, exc_info=True)
