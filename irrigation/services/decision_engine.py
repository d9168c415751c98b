"""
Auto-Irrigation Decision Engine
===============================

Decides whether the pump should run while the system is in auto mode.

Two rules are available:

- :class:`HysteresisRule` (event-driven, default): evaluated on every new
  reading. The turn-on threshold is the profile's moisture lower bound,
  shifted by temperature and humidity deviations and floored at 10 %. The
  turn-off threshold is the midpoint between that adjusted bound and the
  profile's moisture upper bound. Between the two nothing changes, so the
  pump cannot chatter around a single set point.
- :class:`MovingAverageRule` (periodic): evaluated on a timer over the last
  K buffered readings, with a hard safety cut-off on the latest sample.

Rules are pure: they return a :class:`PumpDecision` and never publish. The
transport bridge acts on the decision.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from irrigation.domain.device_state import DeviceState
from irrigation.domain.plant_profile import PlantProfile, SafeThresholds
from irrigation.domain.sensors import SensorReading, SensorRecord

logger = logging.getLogger(__name__)

# Floor for the adjusted turn-on threshold (percent soil moisture)
MIN_LOWER_THRESHOLD = 10.0

TEMPERATURE_DEVIATION_DIVISOR = 2.0
HUMIDITY_DEVIATION_DIVISOR = 5.0


class DecisionAction(Enum):
    TURN_ON = "turn_on"
    TURN_OFF = "turn_off"
    NONE = "none"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class PumpDecision:
    action: DecisionAction
    reason: str
    lower_threshold: float | None = None
    upper_threshold: float | None = None

    @property
    def target(self) -> bool | None:
        """Pump value to command, or None when nothing should be sent."""
        if self.action is DecisionAction.TURN_ON:
            return True
        if self.action is DecisionAction.TURN_OFF:
            return False
        return None


def adjusted_lower_threshold(reading: SensorReading, thresholds: SafeThresholds) -> float:
    """
    Shift the moisture lower bound by how far the air is outside its safe range.

    Hot air raises the bound by half the excess degrees, cold air lowers it by
    half the shortfall; dry air raises it by a fifth of the humidity shortfall,
    humid air lowers it by a fifth of the excess. The result never drops below
    :data:`MIN_LOWER_THRESHOLD`.
    """
    lower = thresholds.moisture.lower
    temperature = thresholds.temperature
    humidity = thresholds.humidity

    if reading.temperature > temperature.upper:
        lower += (reading.temperature - temperature.upper) / TEMPERATURE_DEVIATION_DIVISOR
    elif reading.temperature < temperature.lower:
        lower -= (temperature.lower - reading.temperature) / TEMPERATURE_DEVIATION_DIVISOR

    if reading.humidity < humidity.lower:
        lower += (humidity.lower - reading.humidity) / HUMIDITY_DEVIATION_DIVISOR
    elif reading.humidity > humidity.upper:
        lower -= (reading.humidity - humidity.upper) / HUMIDITY_DEVIATION_DIVISOR

    return max(lower, MIN_LOWER_THRESHOLD)


class DecisionRule(ABC):
    """Base class for pump decision rules."""

    @abstractmethod
    def decide(self, state: DeviceState, **context) -> PumpDecision:
        """Return the directive for the current state."""


class HysteresisRule(DecisionRule):
    def decide(
        self,
        state: DeviceState,
        *,
        reading: SensorReading,
        profile: PlantProfile | None,
        **_context,
    ) -> PumpDecision:
        if not state.auto_mode:
            return PumpDecision(DecisionAction.SKIPPED, "auto mode is off")

        if profile is None:
            logger.warning("No plant profile loaded for pump decision evaluation")
            return PumpDecision(DecisionAction.SKIPPED, "no plant profile loaded")

        lower = adjusted_lower_threshold(reading, profile.safe_thresholds)
        off_threshold = (lower + profile.safe_thresholds.moisture.upper) / 2

        if not state.pump_active and reading.moisture <= lower:
            return PumpDecision(
                DecisionAction.TURN_ON,
                f"moisture {reading.moisture:.1f}% <= {lower:.1f}%",
                lower_threshold=lower,
                upper_threshold=off_threshold,
            )
        if state.pump_active and reading.moisture >= off_threshold:
            return PumpDecision(
                DecisionAction.TURN_OFF,
                f"moisture {reading.moisture:.1f}% >= {off_threshold:.1f}%",
                lower_threshold=lower,
                upper_threshold=off_threshold,
            )
        return PumpDecision(
            DecisionAction.NONE,
            "moisture inside hysteresis band",
            lower_threshold=lower,
            upper_threshold=off_threshold,
        )


class MovingAverageRule(DecisionRule):
    """
    Pump when the mean moisture of the last ``window`` records is at or below
    a climate-adjusted threshold; always stop when the latest reading reaches
    ``safety_upper``.
    """

    def __init__(
        self,
        window: int = 5,
        base_threshold: float = 40.0,
        hot_dry_threshold: float = 50.0,
        cold_wet_threshold: float = 30.0,
        safety_upper: float = 70.0,
    ) -> None:
        self.window = window
        self.base_threshold = base_threshold
        self.hot_dry_threshold = hot_dry_threshold
        self.cold_wet_threshold = cold_wet_threshold
        self.safety_upper = safety_upper

    def threshold_for(self, avg_temperature: float, avg_humidity: float) -> float:
        if avg_temperature > 30 and avg_humidity < 60:
            return self.hot_dry_threshold
        if avg_temperature < 20 or avg_humidity > 85:
            return self.cold_wet_threshold
        return self.base_threshold

    def decide(self, state: DeviceState, *, records: Sequence[SensorRecord], **_context) -> PumpDecision:
        if not state.auto_mode:
            return PumpDecision(DecisionAction.SKIPPED, "auto mode is off")

        window = list(records)[-self.window :]
        if not window:
            return PumpDecision(DecisionAction.SKIPPED, "no sensor records")

        count = len(window)
        avg_moisture = sum(r.data.moisture for r in window) / count
        avg_temperature = sum(r.data.temperature for r in window) / count
        avg_humidity = sum(r.data.humidity for r in window) / count
        latest_moisture = window[-1].data.moisture
        threshold = self.threshold_for(avg_temperature, avg_humidity)

        logger.debug(
            "Average analysis: moisture=%.1f%% temperature=%.1fC humidity=%.1f%% latest=%.1f%% threshold=%.1f%%",
            avg_moisture,
            avg_temperature,
            avg_humidity,
            latest_moisture,
            threshold,
        )

        if latest_moisture >= self.safety_upper:
            should_pump = False
            reason = f"safety cut-off: latest moisture {latest_moisture:.1f}% >= {self.safety_upper:.1f}%"
        elif avg_moisture <= threshold:
            should_pump = True
            reason = f"average moisture {avg_moisture:.1f}% <= {threshold:.1f}%"
        else:
            should_pump = False
            reason = f"average moisture {avg_moisture:.1f}% > {threshold:.1f}%"

        if should_pump == state.pump_active:
            return PumpDecision(DecisionAction.NONE, reason, lower_threshold=threshold, upper_threshold=self.safety_upper)
        action = DecisionAction.TURN_ON if should_pump else DecisionAction.TURN_OFF
        return PumpDecision(action, reason, lower_threshold=threshold, upper_threshold=self.safety_upper)


class DecisionEngine:
    """Runs the configured rule: per reading in ``event`` mode, on a timer in ``periodic`` mode."""

    def __init__(
        self,
        mode: str = "event",
        hysteresis_rule: HysteresisRule | None = None,
        average_rule: MovingAverageRule | None = None,
    ) -> None:
        self.mode = mode
        self.hysteresis_rule = hysteresis_rule or HysteresisRule()
        self.average_rule = average_rule or MovingAverageRule()

    @property
    def is_periodic(self) -> bool:
        return self.mode == "periodic"

    def on_reading(self, reading: SensorReading, state: DeviceState, profile: PlantProfile | None) -> PumpDecision:
        if self.is_periodic:
            return PumpDecision(DecisionAction.SKIPPED, "periodic mode evaluates on the timer")
        return self.hysteresis_rule.decide(state, reading=reading, profile=profile)

    def on_tick(self, records: Sequence[SensorRecord], state: DeviceState) -> PumpDecision:
        if not self.is_periodic:
            return PumpDecision(DecisionAction.SKIPPED, "event mode evaluates per reading")
        return self.average_rule.decide(state, records=records)
