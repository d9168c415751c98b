"""
Threshold Monitor
=================

Compares each reading with the active profile's six safe bounds and notifies
when a *new* critical state appears. A warning set that is already fully
reported is not sent again; once a reading is back in range the remembered
set is cleared so the next excursion alerts again.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor

from irrigation.domain.plant_profile import PlantProfile, SafeThresholds
from irrigation.domain.sensors import SensorReading
from irrigation.services.notifications import Notifier
from irrigation.utils.concurrency import run_detached

logger = logging.getLogger(__name__)

HIGH_TEMP = "High Temp"
LOW_TEMP = "Low Temp"
LOW_HUMIDITY = "Low Humidity"
HIGH_HUMIDITY = "High Humidity"
LOW_MOISTURE = "Low Moisture (Dry)"
HIGH_MOISTURE = "High Moisture (Waterlogged)"


def evaluate_warnings(reading: SensorReading, thresholds: SafeThresholds) -> list[str]:
    warnings: list[str] = []
    if reading.temperature > thresholds.temperature.upper:
        warnings.append(HIGH_TEMP)
    if reading.temperature < thresholds.temperature.lower:
        warnings.append(LOW_TEMP)
    if reading.humidity < thresholds.humidity.lower:
        warnings.append(LOW_HUMIDITY)
    if reading.humidity > thresholds.humidity.upper:
        warnings.append(HIGH_HUMIDITY)
    if reading.moisture < thresholds.moisture.lower:
        warnings.append(LOW_MOISTURE)
    if reading.moisture > thresholds.moisture.upper:
        warnings.append(HIGH_MOISTURE)
    return warnings


class ThresholdMonitor:
    def __init__(self, notifier: Notifier, executor: Executor | None = None) -> None:
        self.notifier = notifier
        self.executor = executor
        self._current_warnings: set[str] = set()
        self._lock = threading.Lock()

    @property
    def current_warnings(self) -> set[str]:
        with self._lock:
            return set(self._current_warnings)

    def check_and_notify(self, reading: SensorReading, profile: PlantProfile | None) -> list[str]:
        """Return the warnings for ``reading``; notify only if one of them is new.

        The remembered warning set is updated before this returns, in call
        order. Only the notifier call goes to ``executor`` when one is set.
        """
        logger.debug(
            "Sensor check: T:%sC H:%s%% M:%s%%", reading.temperature, reading.humidity, reading.moisture
        )
        if profile is None:
            logger.warning("No plant profile loaded. Skipping sensor check.")
            return []

        warnings = evaluate_warnings(reading, profile.safe_thresholds)
        with self._lock:
            is_new = bool(warnings) and not set(warnings) <= self._current_warnings
            self._current_warnings = set(warnings)

        if is_new:
            logger.info("New critical state detected: %s", ", ".join(warnings))
            if self.executor is None:
                self.notifier.send_alert(warnings, reading)
            else:
                run_detached(self.executor, self.notifier.send_alert, warnings, reading, description="threshold alert")
        return warnings
