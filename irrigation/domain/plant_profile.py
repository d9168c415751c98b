"""
Plant Profile Value Objects
===========================
A plant profile names the safe temperature, humidity and soil-moisture ranges
for one crop. Profiles are read-mostly: they are loaded from storage and only
replaced as a whole when the operator switches plant type.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ThresholdRange:
    """Closed safe interval ``[lower, upper]`` for one metric."""

    lower: float
    upper: float

    def __post_init__(self):
        if self.lower > self.upper:
            raise ValueError(f"Lower bound {self.lower} is above upper bound {self.upper}")

    def to_dict(self) -> dict[str, float]:
        return {"lower": self.lower, "upper": self.upper}

    @staticmethod
    def from_dict(data: dict[str, Any]) -> ThresholdRange:
        return ThresholdRange(lower=float(data["lower"]), upper=float(data["upper"]))


@dataclass(frozen=True)
class SafeThresholds:
    """Safe ranges for the three metrics the device measures."""

    temperature: ThresholdRange
    humidity: ThresholdRange
    moisture: ThresholdRange

    def to_dict(self) -> dict[str, dict[str, float]]:
        return {
            "temperature": self.temperature.to_dict(),
            "humidity": self.humidity.to_dict(),
            "moisture": self.moisture.to_dict(),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> SafeThresholds:
        """
        Build from the stored/wire layout.

        Examples:
            >>> SafeThresholds.from_dict({
            ...     "temperature": {"lower": 18, "upper": 32},
            ...     "humidity": {"lower": 40, "upper": 80},
            ...     "moisture": {"lower": 40, "upper": 70},
            ... })
        """
        return SafeThresholds(
            temperature=ThresholdRange.from_dict(data["temperature"]),
            humidity=ThresholdRange.from_dict(data["humidity"]),
            moisture=ThresholdRange.from_dict(data["moisture"]),
        )


@dataclass(frozen=True)
class PlantProfile:
    """Named threshold configuration, keyed by ``plant_type``."""

    plant_type: str
    safe_thresholds: SafeThresholds

    def to_dict(self) -> dict[str, Any]:
        return {"plantType": self.plant_type, "safeThresholds": self.safe_thresholds.to_dict()}

    @staticmethod
    def from_dict(data: dict[str, Any]) -> PlantProfile:
        plant_type = data.get("plantType", data.get("plant_type"))
        if not plant_type:
            raise ValueError("Plant profile requires a plant type")
        thresholds = data.get("safeThresholds", data.get("safe_thresholds"))
        if thresholds is None:
            raise ValueError(f"Plant profile {plant_type!r} has no safe thresholds")
        return PlantProfile(plant_type=str(plant_type), safe_thresholds=SafeThresholds.from_dict(thresholds))
