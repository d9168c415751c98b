"""
Sensor Reading Value Objects
============================
Immutable readings produced by the field device and the timestamped records
the server keeps for them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from irrigation.utils.time import parse_timestamp, utc_now


@dataclass(frozen=True)
class SensorReading:
    """
    One sample from the device.

    Attributes:
        temperature: Air temperature in °C
        humidity: Relative air humidity in %
        moisture: Soil moisture in %
    """

    temperature: float
    humidity: float
    moisture: float

    def to_dict(self) -> dict[str, float]:
        return {"temperature": self.temperature, "humidity": self.humidity, "moisture": self.moisture}

    @staticmethod
    def from_dict(data: dict[str, Any]) -> SensorReading:
        return SensorReading(
            temperature=float(data["temperature"]),
            humidity=float(data["humidity"]),
            moisture=float(data["moisture"]),
        )


@dataclass(frozen=True)
class SensorRecord:
    """A reading plus the instant the server ingested it. Never mutated."""

    data: SensorReading
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {"data": self.data.to_dict(), "timestamp": self.timestamp.isoformat()}

    @staticmethod
    def from_dict(data: dict[str, Any]) -> SensorRecord:
        timestamp = parse_timestamp(data.get("timestamp")) or utc_now()
        return SensorRecord(data=SensorReading.from_dict(data["data"]), timestamp=timestamp)
