from __future__ import annotations

from typing import Any

from infrastructure.database.ops.sensor_records import SensorRecordOperations


class SensorRecordRepository:
    """Expose the durable sensor record log."""

    def __init__(self, backend: SensorRecordOperations) -> None:
        self._backend = backend

    def insert_record(
        self,
        *,
        temperature: float,
        humidity: float,
        moisture: float,
        timestamp: str | None = None,
    ) -> int | None:
        return self._backend.insert_sensor_record(
            temperature=temperature,
            humidity=humidity,
            moisture=moisture,
            timestamp=timestamp,
        )

    def latest_records(self, limit: int) -> list[dict[str, Any]]:
        """Newest ``limit`` records, oldest first."""
        return self._backend.get_latest_sensor_records(limit)

    def count(self) -> int:
        return self._backend.count_sensor_records()
