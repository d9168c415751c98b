from __future__ import annotations

import logging
import sqlite3
from typing import Any

from infrastructure.utils.time import iso_now

logger = logging.getLogger(__name__)


class SensorRecordOperations:
    """Append-only log of ingested sensor readings."""

    def insert_sensor_record(
        self,
        *,
        temperature: float,
        humidity: float,
        moisture: float,
        timestamp: str | None = None,
    ) -> int | None:
        """
        Insert a sensor record.

        Args:
            temperature: Air temperature in °C
            humidity: Relative humidity in %
            moisture: Soil moisture in %
            timestamp: Optional ISO-8601 timestamp override (defaults to now)
        """
        stamp = timestamp or iso_now()
        with self.connection() as db:
            cursor = db.execute(
                """
                INSERT INTO SensorRecords (temperature, humidity, moisture, timestamp)
                VALUES (?, ?, ?, ?)
                """,
                (temperature, humidity, moisture, stamp),
            )
            return cursor.lastrowid

    def get_latest_sensor_records(self, limit: int) -> list[dict[str, Any]]:
        """
        Retrieve the newest ``limit`` records, returned oldest first.

        Args:
            limit: Maximum number of rows to return.
        """
        try:
            db = self.get_db()
            cursor = db.execute(
                """
                SELECT record_id, temperature, humidity, moisture, timestamp
                FROM SensorRecords
                ORDER BY timestamp DESC, record_id DESC
                LIMIT ?
                """,
                (limit,),
            )
            rows = [dict(row) for row in cursor.fetchall()]
        except sqlite3.Error as exc:
            logger.error("Error getting latest sensor records: %s", exc)
            return []
        rows.reverse()
        return rows

    def count_sensor_records(self) -> int:
        try:
            row = self.get_db().execute("SELECT COUNT(*) FROM SensorRecords").fetchone()
            return int(row[0]) if row else 0
        except sqlite3.Error as exc:
            logger.error("Error counting sensor records: %s", exc)
            return 0
