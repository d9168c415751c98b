"""
Sensor Record Store
===================

Bounded in-memory buffer of the most recent sensor records, mirrored to the
durable SQLite log.

- The buffer holds at most ``capacity`` records, ordered oldest -> newest,
  and evicts the oldest on overflow (FIFO).
- Persistence runs as a detached task: a failed write is logged and never
  blocks the live feed. The buffer and the durable log are only eventually
  consistent.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from concurrent.futures import Executor
from datetime import datetime

from infrastructure.database.repositories.sensor_records import SensorRecordRepository
from infrastructure.utils.time import to_iso
from irrigation.domain.sensors import SensorReading, SensorRecord
from irrigation.utils.concurrency import run_detached
from irrigation.utils.time import utc_now

logger = logging.getLogger(__name__)


class SensorRecordStore:
    def __init__(
        self,
        repository: SensorRecordRepository,
        executor: Executor,
        capacity: int = 20,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.repository = repository
        self.executor = executor
        self.capacity = capacity
        self._records: deque[SensorRecord] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def load_history(self) -> int:
        """Fill the buffer with the newest persisted records. Returns the count loaded."""
        rows = self.repository.latest_records(self.capacity)
        loaded = 0
        with self._lock:
            self._records.clear()
            for row in rows:
                try:
                    record = SensorRecord.from_dict(
                        {
                            "data": {
                                "temperature": row["temperature"],
                                "humidity": row["humidity"],
                                "moisture": row["moisture"],
                            },
                            "timestamp": row.get("timestamp"),
                        }
                    )
                except (KeyError, TypeError, ValueError) as exc:
                    logger.warning("Skipping unreadable sensor record %s: %s", row.get("record_id"), exc)
                    continue
                self._records.append(record)
                loaded += 1
        logger.info("Loaded %s historical sensor records", loaded)
        return loaded

    def append(self, reading: SensorReading, timestamp: datetime | None = None) -> SensorRecord:
        """Buffer a new reading and persist it in the background."""
        stamp = timestamp or utc_now()
        with self._lock:
            # Keep the buffer sorted even if the wall clock steps backwards
            if self._records and stamp < self._records[-1].timestamp:
                stamp = self._records[-1].timestamp
            record = SensorRecord(data=reading, timestamp=stamp)
            self._records.append(record)

        run_detached(self.executor, self._persist, record, description="persist sensor record")
        return record

    def _persist(self, record: SensorRecord) -> None:
        try:
            self.repository.insert_record(
                temperature=record.data.temperature,
                humidity=record.data.humidity,
                moisture=record.data.moisture,
                timestamp=to_iso(record.timestamp),
            )
        except Exception as exc:
            logger.error("Database sensor save error: %s", exc)

    def recent(self, count: int | None = None) -> list[SensorRecord]:
        """The newest ``count`` records (all buffered when None), oldest first."""
        with self._lock:
            records = list(self._records)
        if count is None or count >= len(records):
            return records
        if count <= 0:
            return []
        return records[-count:]

    def latest(self) -> SensorRecord | None:
        with self._lock:
            return self._records[-1] if self._records else None

    def to_payload(self) -> list[dict]:
        """``initial_records`` payload for a newly connected client."""
        return [record.to_dict() for record in self.recent()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
