"""
Pending Command Tracker
=======================

A pump or auto-mode command is only a request until the device reports the
new state back. The tracker keeps at most one outstanding command per field,
clears it when the confirmation arrives, and hands back commands that were
never confirmed within ``timeout_seconds`` so the requester can be told the
device is not responding.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable

from irrigation.enums.events import DeviceStateField

AUTO_REQUESTER = "auto"


@dataclass(frozen=True)
class PendingCommand:
    field: DeviceStateField
    value: bool
    requested_by: str
    issued_at: float
    deadline: float


class PendingCommandTracker:
    def __init__(self, timeout_seconds: float = 30.0, clock: Callable[[], float] = time.monotonic) -> None:
        self.timeout_seconds = timeout_seconds
        self._clock = clock
        self._pending: dict[DeviceStateField, PendingCommand] = {}
        self._lock = threading.Lock()

    def register(self, field: DeviceStateField, value: bool, requested_by: str) -> PendingCommand:
        now = self._clock()
        command = PendingCommand(
            field=field,
            value=value,
            requested_by=requested_by,
            issued_at=now,
            deadline=now + self.timeout_seconds,
        )
        with self._lock:
            self._pending[field] = command
        return command

    def get(self, field: DeviceStateField) -> PendingCommand | None:
        with self._lock:
            return self._pending.get(field)

    def resolve(self, field: DeviceStateField) -> PendingCommand | None:
        """Drop the outstanding command for ``field`` once the device reports it."""
        with self._lock:
            return self._pending.pop(field, None)

    def expire(self) -> list[PendingCommand]:
        """Remove and return every command whose deadline has passed."""
        now = self._clock()
        with self._lock:
            expired = [command for command in self._pending.values() if command.deadline <= now]
            for command in expired:
                del self._pending[command.field]
        return expired

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)
