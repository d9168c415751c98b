"""
Shared test fixtures for the irrigation bridge test suite.

Provides:
- In-memory SQLite database with all tables created
- Repository instances wired to the test database
- Fakes for Socket.IO, the MQTT publisher and the background executor
- A fully wired TransportBridge built from those fakes

Usage:
    def test_example(bridge, fake_sio, publisher):
        bridge.handle_bus_message(b'{"sensorData": {...}}')
        assert publisher.published
"""

from __future__ import annotations

import json
import logging
from concurrent.futures import Future
from typing import Any
from unittest.mock import MagicMock

import pytest

from infrastructure.database.repositories.plant_profiles import PlantProfileRepository
from infrastructure.database.repositories.sensor_records import SensorRecordRepository
from infrastructure.database.sqlite_handler import SQLiteDatabaseHandler
from irrigation.domain.device_state import DeviceState, DeviceStateMirror
from irrigation.domain.plant_profile import PlantProfile, SafeThresholds
from irrigation.services.decision_engine import DecisionEngine
from irrigation.services.pending_commands import PendingCommandTracker
from irrigation.services.profile_store import PlantProfileStore
from irrigation.services.record_store import SensorRecordStore
from irrigation.services.threshold_monitor import ThresholdMonitor
from irrigation.services.transport_bridge import TransportBridge
from irrigation.utils.emitters import EmitterService

# ---------------------------------------------------------------------------
# Logging: keep test output clean
# ---------------------------------------------------------------------------
logging.getLogger("infrastructure").setLevel(logging.WARNING)
logging.getLogger("irrigation").setLevel(logging.WARNING)

DATA_TOPIC = "devices/test-01/data"
COMMANDS_TOPIC = "devices/test-01/commands"
FORECAST_TOPIC = "devices/test-01/forecast"

TOMATO = {
    "plantType": "Tomato",
    "safeThresholds": {
        "temperature": {"lower": 18, "upper": 32},
        "humidity": {"lower": 40, "upper": 80},
        "moisture": {"lower": 40, "upper": 70},
    },
}

BASIL = {
    "plantType": "Basil",
    "safeThresholds": {
        "temperature": {"lower": 15, "upper": 30},
        "humidity": {"lower": 40, "upper": 70},
        "moisture": {"lower": 35, "upper": 60},
    },
}


# ============================== Fakes =====================================


class FakeSocketIO:
    def __init__(self) -> None:
        self.emits: list[dict] = []

    def emit(self, event, payload, to=None, namespace="/"):
        self.emits.append({"event": event, "payload": payload, "room": to, "namespace": namespace})

    def events(self, name: str, room: Any = "any") -> list[dict]:
        return [e for e in self.emits if e["event"] == name and (room == "any" or e["room"] == room)]

    def clear(self) -> None:
        self.emits.clear()


class InlineExecutor:
    """Runs submitted work immediately on the calling thread."""

    def __init__(self) -> None:
        self.submitted: list[str] = []

    def submit(self, fn, *args, **kwargs) -> Future:
        self.submitted.append(getattr(fn, "__name__", repr(fn)))
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        return future


class HeldExecutor:
    """Queues submitted work until the test releases it, in any order."""

    def __init__(self) -> None:
        self.pending: list[tuple[Future, Any, tuple]] = []

    def submit(self, fn, *args) -> Future:
        future: Future = Future()
        self.pending.append((future, fn, args))
        return future

    def release(self, *, reverse: bool = False) -> None:
        tasks = list(reversed(self.pending)) if reverse else list(self.pending)
        self.pending.clear()
        for future, fn, args in tasks:
            try:
                future.set_result(fn(*args))
            except Exception as exc:
                future.set_exception(exc)


class FakePublisher:
    def __init__(self, succeed: bool = True) -> None:
        self.succeed = succeed
        self.published: list[tuple[str, dict]] = []
        self.subscriptions: list[tuple[str, Any]] = []

    def publish(self, topic: str, payload: str) -> bool:
        if not self.succeed:
            return False
        self.published.append((topic, json.loads(payload)))
        return True

    def subscribe(self, topic, callback) -> None:
        self.subscriptions.append((topic, callback))

    def commands(self) -> list[dict]:
        return [payload for topic, payload in self.published if topic == COMMANDS_TOPIC]


# ========================== Database Fixtures ==============================


@pytest.fixture()
def db_handler():
    """In-memory SQLite database with all tables created.

    Each test gets a fresh database.
    """
    handler = SQLiteDatabaseHandler(":memory:")
    handler.create_tables()
    yield handler
    handler.close()


@pytest.fixture()
def sensor_record_repo(db_handler):
    return SensorRecordRepository(db_handler)


@pytest.fixture()
def plant_profile_repo(db_handler):
    return PlantProfileRepository(db_handler)


# ========================== Domain Fixtures ================================


@pytest.fixture()
def tomato_profile() -> PlantProfile:
    return PlantProfile.from_dict(TOMATO)


@pytest.fixture()
def basil_profile() -> PlantProfile:
    return PlantProfile.from_dict(BASIL)


@pytest.fixture()
def tomato_thresholds(tomato_profile) -> SafeThresholds:
    return tomato_profile.safe_thresholds


@pytest.fixture()
def profile_store(plant_profile_repo, tomato_profile, basil_profile):
    store = PlantProfileStore(plant_profile_repo)
    store.save(tomato_profile)
    store.save(basil_profile)
    return store


# ========================== Service Fixtures ===============================


@pytest.fixture()
def fake_sio():
    return FakeSocketIO()


@pytest.fixture()
def inline_executor():
    return InlineExecutor()


@pytest.fixture()
def held_executor():
    return HeldExecutor()


@pytest.fixture()
def publisher():
    return FakePublisher()


@pytest.fixture()
def notifier():
    return MagicMock()


@pytest.fixture()
def emitter(fake_sio):
    return EmitterService(fake_sio)


@pytest.fixture()
def record_store(sensor_record_repo, inline_executor):
    return SensorRecordStore(sensor_record_repo, inline_executor, capacity=20)


@pytest.fixture()
def clock():
    """Manually advanced monotonic clock for the pending command tracker."""

    class _Clock:
        now = 1000.0

        def __call__(self) -> float:
            return self.now

        def advance(self, seconds: float) -> None:
            self.now += seconds

    return _Clock()


@pytest.fixture()
def make_bridge(record_store, profile_store, tomato_profile, emitter, inline_executor, publisher, notifier, clock):
    """Factory for a bridge with an explicit starting state and decision mode."""

    def _make(
        state: DeviceState | None = None,
        *,
        mode: str = "event",
        profile: PlantProfile | None | str = "default",
        bus: FakePublisher | None | str = "default",
    ) -> TransportBridge:
        active_profile = tomato_profile if profile == "default" else profile
        initial = state or DeviceState(
            current_plant_type=active_profile.plant_type if active_profile else None
        )
        mirror = DeviceStateMirror(initial=initial, profile=active_profile, on_change=emitter.broadcast)
        return TransportBridge(
            mirror=mirror,
            record_store=record_store,
            profile_store=profile_store,
            decision_engine=DecisionEngine(mode=mode),
            threshold_monitor=ThresholdMonitor(notifier, inline_executor),
            pending=PendingCommandTracker(timeout_seconds=30.0, clock=clock),
            emitter=emitter,
            publisher=publisher if bus == "default" else bus,
            data_topic=DATA_TOPIC,
            commands_topic=COMMANDS_TOPIC,
            forecast_topic=FORECAST_TOPIC,
        )

    return _make


@pytest.fixture()
def bridge(make_bridge):
    """Bridge in the default state: pump off, auto mode on, Tomato selected."""
    return make_bridge()

