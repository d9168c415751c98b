from unittest.mock import MagicMock

from irrigation.config import AppConfig
from irrigation.services.container import ServiceContainer
from irrigation.services.notifications import LoggingNotifier, TelegramNotifier


def _config(**overrides) -> AppConfig:
    values = {"database_path": ":memory:", "enable_mqtt": False, "device_id": "unit-01", "profile_seed_path": ""}
    values.update(overrides)
    return AppConfig(**values)


def test_build_without_mqtt_rejects_commands(fake_sio):
    container = ServiceContainer.build(_config(), fake_sio, start_worker=False)
    try:
        assert container.mqtt_client is None
        assert isinstance(container.threshold_monitor.notifier, LoggingNotifier)
        assert container.mirror.get_state().current_plant_type is None

        ack = container.bridge.request_auto_mode("sid-1", False)
        assert ack.success is False
        assert container.health()["status"] == "ok"
        assert container.health()["mqtt"] is None
    finally:
        container.shutdown()


def test_build_restores_history_and_default_profile(fake_sio, tmp_path, tomato_profile):
    db_path = tmp_path / "irrigation.db"
    first = ServiceContainer.build(_config(database_path=str(db_path)), fake_sio, start_worker=False)
    first.profile_store.save(tomato_profile)
    first.sensor_record_repo.insert_record(temperature=20.0, humidity=50.0, moisture=45.0)
    first.shutdown()

    second = ServiceContainer.build(_config(database_path=str(db_path)), fake_sio, start_worker=False)
    try:
        assert len(second.record_store) == 1
        assert second.mirror.get_state().current_plant_type == "Tomato"
    finally:
        second.shutdown()


def test_build_subscribes_given_client_and_uses_telegram(fake_sio):
    mqtt_client = MagicMock()
    container = ServiceContainer.build(
        _config(telegram_bot_token="token", telegram_chat_id="42"),
        fake_sio,
        mqtt_client=mqtt_client,
        start_worker=False,
    )
    try:
        mqtt_client.subscribe.assert_called_once_with("devices/unit-01/data", container.bridge.on_mqtt_message)
        assert isinstance(container.threshold_monitor.notifier, TelegramNotifier)
    finally:
        container.shutdown()
    mqtt_client.disconnect.assert_called_once()


def test_periodic_mode_ticks_on_decision_interval(fake_sio):
    container = ServiceContainer.build(
        _config(decision_mode="periodic", decision_interval_seconds=7.0), fake_sio, start_worker=False
    )
    try:
        assert container.worker.interval_seconds == 7.0
        assert container.decision_engine.is_periodic
    finally:
        container.shutdown()


def test_default_config_seeds_bundled_profiles(fake_sio, monkeypatch):
    monkeypatch.delenv("IRRIGATION_PROFILE_SEED_PATH", raising=False)
    container = ServiceContainer.build(
        AppConfig(database_path=":memory:", enable_mqtt=False), fake_sio, start_worker=False
    )
    try:
        assert container.profile_store.list_plant_types() == ["Tomato", "Lettuce", "Cactus"]
        assert container.mirror.get_state().current_plant_type == "Tomato"
    finally:
        container.shutdown()
