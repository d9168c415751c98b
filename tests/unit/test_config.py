from pathlib import Path

import pytest

from irrigation.config import DEFAULT_PROFILE_SEED_PATH, AppConfig, load_config


def test_defaults(monkeypatch):
    for name in ("IRRIGATION_DEVICE_ID", "IRRIGATION_DECISION_MODE", "IRRIGATION_RECORD_BUFFER_SIZE"):
        monkeypatch.delenv(name, raising=False)
    config = load_config()

    assert config.device_id == "esp32-01"
    assert config.decision_mode == "event"
    assert config.record_buffer_size == 20
    assert config.command_timeout_seconds == 30.0
    assert config.data_topic == "devices/esp32-01/data"
    assert config.commands_topic == "devices/esp32-01/commands"
    assert config.forecast_topic == "devices/esp32-01/forecast"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("IRRIGATION_DEVICE_ID", "garden-7")
    monkeypatch.setenv("IRRIGATION_DECISION_MODE", "periodic")
    monkeypatch.setenv("IRRIGATION_DECISION_INTERVAL_SECONDS", "2.5")
    monkeypatch.setenv("IRRIGATION_MQTT_TLS", "yes")
    config = AppConfig()

    assert config.commands_topic == "devices/garden-7/commands"
    assert config.decision_mode == "periodic"
    assert config.decision_interval_seconds == 2.5
    assert config.mqtt_use_tls is True


def test_invalid_values_rejected(monkeypatch):
    monkeypatch.setenv("IRRIGATION_MQTT_PORT", "eighteen")
    with pytest.raises(ValueError, match="IRRIGATION_MQTT_PORT"):
        AppConfig()

    monkeypatch.delenv("IRRIGATION_MQTT_PORT")
    monkeypatch.setenv("IRRIGATION_DECISION_MODE", "hourly")
    with pytest.raises(ValueError, match="decision_mode"):
        AppConfig()


def test_default_secret_rejected_in_production(monkeypatch):
    monkeypatch.setenv("IRRIGATION_ENV", "production")
    monkeypatch.delenv("IRRIGATION_SECRET_KEY", raising=False)
    with pytest.raises(RuntimeError, match="SECURITY ERROR"):
        AppConfig()


def test_profile_seed_defaults_to_bundled_file(monkeypatch):
    monkeypatch.delenv("IRRIGATION_PROFILE_SEED_PATH", raising=False)
    config = AppConfig()

    assert config.profile_seed_path == DEFAULT_PROFILE_SEED_PATH
    assert Path(config.profile_seed_path).is_file()

    monkeypatch.setenv("IRRIGATION_PROFILE_SEED_PATH", "")
    assert AppConfig().profile_seed_path == ""
