"""
Configuration for the Smart Irrigation Bridge
=============================================
Runtime settings for the MQTT bridge, Socket.IO fan-out, persistence and the
auto-irrigation decision engine. Every value can be overridden through an
``IRRIGATION_*`` environment variable.
Setups the logging configuration as well.
"""

import os
from contextlib import suppress
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "t", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer.") from None


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be a number.") from None


DECISION_MODES = ("event", "periodic")

# Bundled profiles; set IRRIGATION_PROFILE_SEED_PATH="" to start with an empty store
DEFAULT_PROFILE_SEED_PATH = str(Path(__file__).resolve().parent / "data" / "plant_profiles.json")


@dataclass
class AppConfig:
    """Runtime configuration loaded from environment variables."""

    environment: str = field(default_factory=lambda: os.getenv("IRRIGATION_ENV", "development"))
    secret_key: str = field(default_factory=lambda: os.getenv("IRRIGATION_SECRET_KEY", "IrrigationDevSecretKey"))
    database_path: str = field(default_factory=lambda: os.getenv("IRRIGATION_DATABASE_PATH", "database/irrigation.db"))
    profile_seed_path: str = field(
        default_factory=lambda: os.getenv("IRRIGATION_PROFILE_SEED_PATH", DEFAULT_PROFILE_SEED_PATH)
    )

    # MQTT bus (device-facing)
    enable_mqtt: bool = field(default_factory=lambda: _env_bool("IRRIGATION_ENABLE_MQTT", True))
    mqtt_broker_host: str = field(default_factory=lambda: os.getenv("IRRIGATION_MQTT_HOST", "localhost"))
    mqtt_broker_port: int = field(default_factory=lambda: _env_int("IRRIGATION_MQTT_PORT", 1883))
    mqtt_username: str = field(default_factory=lambda: os.getenv("IRRIGATION_MQTT_USERNAME", ""))
    mqtt_password: str = field(default_factory=lambda: os.getenv("IRRIGATION_MQTT_PASSWORD", ""))
    mqtt_use_tls: bool = field(default_factory=lambda: _env_bool("IRRIGATION_MQTT_TLS", False))
    mqtt_client_id: str = field(default_factory=lambda: os.getenv("IRRIGATION_MQTT_CLIENT_ID", ""))
    mqtt_connect_attempts: int = field(default_factory=lambda: _env_int("IRRIGATION_MQTT_CONNECT_ATTEMPTS", 5))
    mqtt_backoff_seconds: float = field(default_factory=lambda: _env_float("IRRIGATION_MQTT_BACKOFF_SECONDS", 1.0))
    device_id: str = field(default_factory=lambda: os.getenv("IRRIGATION_DEVICE_ID", "esp32-01"))

    # Socket.IO fan-out (client-facing)
    socketio_cors_origins: str = field(default_factory=lambda: os.getenv("IRRIGATION_SOCKETIO_CORS", "*"))

    # Sensor record buffer
    record_buffer_size: int = field(default_factory=lambda: _env_int("IRRIGATION_RECORD_BUFFER_SIZE", 20))

    # Decision engine
    decision_mode: str = field(default_factory=lambda: os.getenv("IRRIGATION_DECISION_MODE", "event"))
    decision_interval_seconds: float = field(
        default_factory=lambda: _env_float("IRRIGATION_DECISION_INTERVAL_SECONDS", 10.0)
    )
    average_window: int = field(default_factory=lambda: _env_int("IRRIGATION_AVERAGE_WINDOW", 5))
    command_timeout_seconds: float = field(
        default_factory=lambda: _env_float("IRRIGATION_COMMAND_TIMEOUT_SECONDS", 30.0)
    )

    # Notifications
    telegram_bot_token: str = field(default_factory=lambda: os.getenv("IRRIGATION_TELEGRAM_BOT_TOKEN", ""))
    telegram_chat_id: str = field(default_factory=lambda: os.getenv("IRRIGATION_TELEGRAM_CHAT_ID", ""))

    DEBUG: bool = field(default_factory=lambda: _env_bool("IRRIGATION_DEBUG", False))
    log_level: str = field(default_factory=lambda: os.getenv("IRRIGATION_LOG_LEVEL", "INFO"))

    # Default insecure secret key - used only for detection
    _DEFAULT_SECRET_KEY: str = field(default="IrrigationDevSecretKey", init=False, repr=False)

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.environment == "production" and self.secret_key == self._DEFAULT_SECRET_KEY:
            raise RuntimeError(
                "SECURITY ERROR: Cannot use default secret key in production!\n"
                "Set IRRIGATION_SECRET_KEY environment variable to a secure random value."
            )
        if self.decision_mode not in DECISION_MODES:
            raise ValueError(f"decision_mode must be one of {DECISION_MODES}, got {self.decision_mode!r}")
        if self.record_buffer_size < 1:
            raise ValueError("record_buffer_size must be at least 1")
        if self.average_window < 1:
            raise ValueError("average_window must be at least 1")

    @property
    def data_topic(self) -> str:
        return f"devices/{self.device_id}/data"

    @property
    def commands_topic(self) -> str:
        return f"devices/{self.device_id}/commands"

    @property
    def forecast_topic(self) -> str:
        return f"devices/{self.device_id}/forecast"

    def as_flask_config(self) -> dict[str, Any]:
        """Render configuration values for Flask application."""
        return {
            "ENV": self.environment,
            "SECRET_KEY": self.secret_key,
            "DATABASE_PATH": self.database_path,
            "MQTT_BROKER_HOST": self.mqtt_broker_host,
            "MQTT_BROKER_PORT": self.mqtt_broker_port,
            "DEVICE_ID": self.device_id,
            "SOCKETIO_CORS_ALLOWED_ORIGINS": self.socketio_cors_origins,
            "DEBUG": self.DEBUG,
        }


def setup_logging(debug: bool = False, log_level: str = "INFO") -> None:
    """Setup logging configuration."""
    import logging
    import sys
    from logging.handlers import RotatingFileHandler

    level = logging.DEBUG if debug else logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)

    # Avoid adding duplicate handlers when create_app is called multiple times
    has_console = any(getattr(h, "name", "") == "irrigation_console" for h in root.handlers)
    has_file = any(getattr(h, "name", "") == "irrigation_file" for h in root.handlers)
    added_handler = False

    stream = sys.stdout
    with suppress(AttributeError, ValueError):
        stream.reconfigure(encoding="utf-8", errors="replace")
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    if not has_console:
        console_handler = logging.StreamHandler(stream=stream)
        console_handler.name = "irrigation_console"
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)
        added_handler = True

    if not has_file:
        os.makedirs("logs", exist_ok=True)
        file_handler = RotatingFileHandler(
            "logs/irrigation.log",
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.name = "irrigation_file"
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
        added_handler = True

    for handler in root.handlers:
        if getattr(handler, "name", "") in {"irrigation_console", "irrigation_file"}:
            handler.setLevel(level)

    if added_handler:
        root.info("Logging initialized at level: %s", logging.getLevelName(level))

    # Socket.IO/Engine.IO polling logs are noisy at INFO
    if _env_bool("IRRIGATION_SILENCE_SOCKETIO", True):
        logging.getLogger("socketio").setLevel(logging.WARNING)
        logging.getLogger("engineio").setLevel(logging.WARNING)
    logging.getLogger("werkzeug").setLevel(logging.WARNING)


def load_config() -> AppConfig:
    """Helper for callers to load and validate configuration."""
    return AppConfig()
