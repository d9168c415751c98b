from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Optional

from flask_socketio import SocketIO

from infrastructure.database.repositories.plant_profiles import PlantProfileRepository
from infrastructure.database.repositories.sensor_records import SensorRecordRepository
from infrastructure.database.sqlite_handler import SQLiteDatabaseHandler
from irrigation.config import AppConfig
from irrigation.domain.device_state import DeviceStateMirror
from irrigation.hardware.mqtt.mqtt_broker_wrapper import MQTTClientWrapper
from irrigation.services.decision_engine import DecisionEngine, MovingAverageRule
from irrigation.services.notifications import LoggingNotifier, Notifier, TelegramNotifier
from irrigation.services.pending_commands import PendingCommandTracker
from irrigation.services.profile_store import PlantProfileStore
from irrigation.services.record_store import SensorRecordStore
from irrigation.services.threshold_monitor import ThresholdMonitor
from irrigation.services.transport_bridge import TransportBridge
from irrigation.utils.emitters import EmitterService
from irrigation.workers.interval_worker import IntervalWorker

logger = logging.getLogger(__name__)

# Pending-command sweep cadence when the decision rule is event driven
DEFAULT_TICK_SECONDS = 1.0


@dataclass
class ServiceContainer:
    """Aggregate and manage core backend services."""

    config: AppConfig
    database: SQLiteDatabaseHandler
    sensor_record_repo: SensorRecordRepository
    plant_profile_repo: PlantProfileRepository
    record_store: SensorRecordStore
    profile_store: PlantProfileStore
    mirror: DeviceStateMirror
    decision_engine: DecisionEngine
    threshold_monitor: ThresholdMonitor
    pending_commands: PendingCommandTracker
    emitter_service: EmitterService
    executor: ThreadPoolExecutor
    mqtt_client: Optional[MQTTClientWrapper]
    bridge: TransportBridge
    worker: IntervalWorker

    @classmethod
    def build(
        cls,
        config: AppConfig,
        socketio: SocketIO,
        *,
        mqtt_client: MQTTClientWrapper | None = None,
        notifier: Notifier | None = None,
        start_worker: bool = True,
    ) -> "ServiceContainer":
        """Construct the service container with all dependencies.

        Args:
            config: Application configuration
            socketio: Initialised Socket.IO server used for the fan-out
            mqtt_client: Pre-built bus client; created from config when None and MQTT is enabled
            notifier: Alert sink; Telegram when configured, logging otherwise
            start_worker: Whether to start the interval worker thread
        """
        logger.info("Building ServiceContainer...")

        database = SQLiteDatabaseHandler(config.database_path)
        database.create_tables()
        sensor_record_repo = SensorRecordRepository(database)
        plant_profile_repo = PlantProfileRepository(database)

        executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="irrigation-io")

        profile_store = PlantProfileStore(plant_profile_repo)
        if config.profile_seed_path:
            profile_store.seed_from_file(config.profile_seed_path)

        record_store = SensorRecordStore(sensor_record_repo, executor, capacity=config.record_buffer_size)
        try:
            record_store.load_history()
        except Exception as e:
            logger.error("Failed to load latest sensor records from database: %s", e)

        default_profile = profile_store.default_profile()
        if default_profile is None:
            logger.warning("No plant profiles stored; auto irrigation stays idle until one is selected")
        else:
            logger.info("Loaded current plant profile for type: %s", default_profile.plant_type)

        emitter_service = EmitterService(socketio)
        mirror = DeviceStateMirror(profile=default_profile, on_change=emitter_service.broadcast)

        decision_engine = DecisionEngine(
            mode=config.decision_mode,
            average_rule=MovingAverageRule(window=config.average_window),
        )
        threshold_monitor = ThresholdMonitor(notifier or _build_notifier(config), executor)
        pending_commands = PendingCommandTracker(timeout_seconds=config.command_timeout_seconds)

        if mqtt_client is None and config.enable_mqtt:
            mqtt_client = MQTTClientWrapper(
                config.mqtt_broker_host,
                config.mqtt_broker_port,
                config.mqtt_client_id,
                username=config.mqtt_username,
                password=config.mqtt_password,
                use_tls=config.mqtt_use_tls,
                max_attempts=config.mqtt_connect_attempts,
                backoff_seconds=config.mqtt_backoff_seconds,
            )
        elif not config.enable_mqtt:
            logger.warning("MQTT disabled; device commands will be rejected")

        bridge = TransportBridge(
            mirror=mirror,
            record_store=record_store,
            profile_store=profile_store,
            decision_engine=decision_engine,
            threshold_monitor=threshold_monitor,
            pending=pending_commands,
            emitter=emitter_service,
            publisher=mqtt_client,
            data_topic=config.data_topic,
            commands_topic=config.commands_topic,
            forecast_topic=config.forecast_topic,
        )
        if mqtt_client is not None:
            bridge.subscribe(mqtt_client)

        interval = config.decision_interval_seconds if decision_engine.is_periodic else DEFAULT_TICK_SECONDS
        worker = IntervalWorker(bridge.tick, interval, name="BridgeTicker")
        if start_worker:
            worker.start()

        logger.info("ServiceContainer built successfully.")
        return cls(
            config=config,
            database=database,
            sensor_record_repo=sensor_record_repo,
            plant_profile_repo=plant_profile_repo,
            record_store=record_store,
            profile_store=profile_store,
            mirror=mirror,
            decision_engine=decision_engine,
            threshold_monitor=threshold_monitor,
            pending_commands=pending_commands,
            emitter_service=emitter_service,
            executor=executor,
            mqtt_client=mqtt_client,
            bridge=bridge,
            worker=worker,
        )

    def health(self) -> dict[str, Any]:
        mqtt_health = self.mqtt_client.health_status.to_dict() if self.mqtt_client is not None else None
        return {
            "status": "ok" if mqtt_health is None or mqtt_health["is_connected"] else "degraded",
            "mqtt": mqtt_health,
            "device": self.bridge.status(),
        }

    def shutdown(self) -> None:
        """Release external resources before process exit."""
        try:
            self.worker.shutdown()
        except Exception as e:
            logger.warning("Failed to stop interval worker: %s", e)

        # Queued writes are dropped rather than blocking exit on a stuck job
        self.executor.shutdown(wait=False, cancel_futures=True)

        if self.mqtt_client is not None:
            self.mqtt_client.disconnect()
        self.database.close()
        logger.info("ServiceContainer shutdown complete.")


def _build_notifier(config: AppConfig) -> Notifier:
    if config.telegram_bot_token and config.telegram_chat_id:
        logger.info("Critical sensor alerts go to Telegram chat %s", config.telegram_chat_id)
        return TelegramNotifier(config.telegram_bot_token, config.telegram_chat_id)
    return LoggingNotifier()
