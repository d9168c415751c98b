"""
    This module provides a wrapper class for handling MQTT client functionality.
    It includes methods for connecting, disconnecting, publishing, and subscribing
    to the device bus, with bounded connection retries and logging for each
    operation.
"""

import logging
import os
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import Callable

import paho.mqtt.client as mqtt

from irrigation.hardware.mqtt.client_factory import create_mqtt_client
from irrigation.utils.time import utc_now

# Dedicated rotating log for bus traffic
_mqtt_logger = logging.getLogger("irrigation.mqtt")
if not _mqtt_logger.handlers:
    os.makedirs("logs", exist_ok=True)
    _mqtt_handler = RotatingFileHandler(
        "logs/devices_mqtt.log",
        maxBytes=10 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    _mqtt_handler.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(message)s"))
    _mqtt_logger.addHandler(_mqtt_handler)
    _mqtt_logger.setLevel(logging.INFO)

_LOG_MQTT_DISPATCH = os.getenv("IRRIGATION_LOG_MQTT_DISPATCH", "").lower() in {"1", "true", "t", "yes", "on"}

MessageCallback = Callable[[mqtt.Client, object, mqtt.MQTTMessage], None]


@dataclass
class HealthStatus:
    """
    Tracks the health status of the MQTT client connection.
    """

    is_connected: bool = False
    last_error: str | None = None
    last_error_time: datetime | None = None
    connection_attempts: int = 0
    successful_publishes: int = 0
    failed_publishes: int = 0
    active_subscriptions: int = 0

    @property
    def success_rate(self) -> float:
        """Calculate publish success rate percentage"""
        total_publishes = self.successful_publishes + self.failed_publishes
        if total_publishes == 0:
            return 0.0
        return (self.successful_publishes / total_publishes) * 100

    def mark_connected(self):
        self.is_connected = True
        self.last_error = None
        self.last_error_time = None

    def mark_disconnected(self):
        self.is_connected = False

    def record_error(self, error: Exception | str):
        self.last_error = str(error)
        self.last_error_time = utc_now()

    def to_dict(self):
        """Return health status as a dictionary."""
        return {
            "is_connected": self.is_connected,
            "last_error": self.last_error,
            "last_error_time": self.last_error_time.isoformat() if self.last_error_time else None,
            "connection_attempts": self.connection_attempts,
            "successful_publishes": self.successful_publishes,
            "failed_publishes": self.failed_publishes,
            "active_subscriptions": self.active_subscriptions,
            "publish_success_rate": round(self.success_rate, 2),
        }


class MQTTClientWrapper:
    """
    Wrapper class for handling MQTT client functionality.

    The initial connection is retried ``max_attempts`` times with exponential
    backoff; once connected, paho's network loop reconnects on its own and
    every registered subscription is restored in ``_on_connect``.
    """

    def __init__(
        self,
        broker,
        port,
        client_id="",
        *,
        username="",
        password="",
        use_tls=False,
        max_attempts=5,
        backoff_seconds=1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initializes the MQTT client wrapper.

        Args:
            broker (str): The MQTT broker address.
            port (int): The MQTT broker port.
            client_id (str, optional): The MQTT client ID. Defaults to "".
            username (str, optional): Broker user name.
            password (str, optional): Broker password.
            use_tls (bool, optional): Connect over TLS.
            max_attempts (int, optional): Initial connection attempts before giving up.
            backoff_seconds (float, optional): First retry delay, doubled on each attempt.
        """
        self.broker = broker
        self.port = port
        self.client_id = client_id
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep
        self.client = create_mqtt_client(client_id=client_id, username=username, password=password, use_tls=use_tls)
        self.connected = False
        self._callback_lock = threading.Lock()
        self._callbacks: list[tuple[str, MessageCallback]] = []
        self.client.on_message = self._dispatch_message
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect
        self.health_status = HealthStatus()
        self._connect()

    def _connect(self):
        """
        Connects to the MQTT broker, retrying with exponential backoff.
        """
        delay = self.backoff_seconds
        for attempt in range(1, self.max_attempts + 1):
            self.health_status.connection_attempts += 1
            try:
                self.client.connect(self.broker, self.port, 60)
                self.client.reconnect_delay_set(min_delay=1, max_delay=30)
                self.client.loop_start()  # Start the MQTT loop in a separate thread
                self.connected = True
                self.health_status.mark_connected()
                _mqtt_logger.info("Connected to MQTT broker %s:%s (attempt %s)", self.broker, self.port, attempt)
                return
            except Exception as e:
                self.connected = False
                self.health_status.record_error(e)
                _mqtt_logger.error(
                    "Error connecting to MQTT broker %s:%s (attempt %s/%s): %s",
                    self.broker,
                    self.port,
                    attempt,
                    self.max_attempts,
                    e,
                )
                if attempt < self.max_attempts:
                    self._sleep(delay)
                    delay *= 2

        _mqtt_logger.error(
            "MQTT broker %s:%s unreachable after %s attempts; retrying in the background",
            self.broker,
            self.port,
            self.max_attempts,
        )
        # paho's network loop keeps retrying the first connect; _on_connect resubscribes
        try:
            self.client.reconnect_delay_set(min_delay=1, max_delay=30)
            self.client.connect_async(self.broker, self.port, 60)
            self.client.loop_start()
        except Exception as e:
            self.health_status.record_error(e)
            _mqtt_logger.error("Could not start background MQTT reconnect: %s", e)

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        if getattr(reason_code, "is_failure", False):
            _mqtt_logger.error("MQTT connection refused: %s", reason_code)
            self.health_status.record_error(str(reason_code))
            return

        self.connected = True
        self.health_status.mark_connected()
        with self._callback_lock:
            topics = sorted({topic for topic, _ in self._callbacks})
        # Subscriptions do not survive a clean-session reconnect
        for topic in topics:
            client.subscribe(topic)
        if topics:
            _mqtt_logger.info("(Re)subscribed to %s topics after connect", len(topics))

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None):
        self.connected = False
        self.health_status.mark_disconnected()
        if getattr(reason_code, "is_failure", False):
            self.health_status.record_error(str(reason_code))
            _mqtt_logger.warning("Unexpected MQTT disconnect (%s); reconnecting", reason_code)
        else:
            _mqtt_logger.info("Disconnected from MQTT broker.")

    def disconnect(self):
        """
        Disconnects from the MQTT broker.
        """
        if self.connected:
            try:
                self.client.disconnect()
                self.client.loop_stop()
                self.connected = False
                self.health_status.mark_disconnected()
                with self._callback_lock:
                    self._callbacks.clear()
                _mqtt_logger.info("Disconnected from MQTT broker.")
            except Exception as e:
                _mqtt_logger.error("Error disconnecting from MQTT broker: %s", e)
                self.health_status.record_error(e)

    def publish(self, topic, payload) -> bool:
        """
        Publishes a message to the MQTT broker.

        Args:
            topic (str): The MQTT topic to publish to.
            payload (str): The message payload.

        Returns:
            bool: True when the message was handed to the client.
        """
        if not self.connected:
            _mqtt_logger.warning("MQTT client not connected. Cannot publish to %s.", topic)
            self.health_status.failed_publishes += 1
            return False
        try:
            msg_info = self.client.publish(topic, payload)
            if msg_info.rc == mqtt.MQTT_ERR_SUCCESS:
                self.health_status.successful_publishes += 1
                _mqtt_logger.info("Sent %s to %s", payload, topic)
                return True
            self.health_status.failed_publishes += 1
            _mqtt_logger.error("Failed to publish to %s: %s. MQTT result code: %s", topic, payload, msg_info.rc)
        except Exception as e:
            self.health_status.failed_publishes += 1
            self.health_status.record_error(e)
            _mqtt_logger.error("Error publishing to MQTT: %s", e)
        return False

    def subscribe(self, topic, callback: MessageCallback):
        """
        Subscribes to a topic and sets a callback function.

        The callback is registered even while disconnected; the subscription is
        sent to the broker on the next successful connect.

        Args:
            topic (str): The MQTT topic to subscribe to.
            callback (Callable): The callback function to handle messages.
        """
        with self._callback_lock:
            self._callbacks.append((topic, callback))
            self.health_status.active_subscriptions = len(self._callbacks)

        if not self.connected:
            _mqtt_logger.warning("MQTT client not connected. Subscription to %s deferred.", topic)
            return
        try:
            result, _mid = self.client.subscribe(topic)
            if result == mqtt.MQTT_ERR_SUCCESS:
                _mqtt_logger.info("Subscribed to topic %s with callback %s", topic, callback.__name__)
            else:
                _mqtt_logger.error("Failed to subscribe to topic %s: result code %s", topic, result)
        except Exception as e:
            self.health_status.record_error(e)
            _mqtt_logger.error("Error subscribing to MQTT topic %s: %s", topic, e)

    def _dispatch_message(self, client, userdata, msg) -> None:
        """
        Fan out MQTT messages to all registered callbacks that match the topic
        using MQTT wildcard semantics.
        """
        if _LOG_MQTT_DISPATCH:
            _mqtt_logger.debug("MQTT DISPATCHER: topic=%s payload_len=%s", msg.topic, len(msg.payload))

        with self._callback_lock:
            callbacks = list(self._callbacks)

        handled = False
        for sub, callback in callbacks:
            try:
                if mqtt.topic_matches_sub(sub, msg.topic):
                    handled = True
                    callback(client, userdata, msg)
            except Exception as e:
                _mqtt_logger.error("Error in MQTT callback for topic %s: %s", sub, e, exc_info=True)

        if not handled:
            _mqtt_logger.warning("MQTT message on %s had no registered handlers", msg.topic)
