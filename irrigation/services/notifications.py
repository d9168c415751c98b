"""
Alert notifiers.

A notifier receives the list of warning labels produced by the threshold
monitor together with the reading that triggered them. The logging notifier
is the default; the Telegram notifier posts a plain-text message through the
Bot API when a token and chat id are configured.
"""

import logging
from typing import Protocol

import requests

from irrigation.domain.sensors import SensorReading

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org/bot{token}/sendMessage"


class Notifier(Protocol):
    def send_alert(self, warnings: list[str], reading: SensorReading) -> None: ...


def format_alert(warnings: list[str], reading: SensorReading) -> str:
    return (
        f"Irrigation alert: {', '.join(warnings)}\n"
        f"T:{reading.temperature}C H:{reading.humidity}% M:{reading.moisture}%"
    )


class LoggingNotifier:
    def send_alert(self, warnings: list[str], reading: SensorReading) -> None:
        logger.warning(format_alert(warnings, reading))


class TelegramNotifier:
    def __init__(self, bot_token: str, chat_id: str, timeout: float = 5.0, session: requests.Session | None = None):
        self.url = TELEGRAM_API_URL.format(token=bot_token)
        self.chat_id = chat_id
        self.timeout = timeout
        self.session = session or requests.Session()

    def send_alert(self, warnings: list[str], reading: SensorReading) -> None:
        payload = {"chat_id": self.chat_id, "text": format_alert(warnings, reading)}
        try:
            response = self.session.post(self.url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            logger.info("Telegram alert sent (%s warnings)", len(warnings))
        except requests.RequestException as e:
            # Notification failure must not affect sensor processing
            logger.error("Failed to send Telegram alert: %s", e)
