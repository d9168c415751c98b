"""
Helpers for constructing paho-mqtt 2.x clients.

Clients use the VERSION2 callback API and MQTT v3.1.1, which is what the
field controller's PubSubClient firmware speaks.
"""
from __future__ import annotations

import ssl
from typing import Any, Dict

import paho.mqtt.client as mqtt


def create_mqtt_client(
    client_id: str = "",
    *,
    username: str = "",
    password: str = "",
    use_tls: bool = False,
    **kwargs: Any,
) -> mqtt.Client:
    """
    Build an MQTT client with credentials and TLS applied.

    Args:
        client_id: Optional client identifier.
        username: Broker user name; credentials are skipped when empty.
        password: Broker password.
        use_tls: Verify the broker certificate against the system CA store.
        kwargs: Extra keyword arguments forwarded to the client constructor.
    """
    client_kwargs: Dict[str, Any] = {
        "callback_api_version": mqtt.CallbackAPIVersion.VERSION2,
        "client_id": client_id or "",
        "protocol": kwargs.pop("protocol", mqtt.MQTTv311),
    }
    client_kwargs.update(kwargs)

    client = mqtt.Client(**client_kwargs)
    if username:
        client.username_pw_set(username, password or None)
    if use_tls:
        client.tls_set(cert_reqs=ssl.CERT_REQUIRED)
    return client
