from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from paho.mqtt.packettypes import PacketTypes
from paho.mqtt.reasoncodes import ReasonCode

from irrigation.hardware.mqtt.mqtt_broker_wrapper import HealthStatus, MQTTClientWrapper

DATA_TOPIC = "devices/esp32-01/data"


class DummyMessage:
    def __init__(self, topic: str, payload: bytes):
        self.topic = topic
        self.payload = payload


class DummyClient:
    def __init__(self, connect_failures: int = 0):
        self.on_message = None
        self.on_connect = None
        self.on_disconnect = None
        self.subscriptions = []
        self.published = []
        self.connect_failures = connect_failures
        self.connect_calls = 0
        self.loop_started = False
        self.async_connects = []

    def connect(self, *_args, **_kwargs):
        self.connect_calls += 1
        if self.connect_calls <= self.connect_failures:
            raise ConnectionRefusedError("broker down")
        return 0

    def reconnect_delay_set(self, **_kwargs):
        return None

    def connect_async(self, host, port, keepalive=60):
        self.async_connects.append((host, port, keepalive))

    def loop_start(self):
        self.loop_started = True

    def disconnect(self):
        return None

    def loop_stop(self):
        return None

    def subscribe(self, topic):
        self.subscriptions.append(topic)
        return (0, len(self.subscriptions))

    def publish(self, topic, payload):
        self.published.append((topic, payload))
        return SimpleNamespace(rc=0, topic=topic, payload=payload)


def build_wrapper(dummy_client: DummyClient, **kwargs) -> MQTTClientWrapper:
    with patch(
        "irrigation.hardware.mqtt.mqtt_broker_wrapper.create_mqtt_client",
        return_value=dummy_client,
    ):
        wrapper = MQTTClientWrapper(broker="test", port=1883, sleep=lambda _s: None, **kwargs)
    return wrapper


def test_wrapper_fans_out_callbacks_without_overwrite():
    dummy_client = DummyClient()
    wrapper = build_wrapper(dummy_client)
    events = []

    def data_cb(_client, _userdata, msg):
        events.append(("data", msg.topic, msg.payload))

    def wildcard_cb(_client, _userdata, msg):
        events.append(("wildcard", msg.topic))

    wrapper.subscribe(DATA_TOPIC, data_cb)
    wrapper.subscribe("devices/+/data", wildcard_cb)

    wrapper._dispatch_message(wrapper.client, None, DummyMessage(DATA_TOPIC, b'{"sensorData":{}}'))
    wrapper._dispatch_message(wrapper.client, None, DummyMessage("devices/esp32-02/data", b"{}"))

    assert ("data", DATA_TOPIC, b'{"sensorData":{}}') in events
    assert ("wildcard", DATA_TOPIC) in events
    assert ("wildcard", "devices/esp32-02/data") in events
    assert len(events) == 3
    assert wrapper.client.on_message == wrapper._dispatch_message


def test_failing_callback_does_not_block_others():
    wrapper = build_wrapper(DummyClient())
    hits = []

    def broken(_client, _userdata, _msg):
        raise ValueError("bad handler")

    wrapper.subscribe(DATA_TOPIC, broken)
    wrapper.subscribe(DATA_TOPIC, lambda _c, _u, msg: hits.append(msg.topic))

    wrapper._dispatch_message(wrapper.client, None, DummyMessage(DATA_TOPIC, b"{}"))
    assert hits == [DATA_TOPIC]


def test_connect_retries_with_backoff_then_succeeds():
    dummy_client = DummyClient(connect_failures=2)
    delays = []
    with patch(
        "irrigation.hardware.mqtt.mqtt_broker_wrapper.create_mqtt_client",
        return_value=dummy_client,
    ):
        wrapper = MQTTClientWrapper(broker="test", port=1883, backoff_seconds=0.5, sleep=delays.append)

    assert wrapper.connected is True
    assert dummy_client.connect_calls == 3
    assert delays == [0.5, 1.0]
    assert dummy_client.loop_started is True
    assert wrapper.health_status.connection_attempts == 3


def test_unreachable_broker_hands_off_to_background_reconnect():
    dummy_client = DummyClient(connect_failures=99)
    wrapper = build_wrapper(dummy_client, max_attempts=3)

    assert wrapper.connected is False
    assert dummy_client.connect_calls == 3
    assert dummy_client.async_connects == [("test", 1883, 60)]
    assert dummy_client.loop_started is True
    assert "broker down" in wrapper.health_status.last_error
    assert wrapper.publish("devices/esp32-01/commands", "{}") is False


def test_reconnect_restores_subscriptions():
    dummy_client = DummyClient()
    wrapper = build_wrapper(dummy_client)
    wrapper.subscribe(DATA_TOPIC, MagicMock(__name__="cb"))
    dummy_client.subscriptions.clear()

    wrapper._on_disconnect(dummy_client, None, None, ReasonCode(PacketTypes.DISCONNECT, identifier=0x80))
    assert wrapper.connected is False

    wrapper._on_connect(dummy_client, None, None, ReasonCode(PacketTypes.CONNACK, identifier=0))
    assert wrapper.connected is True
    assert dummy_client.subscriptions == [DATA_TOPIC]


def test_publish_tracks_health():
    dummy_client = DummyClient()
    wrapper = build_wrapper(dummy_client)

    assert wrapper.publish("devices/esp32-01/commands", '{"action":"PUMP","enable":true}') is True
    assert dummy_client.published == [("devices/esp32-01/commands", '{"action":"PUMP","enable":true}')]
    assert wrapper.health_status.successful_publishes == 1


def test_health_status_success_rate():
    status = HealthStatus(successful_publishes=3, failed_publishes=1)
    assert status.success_rate == 75.0
    assert status.to_dict()["publish_success_rate"] == 75.0


def test_late_broker_connect_subscribes_registered_topics():
    dummy_client = DummyClient(connect_failures=99)
    wrapper = build_wrapper(dummy_client, max_attempts=2)
    wrapper.subscribe(DATA_TOPIC, MagicMock(__name__="cb"))

    wrapper._on_connect(dummy_client, None, None, ReasonCode(PacketTypes.CONNACK, identifier=0))

    assert wrapper.connected is True
    assert DATA_TOPIC in dummy_client.subscriptions
