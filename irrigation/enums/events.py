from enum import Enum


class WebSocketEvent(str, Enum):
    """Server -> client Socket.IO event names."""

    INITIAL_RECORDS = "initial_records"
    SYSTEM_STATE = "system_state"
    AVAILABLE_PLANTS = "available_plants"
    SENSOR_UPDATE = "sensor_update"
    PUMP_STATE_UPDATE = "pump_state_update"
    AUTO_STATE_UPDATE = "auto_state_update"
    PLANT_TYPE_UPDATE = "plant_type_update"
    COMMAND_ACK = "command_ack"
    COMMAND_TIMEOUT = "command_timeout"
    WEATHER_UPDATE = "weather_update"


class ClientCommand(str, Enum):
    """Client -> server Socket.IO event names."""

    PUMP = "pump"
    TOGGLE_AUTO_MODE = "toggle_auto_mode"
    CHANGE_PLANT_TYPE = "change_plant_type"


class DeviceAction(str, Enum):
    """Actions published on the device command topic."""

    PUMP = "PUMP"
    TOGGLE_AUTO = "TOGGLE_AUTO"
    SET_THRESHOLD = "SET_THRESHOLD"


class DeviceStateField(str, Enum):
    """Fields the device reports back after executing a command."""

    PUMP = "PUMP"
    AUTO_MODE = "AUTO_MODE"

    @property
    def broadcast_event(self) -> WebSocketEvent:
        if self is DeviceStateField.PUMP:
            return WebSocketEvent.PUMP_STATE_UPDATE
        return WebSocketEvent.AUTO_STATE_UPDATE


class MessageKind(str, Enum):
    """Discriminator of the inbound bus envelope."""

    SENSOR_DATA = "sensor_data"
    DEVICE_STATE = "device_state"
