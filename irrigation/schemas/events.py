from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CommandAckPayload(BaseModel):
    """Reply sent only to the client that issued a command."""

    success: bool
    message: str


class SensorUpdatePayload(BaseModel):
    """Broadcast for every ingested reading."""

    success: bool = True
    data: dict[str, Any]

    @classmethod
    def from_reading(cls, reading: dict[str, float]) -> "SensorUpdatePayload":
        return cls(data={"sensorData": reading})


class CommandTimeoutPayload(BaseModel):
    """Tells the requester its command was never confirmed by the device."""

    field: str
    value: Any
    message: str


class WeatherUpdatePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    rain_probability: int = Field(alias="rainProbability", ge=0, le=100)
