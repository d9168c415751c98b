"""Repository facades exposing typed accessors over low-level mixins."""

from infrastructure.database.repositories.plant_profiles import PlantProfileRepository
from infrastructure.database.repositories.sensor_records import SensorRecordRepository

__all__ = [
    "PlantProfileRepository",
    "SensorRecordRepository",
]
