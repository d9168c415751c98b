from __future__ import annotations

from typing import Any

from infrastructure.database.ops.plant_profiles import PlantProfileOperations


class PlantProfileRepository:
    """Expose stored plant profiles."""

    def __init__(self, backend: PlantProfileOperations) -> None:
        self._backend = backend

    def upsert_profile(self, plant_type: str, safe_thresholds: dict[str, Any]) -> None:
        self._backend.upsert_plant_profile(plant_type, safe_thresholds)

    def get_profile(self, plant_type: str) -> dict[str, Any] | None:
        return self._backend.get_plant_profile(plant_type)

    def list_profiles(self) -> list[dict[str, Any]]:
        return self._backend.list_plant_profiles()

    def list_plant_types(self) -> list[str]:
        return self._backend.list_plant_types()
