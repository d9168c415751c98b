"""
Plant Profile Store
===================

Read-mostly access to the named safe-threshold profiles. Profiles are
created out of band (seed file or administrative tooling); at runtime the
bridge only looks them up and lists their names.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from infrastructure.database.repositories.plant_profiles import PlantProfileRepository
from irrigation.domain.exceptions import ProfileNotFoundError
from irrigation.domain.plant_profile import PlantProfile

logger = logging.getLogger(__name__)


class PlantProfileStore:
    def __init__(self, repository: PlantProfileRepository) -> None:
        self.repository = repository

    @staticmethod
    def _to_profile(row: dict) -> PlantProfile | None:
        try:
            return PlantProfile.from_dict(row)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Ignoring invalid plant profile %s: %s", row.get("plant_type"), exc)
            return None

    def get(self, plant_type: str) -> PlantProfile:
        """
        Look up a profile by plant type.

        Raises:
            ProfileNotFoundError: no valid profile is stored under ``plant_type``.
        """
        row = self.repository.get_profile(plant_type)
        profile = self._to_profile(row) if row else None
        if profile is None:
            raise ProfileNotFoundError(f"Plant profile not found: {plant_type}", detail={"plant_type": plant_type})
        return profile

    def list_profiles(self) -> list[PlantProfile]:
        profiles = (self._to_profile(row) for row in self.repository.list_profiles())
        return [profile for profile in profiles if profile is not None]

    def list_plant_types(self) -> list[str]:
        return self.repository.list_plant_types()

    def default_profile(self) -> PlantProfile | None:
        """The first stored profile, selected at startup."""
        profiles = self.list_profiles()
        return profiles[0] if profiles else None

    def save(self, profile: PlantProfile) -> None:
        self.repository.upsert_profile(profile.plant_type, profile.safe_thresholds.to_dict())

    def seed_from_file(self, path: str | Path) -> int:
        """
        Upsert every profile listed in a JSON file.

        The file holds a list of ``{"plantType": ..., "safeThresholds": {...}}``
        objects. Invalid entries are skipped with a warning.
        """
        seed_path = Path(path)
        try:
            entries = json.loads(seed_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.error("Could not read plant profile seed %s: %s", seed_path, exc)
            return 0

        if not isinstance(entries, list):
            logger.error("Plant profile seed %s must contain a JSON list", seed_path)
            return 0

        seeded = 0
        for entry in entries:
            profile = self._to_profile(entry) if isinstance(entry, dict) else None
            if profile is None:
                continue
            self.save(profile)
            seeded += 1
        logger.info("Seeded %s plant profiles from %s", seeded, seed_path)
        return seeded
