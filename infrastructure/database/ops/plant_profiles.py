from __future__ import annotations

import json
import logging
import sqlite3
from typing import Any

from infrastructure.utils.time import iso_now

logger = logging.getLogger(__name__)


class PlantProfileOperations:
    """Named safe-threshold profiles, keyed by plant type."""

    @staticmethod
    def _decode_profile_row(row: sqlite3.Row) -> dict[str, Any] | None:
        try:
            thresholds = json.loads(row["safe_thresholds"])
        except (TypeError, ValueError):
            logger.warning("Failed to decode thresholds for plant profile %s", row["plant_type"])
            return None
        return {"plant_type": row["plant_type"], "safe_thresholds": thresholds}

    def upsert_plant_profile(self, plant_type: str, safe_thresholds: dict[str, Any]) -> None:
        with self.connection() as db:
            db.execute(
                """
                INSERT INTO PlantProfiles (plant_type, safe_thresholds, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(plant_type) DO UPDATE SET
                    safe_thresholds = excluded.safe_thresholds,
                    updated_at = excluded.updated_at
                """,
                (plant_type, json.dumps(safe_thresholds), iso_now()),
            )

    def get_plant_profile(self, plant_type: str) -> dict[str, Any] | None:
        try:
            row = (
                self.get_db()
                .execute("SELECT plant_type, safe_thresholds FROM PlantProfiles WHERE plant_type = ?", (plant_type,))
                .fetchone()
            )
        except sqlite3.Error as exc:
            logger.error("Error loading plant profile %s: %s", plant_type, exc)
            return None
        return self._decode_profile_row(row) if row else None

    def list_plant_profiles(self) -> list[dict[str, Any]]:
        """All profiles in insertion order."""
        try:
            cursor = self.get_db().execute(
                "SELECT plant_type, safe_thresholds FROM PlantProfiles ORDER BY profile_id ASC"
            )
        except sqlite3.Error as exc:
            logger.error("Error listing plant profiles: %s", exc)
            return []
        profiles = []
        for row in cursor.fetchall():
            decoded = self._decode_profile_row(row)
            if decoded is not None:
                profiles.append(decoded)
        return profiles

    def list_plant_types(self) -> list[str]:
        try:
            cursor = self.get_db().execute("SELECT plant_type FROM PlantProfiles ORDER BY profile_id ASC")
            return [row["plant_type"] for row in cursor.fetchall()]
        except sqlite3.Error as exc:
            logger.error("Error listing plant types: %s", exc)
            return []
