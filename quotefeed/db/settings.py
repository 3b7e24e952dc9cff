"""Persisted pipeline settings."""

import logging
from typing import Dict

from psycopg import Connection
from pydantic import ValidationError

from ..config import PipelineSettings

logger = logging.getLogger(__name__)


class SettingsManager:
    """Key/value overrides for :class:`PipelineSettings`."""

    def get_all(self, conn: Connection) -> Dict[str, str]:
        """All stored settings."""
        with conn.cursor() as cur:
            cur.execute("SELECT key, value FROM settings ORDER BY key")
            return {row["key"]: row["value"] for row in cur.fetchall()}

    def set_value(self, conn: Connection, key: str, value: str) -> None:
        """Store one setting after validating it against the pipeline model."""
        if key not in PipelineSettings.model_fields:
            raise ValueError(f"Unknown setting: {key}")
        try:
            PipelineSettings.model_validate({key: value})
        except ValidationError as e:
            raise ValueError(f"Invalid value for {key}: {e.errors()[0]['msg']}")

        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO settings (key, value)
                VALUES (%s, %s)
                ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value, updated_at = CURRENT_TIMESTAMP
                """,
                (key, str(value)),
            )

    def load_pipeline_settings(self, conn: Connection, defaults: PipelineSettings) -> PipelineSettings:
        """Config-file defaults overlaid with stored values; invalid stored values are ignored."""
        return merge_settings(defaults, self.get_all(conn))


def merge_settings(defaults: PipelineSettings, stored: Dict[str, str]) -> PipelineSettings:
    """Overlay stored string values onto defaults, key by key."""
    merged = defaults.model_dump()
    for key, value in stored.items():
        if key not in PipelineSettings.model_fields:
            continue
        try:
            PipelineSettings.model_validate({**merged, key: value})
        except ValidationError:
            logger.warning("Ignoring invalid stored setting %s=%r", key, value)
            continue
        merged[key] = value
    return PipelineSettings.model_validate(merged)
