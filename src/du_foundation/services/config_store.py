"""Persisted Foundation configuration (the selected capacity tier).

Stored as ``foundation-config.json`` in the output directory.  A missing or
unreadable file falls back to the capacity configured in settings.
"""

import json
import logging
import os
import tempfile
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, ValidationError, field_validator

from du_foundation.capacity import parse_tier
from du_foundation.models.capacity import CapacityTier
from du_foundation.settings import settings

logger = logging.getLogger(__name__)

CONFIG_FILE = "foundation-config.json"


class StoredConfig(BaseModel):
    foundationCapacity: CapacityTier
    updatedAt: str | None = None

    @field_validator("foundationCapacity", mode="before")
    @classmethod
    def _known_tier(cls, value: object) -> CapacityTier:
        if not isinstance(value, str):
            msg = "foundationCapacity must be a string"
            raise ValueError(msg)
        return parse_tier(value)


def config_path(output_dir: Path | None = None) -> Path:
    return (output_dir or settings.resolved_output_dir()) / CONFIG_FILE


def load_config(output_dir: Path | None = None) -> StoredConfig:
    """Load the stored configuration, falling back to the settings default."""
    path = config_path(output_dir)
    if path.exists():
        try:
            return StoredConfig.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError):
            logger.exception("Failed to read %s, using default capacity", path)
    return StoredConfig(foundationCapacity=settings.capacity)


def save_config(capacity: CapacityTier | str, output_dir: Path | None = None) -> StoredConfig:
    """Validate *capacity* and atomically persist it.

    Raises :class:`~du_foundation.capacity.UnknownTierError` before anything
    is written when the tier is unknown.
    """
    config = StoredConfig(
        foundationCapacity=parse_tier(capacity),
        updatedAt=datetime.now(UTC).isoformat(),
    )
    path = config_path(output_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), prefix=".config-", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(config.model_dump(mode="json"), f, indent=2)
        Path(tmp_path).replace(path)
    except Exception:
        Path(tmp_path).unlink(missing_ok=True)
        raise
    logger.info("Foundation capacity set to %s", config.foundationCapacity)
    return config
