"""Foundation settings loaded from environment variables."""

import logging
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from du_foundation.capacity import parse_tier
from du_foundation.models.capacity import CapacityTier

logger = logging.getLogger(__name__)

OUTPUT_DIR_NAME = "foundation"


class FoundationSettings(BaseSettings):
    """Configuration for du-foundation.

    Values are read from ``DU_FOUNDATION_*`` environment variables
    (case-insensitive) and optionally from a ``.env`` file in the working
    directory.
    """

    capacity: CapacityTier = CapacityTier.small
    project_root: Path | None = None
    output_dir: Path | None = None

    host: str = "127.0.0.1"
    port: int = 5000

    model_config = SettingsConfigDict(
        env_prefix="DU_FOUNDATION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("capacity", mode="before")
    @classmethod
    def _validate_capacity(cls, value: object) -> CapacityTier:
        if isinstance(value, str):
            return parse_tier(value)
        msg = f"capacity must be a string, got {type(value).__name__}"
        raise ValueError(msg)

    def resolved_project_root(self) -> Path:
        """Configured project root, else the current working directory."""
        return self.project_root if self.project_root is not None else Path.cwd()

    def resolved_output_dir(self, project_root: Path | None = None) -> Path:
        """Directory for reports, backups and the persisted configuration."""
        if self.output_dir is not None:
            return self.output_dir
        return (project_root or self.resolved_project_root()) / OUTPUT_DIR_NAME


settings = FoundationSettings()
