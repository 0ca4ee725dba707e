"""
Application settings using Pydantic.

Provides environment-based configuration loading with PHASELINE_ prefix.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PHASES = [
    "boot",
    "configure",
    "load",
    "validate",
    "prepare",
    "execute",
    "render",
    "persist",
]


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PHASELINE_",
        extra="ignore",
    )

    # Lifecycle
    phases: list[str] = list(DEFAULT_PHASES)

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Pipeline definition (YAML)
    pipeline_file: str | None = None

    # Durability: checkpoint file written after every commit
    checkpoint_path: str | None = None

    # Filesystem effects
    workspace_root: str = "."
    backup_dir: str = ".phaseline/backups"

    # Directories searched for relative handler file references
    handler_paths: list[str] = []


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
