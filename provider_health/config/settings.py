"""Pydantic Settings for the provider health service.

All environment variables use the PROVIDER_HEALTH_ prefix.
Example: PROVIDER_HEALTH_PORT=18100, PROVIDER_HEALTH_RELAY_ADDRESS=:18100
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


def _default_config_dir() -> Path:
    return Path.home() / ".code-switch"


class HealthSettings(BaseSettings):
    """Provider health service configuration validated from environment variables."""

    # Service
    host: str = "127.0.0.1"
    port: int = Field(default=18100, ge=1, le=65535)
    log_level: str = "INFO"
    log_json: bool = True

    # Storage locations
    config_dir: Path = Field(default_factory=_default_config_dir)
    endpoints_file_name: str = "speedtest-endpoints.json"
    database_path: Path | None = None  # defaults to <config_dir>/app.db
    blacklist_settings_path: Path | None = None  # defaults to <config_dir>/blacklist.yaml

    # Blacklist defaults (used when the YAML settings file is absent)
    blacklist_failure_threshold: int = Field(default=3, ge=1)
    blacklist_duration_minutes: int = Field(default=30, ge=1)
    recovery_interval_seconds: int = Field(default=60, ge=1)

    # Endpoint discovery / probing
    relay_address: str | None = None  # e.g. ":18100" or "127.0.0.1:18100"
    probe_max_concurrency: int | None = Field(default=None, ge=1)

    model_config = {"env_prefix": "PROVIDER_HEALTH_"}

    @property
    def endpoints_path(self) -> Path:
        return self.config_dir / self.endpoints_file_name

    @property
    def resolved_database_path(self) -> Path:
        return self.database_path or self.config_dir / "app.db"

    @property
    def resolved_blacklist_settings_path(self) -> Path:
        return self.blacklist_settings_path or self.config_dir / "blacklist.yaml"
