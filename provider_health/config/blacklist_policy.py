"""Blacklist threshold / cooldown settings providers.

The blacklist tracker asks a settings provider for the current
``(failure_threshold, duration_minutes)`` pair on every failure report, so
edits to the YAML file take effect without a restart. Providers raise
``ConfigError`` when the values cannot be produced; the tracker is
responsible for falling back to its built-in defaults.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

import yaml
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from provider_health.middleware.error_handler import ConfigError

logger = logging.getLogger(__name__)


class BlacklistPolicy(BaseModel):
    """Failure threshold and blacklist window length."""

    failure_threshold: int = Field(default=3, ge=1)
    duration_minutes: int = Field(default=30, ge=1)


class BlacklistSettingsProvider(Protocol):
    def get_blacklist_settings(self) -> tuple[int, int]:
        """Return ``(failure_threshold, duration_minutes)``."""
        ...


class StaticBlacklistSettings:
    """Fixed settings, typically taken from ``HealthSettings``."""

    def __init__(self, failure_threshold: int = 3, duration_minutes: int = 30) -> None:
        self._policy = BlacklistPolicy(
            failure_threshold=failure_threshold,
            duration_minutes=duration_minutes,
        )

    def get_blacklist_settings(self) -> tuple[int, int]:
        return self._policy.failure_threshold, self._policy.duration_minutes


class YamlBlacklistSettings:
    """Read the blacklist policy from a YAML file on every call.

    Expected document::

        failure_threshold: 3
        duration_minutes: 30

    Args:
        yaml_path: Location of the YAML document.
        fallback: Policy returned when the file does not exist. Without a
            fallback a missing file is a ``ConfigError``.
    """

    def __init__(self, yaml_path: str | Path, fallback: BlacklistPolicy | None = None) -> None:
        self._path = Path(yaml_path)
        self._fallback = fallback

    def load_policy(self) -> BlacklistPolicy:
        if not self._path.exists():
            if self._fallback is not None:
                return self._fallback
            raise ConfigError(f"Blacklist settings file not found: {self._path}")

        try:
            raw = yaml.safe_load(self._path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
            raise ConfigError(f"Failed to read blacklist settings at {self._path}: {exc}") from exc

        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ConfigError(f"Blacklist settings at {self._path} must be a mapping")

        try:
            return BlacklistPolicy.model_validate(raw)
        except PydanticValidationError as exc:
            raise ConfigError(f"Invalid blacklist settings at {self._path}: {exc}") from exc

    def get_blacklist_settings(self) -> tuple[int, int]:
        policy = self.load_policy()
        return policy.failure_threshold, policy.duration_minutes
