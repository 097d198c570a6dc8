"""Configuration module: service settings and blacklist policy providers."""

from provider_health.config.blacklist_policy import (
    BlacklistPolicy,
    BlacklistSettingsProvider,
    StaticBlacklistSettings,
    YamlBlacklistSettings,
)
from provider_health.config.settings import HealthSettings

__all__ = [
    "BlacklistPolicy",
    "BlacklistSettingsProvider",
    "HealthSettings",
    "StaticBlacklistSettings",
    "YamlBlacklistSettings",
]
