"""Shared test fixtures for the provider health test suite."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from provider_health.blacklist.store import InMemoryFailureStore
from provider_health.blacklist.tracker import BlacklistTracker
from provider_health.config.blacklist_policy import StaticBlacklistSettings
from provider_health.config.settings import HealthSettings
from provider_health.speedtest.registry import EndpointRegistry
from provider_health.speedtest.sources import ConfigExtractor

START = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime = START) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)

    def unix(self) -> float:
        return self.current.timestamp()


# ---------------------------------------------------------------------------
# Settings fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def settings(tmp_path: Path) -> HealthSettings:
    """Settings rooted in a throwaway config directory."""
    return HealthSettings(config_dir=tmp_path, log_json=False)


# ---------------------------------------------------------------------------
# Component fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def failure_store() -> InMemoryFailureStore:
    return InMemoryFailureStore()


@pytest.fixture
def tracker(failure_store: InMemoryFailureStore, clock: FakeClock) -> BlacklistTracker:
    return BlacklistTracker(
        store=failure_store,
        settings_provider=StaticBlacklistSettings(failure_threshold=3, duration_minutes=30),
        clock=clock,
    )


@pytest.fixture
def registry(tmp_path: Path, clock: FakeClock) -> EndpointRegistry:
    return EndpointRegistry(tmp_path / "speedtest-endpoints.json", clock=clock.unix)


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    path = tmp_path / "configs"
    path.mkdir()
    return path


@pytest.fixture
def extractor(config_dir: Path) -> ConfigExtractor:
    return ConfigExtractor.default(config_dir)


@pytest.fixture
def write_config(config_dir: Path):
    """Write a JSON provider config file into the config directory."""

    def _write(name: str, payload: object) -> Path:
        path = config_dir / name
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    return _write
