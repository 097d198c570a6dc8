"""Unit tests for the persisted endpoint registry."""

from __future__ import annotations

import json
import logging

import pytest

from provider_health.middleware.error_handler import NotFoundError, PersistenceError, ValidationError
from provider_health.speedtest.registry import DEFAULT_ENDPOINTS, EndpointRegistry
from provider_health.speedtest.sources import ConfigExtractor
from provider_health.speedtest.types import EndpointRecord


def _read(registry: EndpointRegistry) -> list[dict]:
    return json.loads(registry.path.read_text(encoding="utf-8"))


def _seed(registry: EndpointRegistry, records: list[dict]) -> None:
    registry.path.parent.mkdir(parents=True, exist_ok=True)
    registry.path.write_text(json.dumps(records), encoding="utf-8")


class TestLoad:
    def test_missing_file_bootstraps_defaults(self, registry):
        records = registry.load()

        assert [r.url for r in records] == list(DEFAULT_ENDPOINTS)
        assert registry.path.exists()
        assert _read(registry) == [
            {"url": url, "lastTestTime": None, "lastTestSpeed": None} for url in DEFAULT_ENDPOINTS
        ]

    def test_malformed_file_is_replaced_with_defaults(self, registry):
        registry.path.write_text("{not json", encoding="utf-8")
        assert [r.url for r in registry.load()] == list(DEFAULT_ENDPOINTS)
        assert len(_read(registry)) == len(DEFAULT_ENDPOINTS)

    def test_existing_file_is_read(self, registry):
        _seed(registry, [{"url": "https://b", "lastTestTime": 1700000000, "lastTestSpeed": 120}])
        assert registry.load() == [
            EndpointRecord(url="https://b", last_test_time=1700000000, last_test_speed=120)
        ]

    def test_bootstrap_write_failure_raises(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x", encoding="utf-8")
        with pytest.raises(PersistenceError):
            EndpointRegistry(blocker / "endpoints.json").load()


class TestSave:
    def test_save_creates_parent_directory(self, tmp_path):
        registry = EndpointRegistry(tmp_path / "a" / "b" / "endpoints.json")
        registry.save([EndpointRecord(url="https://a")])
        assert _read(registry) == [{"url": "https://a", "lastTestTime": None, "lastTestSpeed": None}]

    def test_save_leaves_no_temporary_files(self, registry):
        registry.save([EndpointRecord(url="https://a")])
        registry.save([EndpointRecord(url="https://b")])
        assert [p.name for p in registry.path.parent.iterdir()] == [registry.path.name]


class TestAddEndpoint:
    def test_add_appends_with_empty_history(self, registry):
        registry.add_endpoint("https://relay.example.com")

        records = registry.load()
        assert records[-1] == EndpointRecord(url="https://relay.example.com")
        assert len(records) == len(DEFAULT_ENDPOINTS) + 1

    def test_empty_url_rejected(self, registry):
        with pytest.raises(ValidationError):
            registry.add_endpoint("")

    def test_unparseable_url_rejected(self, registry):
        with pytest.raises(ValidationError, match="invalid URL"):
            registry.add_endpoint("not a url")

    def test_duplicate_rejected_and_registry_unchanged(self, registry):
        registry.add_endpoint("https://relay.example.com")
        before = _read(registry)

        with pytest.raises(ValidationError, match="already exists"):
            registry.add_endpoint("https://relay.example.com")

        assert _read(registry) == before

    def test_add_then_remove_restores_registry(self, registry):
        registry.load()
        before = _read(registry)

        registry.add_endpoint("https://relay.example.com")
        registry.remove_endpoint("https://relay.example.com")

        assert _read(registry) == before


class TestRemoveEndpoint:
    def test_remove_existing(self, registry):
        registry.remove_endpoint("https://api.openai.com")
        assert [r.url for r in registry.load()] == ["https://api.anthropic.com"]

    def test_remove_missing_raises_not_found(self, registry):
        with pytest.raises(NotFoundError):
            registry.remove_endpoint("https://nowhere.example.com")

    def test_remove_empty_rejected(self, registry):
        with pytest.raises(ValidationError):
            registry.remove_endpoint("")


class TestUpdateTestResult:
    def test_success_sets_time_and_speed(self, registry, clock):
        record = registry.update_test_result("https://api.anthropic.com", 87)

        assert record.last_test_time == int(clock.unix())
        assert record.last_test_speed == 87
        assert registry.load()[0] == record

    def test_failure_clears_speed_but_sets_time(self, registry, clock):
        registry.update_test_result("https://api.anthropic.com", 87)
        clock.advance(minutes=5)

        record = registry.update_test_result("https://api.anthropic.com", None)

        assert record.last_test_time == int(clock.unix())
        assert record.last_test_speed is None

    def test_missing_url_raises_not_found(self, registry):
        with pytest.raises(NotFoundError):
            registry.update_test_result("https://nowhere.example.com", 10)


class TestRefreshFromConfigs:
    def test_merge_preserves_existing_history(self, registry, extractor, write_config):
        _seed(registry, [{"url": "https://b", "lastTestTime": 1700000000, "lastTestSpeed": 250}])
        write_config("claude-code.json", {"providers": [{"apiUrl": "https://a", "enabled": True}]})

        added = registry.refresh_from_configs(extractor)

        assert added == ["https://a"]
        assert registry.load() == [
            EndpointRecord(url="https://b", last_test_time=1700000000, last_test_speed=250),
            EndpointRecord(url="https://a"),
        ]

    def test_refresh_is_idempotent(self, registry, extractor, write_config):
        write_config("codex.json", {"providers": [{"apiUrl": "https://codex.example", "enabled": True}]})

        registry.refresh_from_configs(extractor)
        first = _read(registry)
        assert registry.refresh_from_configs(extractor) == []
        assert _read(registry) == first

    def test_relay_fallback_when_no_configs(self, registry, extractor):
        registry.refresh_from_configs(extractor, ":18100")
        assert registry.load()[-1].url == "http://127.0.0.1:18100"


class TestGetRecords:
    def test_refreshes_when_relay_configured(self, registry, extractor, write_config):
        write_config("gemini-providers.json", [{"baseUrl": "https://gemini.example", "enabled": True}])
        urls = [r.url for r in registry.get_records(extractor, ":18100")]
        assert "https://gemini.example" in urls

    def test_skips_refresh_without_relay(self, registry, extractor, write_config):
        write_config("gemini-providers.json", [{"baseUrl": "https://gemini.example", "enabled": True}])
        urls = [r.url for r in registry.get_records(extractor, None)]
        assert urls == list(DEFAULT_ENDPOINTS)

    def test_refresh_failure_is_not_fatal(self, registry, caplog):
        class _BrokenExtractor(ConfigExtractor):
            def extract_endpoints(self, relay_address=None):
                raise PersistenceError("boom")

        with caplog.at_level(logging.WARNING):
            records = registry.get_records(_BrokenExtractor([]), ":18100")

        assert [r.url for r in records] == list(DEFAULT_ENDPOINTS)
        assert "boom" in caplog.text
