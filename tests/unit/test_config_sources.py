"""Unit tests for provider config sources and endpoint extraction."""

from __future__ import annotations

import pytest

from provider_health.middleware.error_handler import ConfigError
from provider_health.speedtest.sources import (
    ConfigExtractor,
    ConfigSource,
    GeminiProviderSource,
    ProviderListSource,
    SourceEntry,
    relay_base_url,
)


class _StaticSource(ConfigSource):
    def __init__(self, entries: list[SourceEntry]) -> None:
        super().__init__("static")
        self._entries = entries

    def read_entries(self) -> list[SourceEntry]:
        return self._entries


class TestProviderListSource:
    def test_reads_providers(self, write_config):
        path = write_config(
            "claude-code.json",
            {
                "providers": [
                    {"name": "a", "apiUrl": "https://a.example", "enabled": True, "apiKey": "sk-x"},
                    {"name": "b", "apiUrl": "https://b.example", "enabled": False},
                ]
            },
        )
        assert ProviderListSource(path).read_entries() == [
            SourceEntry("https://a.example", True),
            SourceEntry("https://b.example", False),
        ]

    def test_accepts_upper_case_url_key(self, write_config):
        path = write_config("codex.json", {"providers": [{"apiURL": "https://c.example", "enabled": True}]})
        assert ProviderListSource(path).read_entries() == [SourceEntry("https://c.example", True)]

    def test_missing_file_raises_config_error(self, config_dir):
        with pytest.raises(ConfigError):
            ProviderListSource(config_dir / "absent.json").read_entries()

    def test_malformed_file_raises_config_error(self, config_dir):
        path = config_dir / "claude-code.json"
        path.write_text('{"providers": "nope"}', encoding="utf-8")
        with pytest.raises(ConfigError):
            ProviderListSource(path).read_entries()

    def test_non_utf8_file_raises_config_error(self, config_dir):
        path = config_dir / "codex.json"
        path.write_bytes(b'{"providers": [{"apiUrl": "\xff\xfe", "enabled": true}]}')
        with pytest.raises(ConfigError):
            ProviderListSource(path).read_entries()


class TestGeminiProviderSource:
    def test_reads_list(self, write_config):
        path = write_config(
            "gemini-providers.json",
            [{"baseUrl": "https://g.example", "enabled": True}, {"baseUrl": "", "enabled": True}],
        )
        assert GeminiProviderSource(path).read_entries() == [
            SourceEntry("https://g.example", True),
            SourceEntry("", True),
        ]

    def test_object_instead_of_list_raises(self, write_config):
        path = write_config("gemini-providers.json", {"providers": []})
        with pytest.raises(ConfigError):
            GeminiProviderSource(path).read_entries()


class TestExtractEndpoints:
    def test_collects_enabled_across_sources_in_order(self, extractor, write_config):
        write_config(
            "claude-code.json",
            {"providers": [
                {"apiUrl": "https://one", "enabled": True},
                {"apiUrl": "https://off", "enabled": False},
            ]},
        )
        write_config(
            "codex.json",
            {"providers": [
                {"apiUrl": "https://two", "enabled": True},
                {"apiUrl": "https://one", "enabled": True},
            ]},
        )
        write_config("gemini-providers.json", [{"baseUrl": "https://three", "enabled": True}])

        assert extractor.extract_endpoints() == ["https://one", "https://two", "https://three"]

    def test_broken_sources_are_skipped(self, extractor, config_dir, write_config):
        (config_dir / "claude-code.json").write_text("{{{", encoding="utf-8")
        write_config("gemini-providers.json", [{"baseUrl": "https://g", "enabled": True}])

        assert extractor.extract_endpoints() == ["https://g"]

    def test_undecodable_source_is_skipped(self, extractor, config_dir, write_config):
        (config_dir / "claude-code.json").write_bytes(b"\xff\xfe{\"providers\": []}")
        write_config("codex.json", {"providers": [{"apiUrl": "https://two", "enabled": True}]})

        assert extractor.extract_endpoints() == ["https://two"]

    def test_relay_fallback_only_when_nothing_found(self, extractor, write_config):
        assert extractor.extract_endpoints(":18100") == ["http://127.0.0.1:18100"]

        write_config("codex.json", {"providers": [{"apiUrl": "https://two", "enabled": True}]})
        assert extractor.extract_endpoints(":18100") == ["https://two"]

    def test_no_sources_no_relay(self, extractor):
        assert extractor.extract_endpoints() == []
        assert extractor.extract_endpoints("") == []

    def test_custom_adapter(self):
        extractor = ConfigExtractor(
            [
                _StaticSource([SourceEntry("https://x", True), SourceEntry("https://y", False)]),
                _StaticSource([SourceEntry("https://x", True), SourceEntry("https://z", True)]),
            ]
        )
        assert extractor.extract_endpoints() == ["https://x", "https://z"]

    def test_default_sources(self, config_dir):
        names = [source.path.name for source in ConfigExtractor.default(config_dir).sources]
        assert names == ["claude-code.json", "codex.json", "gemini-providers.json"]


class TestRelayBaseUrl:
    @pytest.mark.parametrize(
        ("address", "expected"),
        [
            (":18100", "http://127.0.0.1:18100"),
            ("localhost:18100", "http://localhost:18100"),
            ("http://relay:1", "http://relay:1"),
            ("https://relay", "https://relay"),
            ("  :9000  ", "http://127.0.0.1:9000"),
            ("", ""),
            (None, ""),
        ],
    )
    def test_relay_base_url(self, address, expected):
        assert relay_base_url(address) == expected
