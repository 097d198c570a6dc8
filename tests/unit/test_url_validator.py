"""Unit tests for endpoint URL parsing."""

import pytest

from provider_health.validators import parse_endpoint_url


class TestParseEndpointUrl:
    @pytest.mark.parametrize(
        "url",
        [
            "https://api.anthropic.com",
            "http://127.0.0.1:18100",
            "https://relay.example/v1/messages?beta=true",
        ],
    )
    def test_accepts_absolute_http_urls(self, url: str):
        parsed = parse_endpoint_url(url)
        assert parsed.scheme in {"http", "https"}
        assert parsed.host

    def test_missing_scheme(self):
        with pytest.raises(ValueError, match="missing scheme"):
            parse_endpoint_url("api.example.com")

    def test_unsupported_scheme(self):
        with pytest.raises(ValueError, match="unsupported scheme"):
            parse_endpoint_url("ftp://files.example")

    def test_missing_host(self):
        with pytest.raises(ValueError):
            parse_endpoint_url("https://")
