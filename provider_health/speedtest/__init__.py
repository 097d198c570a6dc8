"""Endpoint speed testing: registry, config discovery and latency probes."""

from provider_health.speedtest.prober import LatencyProber, clamp_timeout
from provider_health.speedtest.registry import DEFAULT_ENDPOINTS, EndpointRegistry
from provider_health.speedtest.sources import (
    ConfigExtractor,
    ConfigSource,
    GeminiProviderSource,
    ProviderListSource,
    SourceEntry,
    relay_base_url,
)
from provider_health.speedtest.types import EndpointLatency, EndpointRecord

__all__ = [
    "DEFAULT_ENDPOINTS",
    "ConfigExtractor",
    "ConfigSource",
    "EndpointLatency",
    "EndpointRecord",
    "EndpointRegistry",
    "GeminiProviderSource",
    "LatencyProber",
    "ProviderListSource",
    "SourceEntry",
    "clamp_timeout",
    "relay_base_url",
]
