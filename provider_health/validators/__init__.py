"""Input validators."""

from provider_health.validators.url_validator import parse_endpoint_url

__all__ = ["parse_endpoint_url"]
