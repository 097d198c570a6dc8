"""URL validation for probe targets and registry entries."""

from __future__ import annotations

import httpx

_ALLOWED_SCHEMES = {"http", "https"}


def parse_endpoint_url(url: str) -> httpx.URL:
    """Parse an absolute http(s) URL.

    Raises ``ValueError`` with a short human-readable reason when the string
    is not an absolute http/https URL with a host.
    """
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError, ValueError) as exc:
        raise ValueError(str(exc) or "malformed URL") from exc

    if not parsed.scheme:
        raise ValueError(f"missing scheme in {url!r}")
    if parsed.scheme not in _ALLOWED_SCHEMES:
        raise ValueError(f"unsupported scheme {parsed.scheme!r}")
    if not parsed.host:
        raise ValueError(f"missing host in {url!r}")
    return parsed

