"""Concurrent endpoint latency prober.

Every URL is probed in parallel. A probe sends a warm-up GET whose outcome is
discarded (it pays for DNS, TCP and TLS setup) and then a timed GET; the
reported latency is the time until the response headers of the second request
arrive. Any HTTP status counts as a completed probe.

Once all probes have finished, each result is written through to the endpoint
registry: successes store the latency, failures store ``None``. Registry
errors are logged and never change the returned results.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence
from typing import TYPE_CHECKING

import httpx

from provider_health.middleware.error_handler import ProviderHealthError
from provider_health.speedtest.types import EndpointLatency
from provider_health.validators.url_validator import parse_endpoint_url

if TYPE_CHECKING:
    from provider_health.speedtest.registry import EndpointRegistry

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECS = 8
MIN_TIMEOUT_SECS = 2
MAX_TIMEOUT_SECS = 30
MAX_REDIRECTS = 5
USER_AGENT = "provider-health-speedtest/1.0"


def clamp_timeout(timeout_secs: int | None) -> int:
    """Default to 8s; otherwise clamp into [2, 30]."""
    if timeout_secs is None:
        return DEFAULT_TIMEOUT_SECS
    return max(MIN_TIMEOUT_SECS, min(MAX_TIMEOUT_SECS, int(timeout_secs)))


class LatencyProber:
    """Measure response latency of a set of URLs.

    Args:
        registry: Registry that receives every probe result. ``None`` disables
            the write-through.
        max_concurrency: Upper bound on simultaneous probes. ``None`` probes
            every URL at once.
        transport: Optional httpx transport, used by tests.
    """

    def __init__(
        self,
        registry: EndpointRegistry | None = None,
        *,
        max_concurrency: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._registry = registry
        self._max_concurrency = max_concurrency
        self._transport = transport

    def _build_client(self, timeout: int) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(float(timeout)),
            follow_redirects=True,
            max_redirects=MAX_REDIRECTS,
            headers={"User-Agent": USER_AGENT},
            transport=self._transport,
        )

    async def test_endpoints(
        self, urls: Sequence[str], timeout_secs: int | None = None
    ) -> list[EndpointLatency]:
        """Probe *urls* concurrently; results keep the input order."""
        if not urls:
            return []

        timeout = clamp_timeout(timeout_secs)
        semaphore = asyncio.Semaphore(self._max_concurrency) if self._max_concurrency else None

        async with self._build_client(timeout) as client:
            results = await asyncio.gather(
                *(self._probe(client, url, timeout, semaphore) for url in urls)
            )

        if self._registry is not None:
            await asyncio.to_thread(self._write_through, results)

        return list(results)

    async def _probe(
        self,
        client: httpx.AsyncClient,
        raw_url: str,
        timeout: int,
        semaphore: asyncio.Semaphore | None,
    ) -> EndpointLatency:
        if semaphore is None:
            return await self._probe_one(client, raw_url, timeout)
        async with semaphore:
            return await self._probe_one(client, raw_url, timeout)

    async def _probe_one(
        self, client: httpx.AsyncClient, raw_url: str, timeout: int
    ) -> EndpointLatency:
        url = raw_url.strip()
        if not url:
            return EndpointLatency(url=raw_url, error="URL must not be empty")

        try:
            parsed = parse_endpoint_url(url)
        except ValueError as exc:
            return EndpointLatency(url=url, error=f"invalid URL: {exc}")

        try:
            await self._request(client, parsed, timeout)
        except Exception as exc:  # noqa: BLE001
            logger.debug("Warm-up request to %s failed: %s", url, exc)

        start = time.perf_counter()
        try:
            status = await self._request(client, parsed, timeout)
        except Exception as exc:  # noqa: BLE001
            error = _describe_error(exc)
            logger.info(
                "Probe failed for %s: %s",
                url,
                error,
                extra={"url": url, "error_reason": error},
            )
            return EndpointLatency(url=url, error=error)
        latency = int((time.perf_counter() - start) * 1000)

        logger.debug(
            "Probe %s -> %d in %dms",
            url,
            status,
            latency,
            extra={"url": url, "latency_ms": latency, "status_code": status},
        )
        return EndpointLatency(url=url, latency=latency, status=status)

    @staticmethod
    async def _request(client: httpx.AsyncClient, url: httpx.URL, timeout: int) -> int:
        """GET *url* and return the status once headers arrive.

        ``timeout`` bounds the whole request, redirects included.
        """

        async def _fetch() -> int:
            async with client.stream("GET", url) as response:
                return response.status_code

        return await asyncio.wait_for(_fetch(), timeout=timeout)

    def _write_through(self, results: Sequence[EndpointLatency]) -> None:
        registry = self._registry
        if registry is None:
            return
        for result in results:
            latency = result.latency if result.ok else None
            try:
                registry.update_test_result(result.url, latency)
            except ProviderHealthError as exc:
                logger.warning(
                    "Failed to record probe result for %s: %s",
                    result.url,
                    exc,
                    extra={"url": result.url},
                )


def _describe_error(exc: BaseException) -> str:
    if isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError)):
        return "timeout"
    if isinstance(exc, httpx.TooManyRedirects):
        return "too many redirects"
    detail = str(exc) or type(exc).__name__
    return f"request failed: {detail}"
