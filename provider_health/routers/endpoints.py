"""Endpoint registry and speed test endpoints.

- GET    /api/v1/endpoints: registry contents (refreshed from provider configs first)
- POST   /api/v1/endpoints: add an endpoint
- DELETE /api/v1/endpoints?url=...: remove an endpoint
- POST   /api/v1/endpoints/refresh: merge URLs found in provider configs
- POST   /api/v1/endpoints/test: probe given URLs, or every registered one
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, Query

from provider_health.models.requests import (
    AddEndpointRequest,
    ProbeEndpointsRequest,
    RefreshEndpointsRequest,
)
from provider_health.models.responses import ok

if TYPE_CHECKING:
    from provider_health.speedtest.prober import LatencyProber
    from provider_health.speedtest.registry import EndpointRegistry
    from provider_health.speedtest.sources import ConfigExtractor

logger = logging.getLogger(__name__)


def create_endpoints_router(
    *,
    registry: EndpointRegistry,
    extractor: ConfigExtractor,
    prober: LatencyProber,
    relay_address: str | None = None,
) -> APIRouter:
    """Factory that creates the endpoints router with injected dependencies."""

    endpoints_router = APIRouter(prefix="/api/v1/endpoints", tags=["endpoints"])

    @endpoints_router.get("")
    async def list_endpoints() -> dict:
        records = await asyncio.to_thread(registry.get_records, extractor, relay_address)
        return ok(records, count=len(records))

    @endpoints_router.post("")
    async def add_endpoint(body: AddEndpointRequest) -> dict:
        record = await asyncio.to_thread(registry.add_endpoint, body.url)
        return ok(record)

    @endpoints_router.delete("")
    async def remove_endpoint(url: str = Query(...)) -> dict:
        await asyncio.to_thread(registry.remove_endpoint, url)
        return ok({"url": url, "removed": True})

    @endpoints_router.post("/refresh")
    async def refresh(body: RefreshEndpointsRequest | None = None) -> dict:
        relay = body.relay_address if body and body.relay_address else relay_address
        added = await asyncio.to_thread(registry.refresh_from_configs, extractor, relay)
        return ok({"added": added, "count": len(added)})

    @endpoints_router.post("/test")
    async def test_endpoints(body: ProbeEndpointsRequest | None = None) -> dict:
        body = body or ProbeEndpointsRequest()
        if body.urls is None:
            records = await asyncio.to_thread(registry.load)
            urls = [record.url for record in records]
        else:
            urls = body.urls
        logger.info("Probing %d endpoints", len(urls))
        results = await prober.test_endpoints(urls, body.timeout_secs)
        return ok(results, count=len(results))

    return endpoints_router
