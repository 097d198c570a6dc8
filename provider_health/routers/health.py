"""Liveness endpoint.

- GET /health: service status and number of registered endpoints
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from fastapi import APIRouter

from provider_health.models.responses import ok

if TYPE_CHECKING:
    from provider_health.speedtest.registry import EndpointRegistry


def create_health_router(*, registry: EndpointRegistry | None = None) -> APIRouter:
    """Factory that creates the health router with injected dependencies."""

    health_router = APIRouter(tags=["health"])

    @health_router.get("/health")
    async def health() -> dict:
        endpoints = len(await asyncio.to_thread(registry.load)) if registry else 0
        return ok({"status": "healthy", "endpoints": endpoints})

    return health_router
