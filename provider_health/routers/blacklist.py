"""Provider blacklist endpoints.

- GET  /api/v1/blacklist/{platform}: status of every provider on a platform
- GET  /api/v1/blacklist/{platform}/{provider}: is the provider blacklisted
- POST /api/v1/blacklist/{platform}/{provider}/failures: report one failure
- POST /api/v1/blacklist/{platform}/{provider}/unblock: manual unblock
- POST /api/v1/blacklist/recover: run the auto-recovery sweep now
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from fastapi import APIRouter

from provider_health.blacklist.types import BlacklistStatus
from provider_health.models.responses import ok

if TYPE_CHECKING:
    from provider_health.blacklist.tracker import BlacklistTracker


def create_blacklist_router(*, tracker: BlacklistTracker) -> APIRouter:
    """Factory that creates the blacklist router around *tracker*."""

    blacklist_router = APIRouter(prefix="/api/v1/blacklist", tags=["blacklist"])

    @blacklist_router.post("/recover")
    async def recover() -> dict:
        recovered = await asyncio.to_thread(tracker.auto_recover_expired)
        return ok({"recovered": recovered, "count": len(recovered)})

    @blacklist_router.get("/{platform}")
    async def get_status(platform: str) -> dict:
        statuses = await asyncio.to_thread(tracker.get_blacklist_status, platform)
        return ok(statuses, count=len(statuses))

    @blacklist_router.get("/{platform}/{provider}")
    async def is_blacklisted(platform: str, provider: str) -> dict:
        blacklisted, until = await asyncio.to_thread(tracker.is_blacklisted, platform, provider)
        return ok(
            {
                "platform": platform,
                "providerName": provider,
                "isBlacklisted": blacklisted,
                "blacklistedUntil": until.isoformat() if until else None,
            }
        )

    @blacklist_router.post("/{platform}/{provider}/failures")
    async def record_failure(platform: str, provider: str) -> dict:
        record = await asyncio.to_thread(tracker.record_failure, platform, provider)
        status = BlacklistStatus.from_record(record, tracker.now())
        return ok(status)

    @blacklist_router.post("/{platform}/{provider}/unblock")
    async def unblock(platform: str, provider: str) -> dict:
        await asyncio.to_thread(tracker.manual_unblock, platform, provider)
        return ok({"platform": platform, "providerName": provider, "isBlacklisted": False})

    return blacklist_router
