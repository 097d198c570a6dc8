"""Periodic auto-recovery sweep for the provider blacklist."""

from __future__ import annotations

import asyncio
import logging

from provider_health.blacklist.tracker import BlacklistTracker
from provider_health.middleware.error_handler import PersistenceError

logger = logging.getLogger(__name__)


async def run_recovery_loop(tracker: BlacklistTracker, interval_seconds: float) -> None:
    """Run ``auto_recover_expired`` every ``interval_seconds`` until cancelled.

    The sweep runs in a worker thread because store access is blocking. A
    failed sweep, whatever the error, is logged and retried on the next tick.
    """
    logger.info("Blacklist recovery loop started (interval=%ss)", interval_seconds)
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await asyncio.to_thread(tracker.auto_recover_expired)
        except PersistenceError as exc:
            logger.error("Blacklist recovery sweep failed: %s", exc)
        except Exception:
            logger.exception("Unexpected error in blacklist recovery sweep")
