"""Per-provider failure-counting circuit breaker.

Counts failures per ``(platform, provider_name)`` and blacklists a provider
once the count reaches the configured threshold. The blacklist window lasts
``duration_minutes``; an auto-recovery sweep flips expired windows back to a
usable state while keeping them as history.

State machine:
- Healthy → Blacklisted: failure count reaches threshold
- Blacklisted → Blacklisted: further failures are ignored (debounce)
- Blacklisted → Recovered: window elapsed and ``auto_recover_expired`` ran
- Blacklisted → Healthy: ``manual_unblock``
- Recovered → Blacklisted: failure count reaches threshold again

Every time comparison uses a single read of the tracker's own clock; stores
are never asked to compare timestamps.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta, timezone

from provider_health.blacklist.store import FailureStore
from provider_health.blacklist.types import BlacklistStatus, ProviderFailureRecord, utc_now
from provider_health.config.blacklist_policy import BlacklistSettingsProvider
from provider_health.middleware.error_handler import NotFoundError, PersistenceError

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_THRESHOLD = 3
DEFAULT_DURATION_MINUTES = 30

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


class BlacklistTracker:
    """Persisted failure-counting circuit breaker.

    Args:
        store: Failure store backend.
        settings_provider: Source of ``(failure_threshold, duration_minutes)``,
            consulted on every failure report.
        clock: Returns the current aware UTC time.

    Read-modify-write on a record is serialized per key, so concurrent
    ``record_failure`` calls for the same provider never under-count.
    """

    def __init__(
        self,
        store: FailureStore,
        settings_provider: BlacklistSettingsProvider,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._settings_provider = settings_provider
        self._clock = clock
        self._key_locks: dict[tuple[str, str], threading.Lock] = {}
        self._key_locks_guard = threading.Lock()

    def now(self) -> datetime:
        """Current time according to the tracker's clock."""
        return self._clock()

    def _lock_for(self, platform: str, provider_name: str) -> threading.Lock:
        # Locks are never evicted: one per provider key ever seen, so the map
        # is bounded by the configured provider set.
        key = (platform, provider_name)
        with self._key_locks_guard:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = self._key_locks[key] = threading.Lock()
            return lock

    def _load_settings(self) -> tuple[int, int]:
        try:
            return self._settings_provider.get_blacklist_settings()
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Failed to load blacklist settings, using defaults (%d failures, %d min): %s",
                DEFAULT_FAILURE_THRESHOLD,
                DEFAULT_DURATION_MINUTES,
                exc,
            )
            return DEFAULT_FAILURE_THRESHOLD, DEFAULT_DURATION_MINUTES

    # ------------------------------------------------------------------
    # Failure reporting
    # ------------------------------------------------------------------

    def record_failure(self, platform: str, provider_name: str) -> ProviderFailureRecord:
        """Count one failure and blacklist the provider at the threshold.

        Failures reported while a blacklist window is active are dropped
        without touching the record.

        Raises:
            PersistenceError: the store could not be read or written.
        """
        threshold, duration_minutes = self._load_settings()
        log_extra = {"platform": platform, "provider_name": provider_name, "threshold": threshold}

        with self._lock_for(platform, provider_name):
            now = self._clock()
            record = self._store.get(platform, provider_name)

            is_new = record is None
            if record is None:
                record = ProviderFailureRecord(platform=platform, provider_name=provider_name)
            elif record.is_blacklisted_at(now):
                logger.info(
                    "Provider %s/%s already blacklisted until %s, ignoring failure",
                    platform,
                    provider_name,
                    record.blacklisted_until.isoformat(),  # type: ignore[union-attr]
                    extra={**log_extra, "failure_count": record.failure_count},
                )
                return record

            record.failure_count += 1
            record.last_failure_at = now
            tripped = record.failure_count >= threshold
            if tripped:
                record.blacklisted_at = now
                record.blacklisted_until = now + timedelta(minutes=duration_minutes)
                record.auto_recovered = False

            if is_new:
                self._store.insert(record)
            else:
                self._store.update(record)

            if tripped:
                logger.warning(
                    "Provider %s/%s blacklisted for %d min after %d failures, until %s",
                    platform,
                    provider_name,
                    duration_minutes,
                    record.failure_count,
                    record.blacklisted_until.isoformat(),
                    extra={**log_extra, "failure_count": record.failure_count},
                )
            else:
                logger.info(
                    "Provider %s/%s failure count: %d/%d",
                    platform,
                    provider_name,
                    record.failure_count,
                    threshold,
                    extra={**log_extra, "failure_count": record.failure_count},
                )

            return record

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_blacklisted(self, platform: str, provider_name: str) -> tuple[bool, datetime | None]:
        """Return ``(True, expiry)`` while the provider's window is active.

        Missing records and store errors read as not blacklisted.
        """
        try:
            record = self._store.get(platform, provider_name)
        except PersistenceError as exc:
            logger.warning("Failed to read blacklist state for %s/%s: %s", platform, provider_name, exc)
            return False, None

        if record is None or record.blacklisted_until is None:
            return False, None
        if record.is_blacklisted_at(self._clock()):
            return True, record.blacklisted_until
        return False, None

    def get_blacklist_status(self, platform: str) -> list[BlacklistStatus]:
        """Status of every provider seen on *platform*, most recent failure first."""
        records = self._store.list_by_platform(platform)
        now = self._clock()
        records.sort(key=lambda r: r.last_failure_at or _OLDEST, reverse=True)
        return [BlacklistStatus.from_record(record, now) for record in records]

    # ------------------------------------------------------------------
    # Recovery
    # ------------------------------------------------------------------

    def manual_unblock(self, platform: str, provider_name: str) -> None:
        """Clear the blacklist window and reset the failure count.

        Raises:
            NotFoundError: no failure was ever recorded for the provider.
            PersistenceError: the store could not be read or written.
        """
        with self._lock_for(platform, provider_name):
            record = self._store.get(platform, provider_name)
            if record is None:
                raise NotFoundError(
                    f"Provider {platform}/{provider_name} is not in the blacklist",
                    platform=platform,
                    provider_name=provider_name,
                )
            unblocked = replace(
                record,
                failure_count=0,
                blacklisted_at=None,
                blacklisted_until=None,
                auto_recovered=False,
            )
            if not self._store.update(unblocked):
                raise NotFoundError(
                    f"Provider {platform}/{provider_name} is not in the blacklist",
                    platform=platform,
                    provider_name=provider_name,
                )

        logger.info(
            "Provider %s/%s manually unblocked",
            platform,
            provider_name,
            extra={"platform": platform, "provider_name": provider_name},
        )

    def auto_recover_expired(self) -> list[str]:
        """Mark every elapsed blacklist window as recovered.

        Blacklist timestamps are kept as history. Rows that fail to update are
        logged and skipped. Returns the recovered ``platform/provider`` keys.

        Raises:
            PersistenceError: the candidate list could not be read.
        """
        candidates = self._store.list_recovery_candidates()
        now = self._clock()
        recovered: list[str] = []

        for candidate in candidates:
            if candidate.blacklisted_until is None or candidate.blacklisted_until > now:
                continue

            with self._lock_for(candidate.platform, candidate.provider_name):
                try:
                    current = self._store.get(candidate.platform, candidate.provider_name)
                    if (
                        current is None
                        or current.auto_recovered
                        or current.blacklisted_until is None
                        or current.blacklisted_until > now
                    ):
                        continue
                    if not self._store.update(
                        replace(current, auto_recovered=True, failure_count=0)
                    ):
                        continue
                except PersistenceError as exc:
                    logger.warning(
                        "Failed to mark %s/%s as recovered: %s",
                        candidate.platform,
                        candidate.provider_name,
                        exc,
                        extra={"platform": candidate.platform, "provider_name": candidate.provider_name},
                    )
                    continue

            recovered.append(f"{candidate.platform}/{candidate.provider_name}")

        if recovered:
            logger.info("Auto-recovered %d expired blacklist entries: %s", len(recovered), recovered)
        return recovered
