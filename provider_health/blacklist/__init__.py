"""Provider blacklist: failure counting, blacklisting and auto-recovery."""

from provider_health.blacklist.recovery import run_recovery_loop
from provider_health.blacklist.store import FailureStore, InMemoryFailureStore, SqliteFailureStore
from provider_health.blacklist.tracker import BlacklistTracker
from provider_health.blacklist.types import BlacklistStatus, ProviderFailureRecord, utc_now

__all__ = [
    "BlacklistStatus",
    "BlacklistTracker",
    "FailureStore",
    "InMemoryFailureStore",
    "ProviderFailureRecord",
    "SqliteFailureStore",
    "run_recovery_loop",
    "utc_now",
]
