"""Failure record and status view models for the provider blacklist."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    """The authoritative clock for all blacklist time comparisons."""
    return datetime.now(timezone.utc)


@dataclass
class ProviderFailureRecord:
    """Persisted failure history for one (platform, provider_name) pair.

    ``blacklisted_at`` / ``blacklisted_until`` are kept after auto-recovery as
    history; ``auto_recovered`` marks that the window has been swept.
    """

    platform: str
    provider_name: str
    failure_count: int = 0
    last_failure_at: datetime | None = None
    blacklisted_at: datetime | None = None
    blacklisted_until: datetime | None = None
    auto_recovered: bool = False

    @property
    def key(self) -> tuple[str, str]:
        return self.platform, self.provider_name

    def is_blacklisted_at(self, now: datetime) -> bool:
        return self.blacklisted_until is not None and self.blacklisted_until > now


class BlacklistStatus(BaseModel):
    """Read-only projection of a failure record at a given instant."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    platform: str
    provider_name: str
    failure_count: int
    blacklisted_at: datetime | None = None
    blacklisted_until: datetime | None = None
    last_failure_at: datetime | None = None
    is_blacklisted: bool = False
    remaining_seconds: int = 0

    @classmethod
    def from_record(cls, record: ProviderFailureRecord, now: datetime) -> BlacklistStatus:
        blacklisted = record.is_blacklisted_at(now)
        remaining = 0
        if blacklisted and record.blacklisted_until is not None:
            remaining = int((record.blacklisted_until - now).total_seconds())
        return cls(
            platform=record.platform,
            provider_name=record.provider_name,
            failure_count=record.failure_count,
            blacklisted_at=record.blacklisted_at,
            blacklisted_until=record.blacklisted_until,
            last_failure_at=record.last_failure_at,
            is_blacklisted=blacklisted,
            remaining_seconds=remaining,
        )
