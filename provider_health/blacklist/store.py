"""Failure store backends for the blacklist tracker.

A store is a row-per-provider table keyed by ``(platform, provider_name)``.
Stores only load and save whole records; they never compare timestamps.
All "is this window still active" decisions are made by the tracker against
its own clock.

Contract:
- ``atomic_increments`` is False for every backend here. Stores do not
  provide read-modify-write atomicity; the tracker serializes updates per key.
- Backend failures surface as ``PersistenceError``.
- Records are never deleted.
"""

from __future__ import annotations

import copy
import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from provider_health.blacklist.types import ProviderFailureRecord
from provider_health.middleware.error_handler import PersistenceError

logger = logging.getLogger(__name__)


class FailureStore(ABC):
    """Abstract row-per-provider failure store."""

    atomic_increments: bool = False

    @abstractmethod
    def get(self, platform: str, provider_name: str) -> ProviderFailureRecord | None:
        """Return the record for the key, or ``None`` if it was never seen."""

    @abstractmethod
    def insert(self, record: ProviderFailureRecord) -> None:
        """Create a new record. Raises ``PersistenceError`` if the key exists."""

    @abstractmethod
    def update(self, record: ProviderFailureRecord) -> bool:
        """Overwrite the record with the same key.

        Returns False when no row matched.
        """

    @abstractmethod
    def list_recovery_candidates(self) -> list[ProviderFailureRecord]:
        """Records with ``blacklisted_until`` set and ``auto_recovered`` False."""

    @abstractmethod
    def list_by_platform(self, platform: str) -> list[ProviderFailureRecord]:
        """All records for a platform, in no particular order."""


class InMemoryFailureStore(FailureStore):
    """Dict-backed store, mainly for tests and ephemeral runs."""

    def __init__(self) -> None:
        self._rows: dict[tuple[str, str], ProviderFailureRecord] = {}
        self._lock = threading.Lock()

    def get(self, platform: str, provider_name: str) -> ProviderFailureRecord | None:
        with self._lock:
            row = self._rows.get((platform, provider_name))
            return copy.copy(row) if row is not None else None

    def insert(self, record: ProviderFailureRecord) -> None:
        with self._lock:
            if record.key in self._rows:
                raise PersistenceError(
                    f"Failure record already exists for {record.platform}/{record.provider_name}"
                )
            self._rows[record.key] = copy.copy(record)

    def update(self, record: ProviderFailureRecord) -> bool:
        with self._lock:
            if record.key not in self._rows:
                return False
            self._rows[record.key] = copy.copy(record)
            return True

    def list_recovery_candidates(self) -> list[ProviderFailureRecord]:
        with self._lock:
            return [
                copy.copy(row)
                for row in self._rows.values()
                if row.blacklisted_until is not None and not row.auto_recovered
            ]

    def list_by_platform(self, platform: str) -> list[ProviderFailureRecord]:
        with self._lock:
            return [copy.copy(row) for row in self._rows.values() if row.platform == platform]


# ---------------------------------------------------------------------------
# SQLite backend
# ---------------------------------------------------------------------------

_COLUMNS = (
    "platform, provider_name, failure_count, last_failure_at, "
    "blacklisted_at, blacklisted_until, auto_recovered"
)


def _to_text(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _from_text(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _row_to_record(row: sqlite3.Row) -> ProviderFailureRecord:
    return ProviderFailureRecord(
        platform=row["platform"],
        provider_name=row["provider_name"],
        failure_count=int(row["failure_count"]),
        last_failure_at=_from_text(row["last_failure_at"]),
        blacklisted_at=_from_text(row["blacklisted_at"]),
        blacklisted_until=_from_text(row["blacklisted_until"]),
        auto_recovered=bool(row["auto_recovered"]),
    )


def _rows_to_records(rows: list[sqlite3.Row]) -> list[ProviderFailureRecord]:
    """Convert rows, logging and skipping any that cannot be decoded."""
    records: list[ProviderFailureRecord] = []
    for row in rows:
        try:
            records.append(_row_to_record(row))
        except (TypeError, ValueError) as exc:
            logger.warning(
                "Skipping unreadable failure record %s/%s: %s",
                row["platform"],
                row["provider_name"],
                exc,
                extra={"platform": row["platform"], "provider_name": row["provider_name"]},
            )
    return records


class SqliteFailureStore(FailureStore):
    """``provider_blacklist`` table in a local SQLite database.

    Timestamps are stored as ISO-8601 UTC text and are only ever compared in
    Python, never in SQL.
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path)
        self._lock = threading.Lock()
        self.init_schema()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._db_path, timeout=30.0, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")
            with conn:
                yield conn
        finally:
            conn.close()

    def init_schema(self) -> None:
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            with self._lock, self._connect() as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS provider_blacklist (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        platform TEXT NOT NULL,
                        provider_name TEXT NOT NULL,
                        failure_count INTEGER NOT NULL DEFAULT 0,
                        last_failure_at TEXT,
                        blacklisted_at TEXT,
                        blacklisted_until TEXT,
                        auto_recovered INTEGER NOT NULL DEFAULT 0
                    )
                    """
                )
                conn.execute(
                    """
                    CREATE UNIQUE INDEX IF NOT EXISTS idx_provider_blacklist_key
                    ON provider_blacklist(platform, provider_name)
                    """
                )
        except (sqlite3.Error, OSError) as exc:
            raise PersistenceError(f"Failed to initialize failure store at {self._db_path}: {exc}") from exc
        logger.debug("Failure store ready at %s", self._db_path)

    def get(self, platform: str, provider_name: str) -> ProviderFailureRecord | None:
        try:
            with self._lock, self._connect() as conn:
                row = conn.execute(
                    f"SELECT {_COLUMNS} FROM provider_blacklist "
                    "WHERE platform = ? AND provider_name = ?",
                    (platform, provider_name),
                ).fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to query failure record: {exc}") from exc
        if row is None:
            return None
        try:
            return _row_to_record(row)
        except (TypeError, ValueError) as exc:
            raise PersistenceError(
                f"Corrupt failure record for {platform}/{provider_name}: {exc}"
            ) from exc

    def insert(self, record: ProviderFailureRecord) -> None:
        try:
            with self._lock, self._connect() as conn:
                conn.execute(
                    f"INSERT INTO provider_blacklist ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (
                        record.platform,
                        record.provider_name,
                        record.failure_count,
                        _to_text(record.last_failure_at),
                        _to_text(record.blacklisted_at),
                        _to_text(record.blacklisted_until),
                        int(record.auto_recovered),
                    ),
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to insert failure record: {exc}") from exc

    def update(self, record: ProviderFailureRecord) -> bool:
        try:
            with self._lock, self._connect() as conn:
                cursor = conn.execute(
                    """
                    UPDATE provider_blacklist
                    SET failure_count = ?,
                        last_failure_at = ?,
                        blacklisted_at = ?,
                        blacklisted_until = ?,
                        auto_recovered = ?
                    WHERE platform = ? AND provider_name = ?
                    """,
                    (
                        record.failure_count,
                        _to_text(record.last_failure_at),
                        _to_text(record.blacklisted_at),
                        _to_text(record.blacklisted_until),
                        int(record.auto_recovered),
                        record.platform,
                        record.provider_name,
                    ),
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to update failure record: {exc}") from exc
        return cursor.rowcount > 0

    def list_recovery_candidates(self) -> list[ProviderFailureRecord]:
        try:
            with self._lock, self._connect() as conn:
                rows = conn.execute(
                    f"SELECT {_COLUMNS} FROM provider_blacklist "
                    "WHERE blacklisted_until IS NOT NULL AND auto_recovered = 0"
                ).fetchall()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to query recovery candidates: {exc}") from exc
        return _rows_to_records(rows)

    def list_by_platform(self, platform: str) -> list[ProviderFailureRecord]:
        try:
            with self._lock, self._connect() as conn:
                rows = conn.execute(
                    f"SELECT {_COLUMNS} FROM provider_blacklist WHERE platform = ?",
                    (platform,),
                ).fetchall()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to query blacklist status: {exc}") from exc
        return _rows_to_records(rows)
