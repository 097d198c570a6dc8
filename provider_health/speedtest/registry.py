"""Persisted endpoint registry.

The registry is a single JSON file holding an ordered array of
``{url, lastTestTime, lastTestSpeed}`` records. Every mutation is a full
load-mutate-save cycle; cycles are serialized by one lock so concurrent
callers in this process never lose each other's updates, and saves replace
the file atomically so a crash mid-write never leaves a partial registry.

A missing or unreadable file is replaced by the default endpoint set.
"""

from __future__ import annotations

import logging
import os
import tempfile
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError as PydanticValidationError

from provider_health.middleware.error_handler import (
    NotFoundError,
    PersistenceError,
    ProviderHealthError,
    ValidationError,
)
from provider_health.speedtest.types import EndpointRecord, endpoint_records_adapter
from provider_health.validators.url_validator import parse_endpoint_url

if TYPE_CHECKING:
    from provider_health.speedtest.sources import ConfigExtractor

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINTS: tuple[str, ...] = (
    "https://api.anthropic.com",
    "https://api.openai.com",
)


def _default_records() -> list[EndpointRecord]:
    return [EndpointRecord(url=url) for url in DEFAULT_ENDPOINTS]


class EndpointRegistry:
    """Single-writer owner of the endpoint registry file.

    Args:
        path: Location of the JSON registry file.
        clock: Returns the current Unix time in seconds.
    """

    def __init__(self, path: str | Path, clock: Callable[[], float] = time.time) -> None:
        self._path = Path(path)
        self._clock = clock
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Load / save
    # ------------------------------------------------------------------

    def load(self) -> list[EndpointRecord]:
        """Return all records, bootstrapping the default set when needed.

        Raises ``PersistenceError`` only if the default set cannot be written.
        """
        with self._lock:
            try:
                raw = self._path.read_bytes()
            except FileNotFoundError:
                logger.info("Endpoint registry not found at %s, creating defaults", self._path)
                return self._bootstrap()
            except OSError as exc:
                logger.warning("Cannot read endpoint registry at %s: %s", self._path, exc)
                return self._bootstrap()

            try:
                return endpoint_records_adapter.validate_json(raw)
            except PydanticValidationError as exc:
                logger.warning(
                    "Endpoint registry at %s is malformed, resetting to defaults: %s",
                    self._path,
                    exc,
                )
                return self._bootstrap()

    def _bootstrap(self) -> list[EndpointRecord]:
        records = _default_records()
        self.save(records)
        return records

    def save(self, records: list[EndpointRecord]) -> None:
        """Atomically replace the registry file with *records*."""
        payload = endpoint_records_adapter.dump_json(records, by_alias=True, indent=2)
        with self._lock:
            tmp_path: str | None = None
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                with tempfile.NamedTemporaryFile(
                    "wb",
                    dir=self._path.parent,
                    prefix=f".{self._path.name}.",
                    suffix=".tmp",
                    delete=False,
                ) as handle:
                    tmp_path = handle.name
                    handle.write(payload)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_path, self._path)
                tmp_path = None
            except OSError as exc:
                raise PersistenceError(f"Failed to write endpoint registry {self._path}: {exc}") from exc
            finally:
                if tmp_path is not None:
                    try:
                        os.unlink(tmp_path)
                    except OSError:
                        logger.debug("Could not remove temporary registry file %s", tmp_path)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_endpoint(self, url: str) -> EndpointRecord:
        """Append *url* with empty test history.

        Raises ``ValidationError`` for empty, unparseable or duplicate URLs.
        """
        _require_url(url)
        try:
            parse_endpoint_url(url)
        except ValueError as exc:
            raise ValidationError(f"invalid URL: {exc}", url=url) from exc

        with self._lock:
            records = self.load()
            if any(record.url == url for record in records):
                raise ValidationError(f"endpoint already exists: {url}", url=url)
            record = EndpointRecord(url=url)
            records.append(record)
            self.save(records)

        logger.info("Endpoint added: %s", url, extra={"url": url})
        return record

    def remove_endpoint(self, url: str) -> None:
        """Drop *url* from the registry.

        Raises ``ValidationError`` for an empty URL and ``NotFoundError`` if
        the URL is not registered.
        """
        _require_url(url)
        with self._lock:
            records = self.load()
            remaining = [record for record in records if record.url != url]
            if len(remaining) == len(records):
                raise NotFoundError(f"endpoint not found: {url}", url=url)
            self.save(remaining)

        logger.info("Endpoint removed: %s", url, extra={"url": url})

    def update_test_result(self, url: str, latency: int | None) -> EndpointRecord:
        """Stamp the latest probe outcome on *url*.

        ``latency`` is ``None`` when the probe failed; ``last_test_time`` is
        updated either way.
        """
        _require_url(url)
        with self._lock:
            records = self.load()
            for index, record in enumerate(records):
                if record.url == url:
                    updated = record.model_copy(
                        update={
                            "last_test_time": int(self._clock()),
                            "last_test_speed": latency,
                        }
                    )
                    records[index] = updated
                    self.save(records)
                    return updated
        raise NotFoundError(f"endpoint not found: {url}", url=url)

    # ------------------------------------------------------------------
    # Config discovery
    # ------------------------------------------------------------------

    def refresh_from_configs(
        self, extractor: ConfigExtractor, relay_address: str | None = None
    ) -> list[str]:
        """Merge URLs discovered in provider configs into the registry.

        Existing records keep their history; unseen URLs are appended. Returns
        the URLs that were added.
        """
        discovered = extractor.extract_endpoints(relay_address)
        with self._lock:
            records = self.load()
            known = {record.url for record in records}
            added: list[str] = []
            for url in discovered:
                if url not in known:
                    known.add(url)
                    added.append(url)
                    records.append(EndpointRecord(url=url))
            if added:
                self.save(records)

        if added:
            logger.info("Registered %d endpoints from provider configs: %s", len(added), added)
        return added

    def get_records(
        self, extractor: ConfigExtractor, relay_address: str | None = None
    ) -> list[EndpointRecord]:
        """Refresh from provider configs when a relay is configured, then load.

        Refresh failures are logged and do not prevent returning the registry.
        """
        if relay_address:
            try:
                self.refresh_from_configs(extractor, relay_address)
            except ProviderHealthError as exc:
                logger.warning("Failed to refresh endpoints from provider configs: %s", exc)
        return self.load()


def _require_url(url: str) -> None:
    if not url:
        raise ValidationError("URL must not be empty")
