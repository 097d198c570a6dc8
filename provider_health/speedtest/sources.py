"""Provider configuration sources and endpoint extraction.

Each provider config file has its own schema. A ``ConfigSource`` adapter
reads one file and exposes its providers as ``SourceEntry(url, enabled)``;
``ConfigExtractor`` merges entries from any number of adapters into one
deduplicated, insertion-ordered URL list. Supporting a new provider file
means writing one more adapter; the merge logic does not change.

Shapes understood today:
- ``claude-code.json`` / ``codex.json``: ``{"providers": [{"apiUrl", "enabled", ...}]}``
- ``gemini-providers.json``: ``[{"baseUrl", "enabled", ...}]``
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from pydantic import AliasChoices, BaseModel, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from provider_health.middleware.error_handler import ConfigError

logger = logging.getLogger(__name__)

CLAUDE_CONFIG_FILE = "claude-code.json"
CODEX_CONFIG_FILE = "codex.json"
GEMINI_CONFIG_FILE = "gemini-providers.json"


@dataclass(frozen=True)
class SourceEntry:
    """The two provider fields endpoint discovery cares about."""

    url: str
    enabled: bool


class _ApiProvider(BaseModel):
    api_url: str = Field(default="", validation_alias=AliasChoices("apiUrl", "apiURL", "api_url"))
    enabled: bool = False


class _ProviderFile(BaseModel):
    providers: list[_ApiProvider] = []


class _GeminiProvider(BaseModel):
    base_url: str = Field(default="", validation_alias=AliasChoices("baseUrl", "baseURL", "base_url"))
    enabled: bool = False


_gemini_file_adapter = TypeAdapter(list[_GeminiProvider])


class ConfigSource(ABC):
    """Adapter that reads one provider configuration file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read_text(self) -> str:
        try:
            return self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigError(f"Cannot read provider config {self.path}: {exc}") from exc

    @abstractmethod
    def read_entries(self) -> list[SourceEntry]:
        """Parse the file into entries.

        Raises
        ------
        ConfigError
            The file is missing, unreadable or does not match the schema.
        """


class ProviderListSource(ConfigSource):
    """``{"providers": [{"apiUrl": ..., "enabled": ...}]}`` files (Claude, Codex)."""

    def read_entries(self) -> list[SourceEntry]:
        try:
            document = _ProviderFile.model_validate_json(self._read_text())
        except PydanticValidationError as exc:
            raise ConfigError(f"Malformed provider config {self.path}: {exc}") from exc
        return [SourceEntry(url=p.api_url, enabled=p.enabled) for p in document.providers]


class GeminiProviderSource(ConfigSource):
    """``[{"baseUrl": ..., "enabled": ...}]`` files (Gemini)."""

    def read_entries(self) -> list[SourceEntry]:
        try:
            providers = _gemini_file_adapter.validate_json(self._read_text())
        except PydanticValidationError as exc:
            raise ConfigError(f"Malformed provider config {self.path}: {exc}") from exc
        return [SourceEntry(url=p.base_url, enabled=p.enabled) for p in providers]


def relay_base_url(relay_address: str | None) -> str:
    """Turn a relay listen address into a base URL.

    ``"https://relay"`` passes through, ``":18100"`` becomes
    ``"http://127.0.0.1:18100"`` and ``"host:18100"`` becomes
    ``"http://host:18100"``. Returns ``""`` for an empty address.
    """
    addr = (relay_address or "").strip()
    if not addr:
        return ""
    if addr.startswith(("http://", "https://")):
        return addr
    if addr.startswith(":"):
        addr = "127.0.0.1" + addr
    if "://" not in addr:
        addr = "http://" + addr
    return addr


class ConfigExtractor:
    """Collect the URLs of enabled providers across config sources."""

    def __init__(self, sources: list[ConfigSource]) -> None:
        self._sources = list(sources)

    @classmethod
    def default(cls, config_dir: str | Path) -> ConfigExtractor:
        """Extractor over the three standard provider files in *config_dir*."""
        base = Path(config_dir)
        return cls(
            [
                ProviderListSource(base / CLAUDE_CONFIG_FILE),
                ProviderListSource(base / CODEX_CONFIG_FILE),
                GeminiProviderSource(base / GEMINI_CONFIG_FILE),
            ]
        )

    @property
    def sources(self) -> list[ConfigSource]:
        return list(self._sources)

    def extract_endpoints(self, relay_address: str | None = None) -> list[str]:
        """Deduplicated URLs of enabled providers, in discovery order.

        Unreadable sources are skipped. When no source yields a URL and a
        relay address is given, the relay's base URL is returned instead.
        """
        urls: list[str] = []
        seen: set[str] = set()

        for source in self._sources:
            try:
                entries = source.read_entries()
            except ConfigError as exc:
                logger.debug("Skipping provider config source: %s", exc)
                continue

            for entry in entries:
                if entry.enabled and entry.url and entry.url not in seen:
                    seen.add(entry.url)
                    urls.append(entry.url)

        if not urls:
            fallback = relay_base_url(relay_address)
            if fallback:
                urls.append(fallback)

        return urls
