"""Structured JSON logging configuration.

Every entry carries timestamp, level, logger, message and request_id (taken
from the record or, inside an HTTP request, from ``current_request_id``).
Blacklist transitions add platform, provider_name, failure_count and
threshold; endpoint probes add url, latency_ms, status_code and error_reason.

Provider config files hold API keys. Anything shaped like ``apiKey: ...`` or
``token=...`` is masked before it reaches the output.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone

from provider_health.middleware.request_id import current_request_id

_SECRET_ASSIGNMENT = re.compile(
    r"(?P<key>api[-_ ]?key|auth[-_ ]?token|secret|password|token|authorization)"
    r"(?P<sep>\s*[=:]\s*)\S+",
    re.IGNORECASE,
)

_CONTEXT_FIELDS = (
    "platform",
    "provider_name",
    "failure_count",
    "threshold",
    "url",
    "latency_ms",
    "status_code",
    "error_reason",
)


def redact(text: str) -> str:
    """Mask the value of every secret-looking ``key: value`` pair in *text*."""
    return _SECRET_ASSIGNMENT.sub(r"\g<key>\g<sep>[REDACTED]", text)


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": redact(record.getMessage()),
            "request_id": getattr(record, "request_id", None) or current_request_id.get(),
        }

        for name in _CONTEXT_FIELDS:
            if not hasattr(record, name):
                continue
            value = getattr(record, name)
            entry[name] = redact(value) if isinstance(value, str) else value

        if record.exc_info and record.exc_info[1]:
            entry["exception"] = redact(self.formatException(record.exc_info))

        return json.dumps(entry, default=str)


def configure_logging(level: str = "INFO", json_output: bool = True) -> None:
    """Install a single stream handler on the root logger.

    Parameters
    ----------
    level:
        Log level name; unknown names fall back to INFO.
    json_output:
        Emit ``JsonFormatter`` entries when True, plain
        ``asctime level name message`` lines otherwise (handy when running
        the service in a terminal).
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler()
    handler.setFormatter(
        JsonFormatter()
        if json_output
        else logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    )
    root.addHandler(handler)
