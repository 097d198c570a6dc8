"""Error hierarchy and FastAPI exception handlers.

Every error raised by the blacklist, registry and config layers derives from
ProviderHealthError and carries its own HTTP status. The handlers below turn
those errors, request body validation failures and anything unexpected into
the shared ``ApiResponse`` envelope with ``success=False``.

Probe failures are not errors: the prober reports them inside each
``EndpointLatency`` result.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from provider_health.models.responses import ApiResponse

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Error hierarchy
# ---------------------------------------------------------------------------


class ProviderHealthError(Exception):
    """Base error for all provider-health errors.

    Keyword arguments are kept in ``details`` and returned as the envelope's
    ``meta``.
    """

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: str | None = None, **details: object) -> None:
        self.message = message or type(self).message
        self.details = details
        super().__init__(self.message)


class ValidationError(ProviderHealthError):
    """Rejected input: empty or unparseable URL, duplicate endpoint."""

    status_code = 422
    message = "Validation error"


class NotFoundError(ProviderHealthError):
    """Unblock, remove or update on a key that does not exist."""

    status_code = 404
    message = "Not found"


class PersistenceError(ProviderHealthError):
    """Failure store or endpoint registry read/write failure."""

    message = "Persistence error"


class ConfigError(ProviderHealthError):
    """Unreadable or malformed settings / provider configuration source."""

    message = "Configuration error"


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------


def _failure(status_code: int, error: str, meta: dict | None = None) -> JSONResponse:
    body = ApiResponse[None](success=False, error=error, meta=meta or None)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


async def _provider_health_error_handler(
    request: Request, exc: ProviderHealthError
) -> JSONResponse:
    level = logging.ERROR if exc.status_code >= 500 else logging.INFO
    logger.log(
        level,
        "%s %s failed with %d: %s",
        request.method,
        request.url.path,
        exc.status_code,
        exc.message,
    )
    return _failure(exc.status_code, exc.message, exc.details)


async def _request_validation_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report each invalid body/query field as ``{field, message, type}``."""
    fields = [
        {
            "field": " -> ".join(str(part) for part in err["loc"]),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
    return _failure(422, ValidationError.message, {"fields": fields})


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
    return _failure(500, ProviderHealthError.message)


def register_error_handlers(app: FastAPI) -> None:
    """Wire up all exception handlers on the FastAPI application."""
    app.add_exception_handler(ProviderHealthError, _provider_health_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_error_handler)  # type: ignore[arg-type]
