"""Middleware package: error hierarchy and request ID."""

from provider_health.middleware.error_handler import (
    ConfigError,
    NotFoundError,
    PersistenceError,
    ProviderHealthError,
    ValidationError,
    register_error_handlers,
)
from provider_health.middleware.request_id import RequestIdMiddleware, current_request_id

__all__ = [
    "ConfigError",
    "NotFoundError",
    "PersistenceError",
    "ProviderHealthError",
    "RequestIdMiddleware",
    "ValidationError",
    "current_request_id",
    "register_error_handlers",
]
