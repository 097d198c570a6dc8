"""HTTP routers for the provider health service."""

from provider_health.routers.blacklist import create_blacklist_router
from provider_health.routers.endpoints import create_endpoints_router
from provider_health.routers.health import create_health_router

__all__ = [
    "create_blacklist_router",
    "create_endpoints_router",
    "create_health_router",
]
