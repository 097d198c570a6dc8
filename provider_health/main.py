"""FastAPI application entry point with lifespan management.

Startup: configure logging, start the periodic blacklist recovery sweep.
Shutdown: cancel the recovery sweep.

Run with ``provider-health`` or ``uvicorn provider_health.main:create_app --factory``.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from provider_health.blacklist.recovery import run_recovery_loop
from provider_health.blacklist.store import SqliteFailureStore
from provider_health.blacklist.tracker import BlacklistTracker
from provider_health.config.blacklist_policy import BlacklistPolicy, YamlBlacklistSettings
from provider_health.config.settings import HealthSettings
from provider_health.logging_config import configure_logging
from provider_health.middleware.error_handler import register_error_handlers
from provider_health.middleware.request_id import RequestIdMiddleware
from provider_health.routers.blacklist import create_blacklist_router
from provider_health.routers.endpoints import create_endpoints_router
from provider_health.routers.health import create_health_router
from provider_health.speedtest.prober import LatencyProber
from provider_health.speedtest.registry import EndpointRegistry
from provider_health.speedtest.sources import ConfigExtractor

logger = logging.getLogger(__name__)


def create_app(settings: HealthSettings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Components are built eagerly so a broken database path fails at startup
    rather than on the first request.
    """
    settings = settings or HealthSettings()

    tracker = BlacklistTracker(
        store=SqliteFailureStore(settings.resolved_database_path),
        settings_provider=YamlBlacklistSettings(
            settings.resolved_blacklist_settings_path,
            fallback=BlacklistPolicy(
                failure_threshold=settings.blacklist_failure_threshold,
                duration_minutes=settings.blacklist_duration_minutes,
            ),
        ),
    )
    registry = EndpointRegistry(settings.endpoints_path)
    extractor = ConfigExtractor.default(settings.config_dir)
    prober = LatencyProber(registry, max_concurrency=settings.probe_max_concurrency)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level, json_output=settings.log_json)
        logger.info("Starting provider health service on %s:%d", settings.host, settings.port)

        recovery_task = asyncio.create_task(
            run_recovery_loop(tracker, settings.recovery_interval_seconds)
        )

        yield

        logger.info("Shutting down provider health service…")
        recovery_task.cancel()
        try:
            await recovery_task
        except asyncio.CancelledError:
            pass
        logger.info("Provider health service shut down")

    app = FastAPI(
        title="Provider Health Service",
        version="1.0.0",
        lifespan=lifespan,
    )

    register_error_handlers(app)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(create_health_router(registry=registry))
    app.include_router(create_blacklist_router(tracker=tracker))
    app.include_router(
        create_endpoints_router(
            registry=registry,
            extractor=extractor,
            prober=prober,
            relay_address=settings.relay_address,
        )
    )

    app.state.settings = settings
    app.state.tracker = tracker
    app.state.registry = registry
    app.state.prober = prober

    return app


def main() -> None:
    """Console entry point."""
    settings = HealthSettings()
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
