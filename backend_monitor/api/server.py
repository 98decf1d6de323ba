"""FastAPI server for the backend health monitor."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend_monitor.api.routes import broadcast_report, health_router
from backend_monitor.config import settings
from backend_monitor.endpoints import EndpointRegistry
from backend_monitor.health.aggregator import HealthAggregator
from backend_monitor.health.monitor import HealthMonitor

logger = logging.getLogger(__name__)


def build_monitor() -> HealthMonitor:
    """Monitor wired from settings + endpoints.yaml."""
    registry = EndpointRegistry(settings.endpoints_file, settings.api_url)
    return HealthMonitor(
        endpoints=registry.load(),
        timeout=settings.probe_timeout,
        interval=settings.check_interval,
        aggregator=HealthAggregator(method=settings.probe_method),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the shared monitor session on startup, stop it on shutdown."""
    monitor = build_monitor()
    monitor.subscribe(broadcast_report)
    app.state.monitor = monitor

    try:
        await monitor.start()
        logger.info(
            "Health monitor started — %d endpoints, interval=%dms timeout=%dms",
            len(monitor.endpoints), settings.check_interval_ms, settings.probe_timeout_ms,
        )
    except Exception:
        logger.exception("Health monitor failed to start")

    yield

    monitor.stop()
    monitor.unsubscribe(broadcast_report)
    await monitor.wait_stopped()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Backend Health Monitor",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router, prefix="/api")
    return app


app = create_app()
