"""
FastAPI application factories.

``create_app()`` wires middleware, routers, error handlers and the
simulator lifespan into the main application.  ``create_metrics_app()``
builds the metrics-only application served on ``--listen-metrics``.

Both share one :class:`ServiceMetrics` (and therefore one registry) when
the caller passes the same instance to each factory.

Middleware (outermost → innermost)::

    InstrumentationMiddleware → BasicAuthMiddleware → router

so requests rejected by auth are still counted.
"""

from __future__ import annotations

import random
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException

from instrumentation_demo import __version__
from instrumentation_demo.api.middleware.auth import BasicAuthMiddleware
from instrumentation_demo.api.middleware.errors import (
    http_exception_handler,
    request_error_handler,
)
from instrumentation_demo.api.middleware.instrumentation import InstrumentationMiddleware
from instrumentation_demo.api.routers import business, health, metrics
from instrumentation_demo.core.errors import RequestError
from instrumentation_demo.core.logging import get_logger
from instrumentation_demo.core.settings import DemoSettings, get_settings
from instrumentation_demo.observability.exposition import MetricsExporter
from instrumentation_demo.observability.service_metrics import ServiceMetrics
from instrumentation_demo.simulator import BusinessSimulator

logger = get_logger(__name__)

BUSINESS_HANDLERS: dict[str, str] = {"/cpu": "cpu", "/hd": "hd"}
ROOT_HANDLER: dict[str, str] = {"/": "root"}


def build_service_metrics(settings: DemoSettings) -> ServiceMetrics:
    """Create the registry and every instrument described by ``settings``."""
    return ServiceMetrics(
        devices=settings.devices,
        stages=settings.stages if settings.simulate else (),
        initial_cpu_temperature=settings.initial_cpu_temperature,
        build_date=settings.build_date,
        commit_id=settings.commit_id,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Start the simulator on startup and stop it on shutdown."""
    settings: DemoSettings = app.state.settings
    simulator: BusinessSimulator | None = None

    logger.info("service_starting", version=app.version, simulate=settings.simulate)
    if settings.simulate:
        simulator = BusinessSimulator(
            app.state.metrics,
            interval_seconds=settings.simulate_interval_seconds,
            rng=app.state.rng,
        )
        simulator.start()
    app.state.simulator = simulator

    try:
        yield
    finally:
        if simulator is not None:
            await simulator.stop()
        logger.info("service_stopped")


def _base_app(
    settings: DemoSettings,
    service_metrics: ServiceMetrics,
    **kwargs: object,
) -> FastAPI:
    app = FastAPI(
        title="instrumentation-demo",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        **kwargs,  # type: ignore[arg-type]
    )

    # Stash shared objects on app state for dependency access
    app.state.settings = settings
    app.state.metrics = service_metrics
    app.state.exporter = MetricsExporter(service_metrics.registry)

    app.add_exception_handler(RequestError, request_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    return app


def create_app(
    *,
    settings: DemoSettings | None = None,
    service_metrics: ServiceMetrics | None = None,
    rng: random.Random | None = None,
) -> FastAPI:
    """Build the main application.

    Parameters
    ----------
    settings : DemoSettings | None
        Override settings (useful for testing).  When ``None`` the cached
        singleton from :func:`get_settings` is used.
    service_metrics : ServiceMetrics | None
        Metrics to record into.  When ``None`` a fresh registry is built.
    rng : random.Random | None
        Randomness for the ``/`` delay and the simulator.
    """
    settings = settings or get_settings()
    service_metrics = service_metrics or build_service_metrics(settings)

    app = _base_app(settings, service_metrics, lifespan=lifespan)
    app.state.rng = rng or random.Random()

    handlers = dict(BUSINESS_HANDLERS)
    if settings.simulate:
        handlers.update(ROOT_HANDLER)
    serve_metrics = not settings.listen_metrics

    # ── Middleware (innermost first) ─────────────────────────────────
    app.add_middleware(BasicAuthMiddleware, credentials=settings.credentials)
    app.add_middleware(
        InstrumentationMiddleware,
        metrics=service_metrics,
        handlers=handlers,
        count_only=("/metrics",) if serve_metrics else (),
    )

    # ── Routers ──────────────────────────────────────────────────────
    app.include_router(health.router, tags=["health"])
    app.include_router(business.router, tags=["business"])
    if settings.simulate:
        app.include_router(business.root_router, tags=["business"])
    if serve_metrics:
        app.include_router(metrics.router)

    return app


def create_metrics_app(
    *,
    settings: DemoSettings | None = None,
    service_metrics: ServiceMetrics | None = None,
) -> FastAPI:
    """Build the application that serves only ``/metrics``."""
    settings = settings or get_settings()
    service_metrics = service_metrics or build_service_metrics(settings)

    app = _base_app(settings, service_metrics)
    app.add_middleware(BasicAuthMiddleware, credentials=settings.credentials)
    app.include_router(metrics.router)
    return app
