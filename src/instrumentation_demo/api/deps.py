"""
FastAPI dependency injection for per-app singletons.

The settings, metrics and exporter are built once by the app factory and
stashed on ``app.state``; these helpers hand them to the routers::

    from instrumentation_demo.api.deps import Metrics

    @router.get("/cpu")
    def read_cpu(metrics: Metrics):
        ...
"""

from __future__ import annotations

import random
from typing import Annotated

from fastapi import Depends, Request

from instrumentation_demo.core.settings import DemoSettings
from instrumentation_demo.observability.exposition import MetricsExporter
from instrumentation_demo.observability.service_metrics import ServiceMetrics


def get_app_settings(request: Request) -> DemoSettings:
    return request.app.state.settings


def get_service_metrics(request: Request) -> ServiceMetrics:
    return request.app.state.metrics


def get_exporter(request: Request) -> MetricsExporter:
    return request.app.state.exporter


def get_rng(request: Request) -> random.Random:
    return request.app.state.rng


# ── Convenience type aliases ─────────────────────────────────────────────

Settings = Annotated[DemoSettings, Depends(get_app_settings)]
Metrics = Annotated[ServiceMetrics, Depends(get_service_metrics)]
Exporter = Annotated[MetricsExporter, Depends(get_exporter)]
Rng = Annotated[random.Random, Depends(get_rng)]
