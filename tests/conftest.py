"""
Shared pytest fixtures for the instrumentation demo tests.

Every test builds its own settings, registry and app so no state leaks
between tests; nothing here touches the cached process-wide settings.
"""

from __future__ import annotations

import os
import random
from collections.abc import Callable, Iterator
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from instrumentation_demo.api.app import build_service_metrics, create_app
from instrumentation_demo.observability.metrics import MetricsRegistry
from instrumentation_demo.observability.service_metrics import ServiceMetrics
from tests._support.helpers import make_settings

AppFactory = Callable[..., tuple[FastAPI, ServiceMetrics]]


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop any DEMO_* variables from the developer's shell."""
    for key in list(os.environ):
        if key.startswith("DEMO_"):
            monkeypatch.delenv(key)


@pytest.fixture
def registry() -> MetricsRegistry:
    return MetricsRegistry()


@pytest.fixture
def app_factory() -> AppFactory:
    """Build an app plus the metrics it records into."""

    def _factory(**overrides: Any) -> tuple[FastAPI, ServiceMetrics]:
        overrides.setdefault("root_max_latency_ms", 0)
        app_settings = make_settings(**overrides)
        metrics = build_service_metrics(app_settings)
        app = create_app(settings=app_settings, service_metrics=metrics, rng=random.Random(7))
        return app, metrics

    return _factory


@pytest.fixture
def client(app_factory: AppFactory) -> Iterator[TestClient]:
    """Client for the default app: no auth, no simulator, metrics on main."""
    app, _ = app_factory()
    with TestClient(app) as test_client:
        yield test_client
