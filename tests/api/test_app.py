"""
Tests for the FastAPI application factories and the health probes.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.testclient import TestClient

from instrumentation_demo import __version__
from instrumentation_demo.api.app import build_service_metrics, create_app, create_metrics_app
from tests._support.helpers import make_settings


def _paths(app: FastAPI) -> set[str]:
    return {path for route in app.routes if (path := getattr(route, "path", None)) is not None}


class TestCreateApp:
    def test_returns_fastapi_instance(self, app_factory):
        app, _ = app_factory()
        assert isinstance(app, FastAPI)
        assert app.version == __version__

    def test_docs_disabled(self, app_factory):
        app, _ = app_factory()
        assert app.openapi_url is None
        assert app.docs_url is None

    def test_routes_registered(self, app_factory):
        app, _ = app_factory()
        assert {"/cpu", "/hd", "/-/healthy", "/-/ready", "/metrics"} <= _paths(app)
        assert "/" not in _paths(app)

    def test_root_route_with_simulator(self, app_factory):
        app, _ = app_factory(simulate=True)
        assert "/" in _paths(app)

    def test_middleware_order(self, app_factory):
        app, _ = app_factory()
        middleware_classes = [m.cls.__name__ for m in app.user_middleware]
        assert middleware_classes == ["InstrumentationMiddleware", "BasicAuthMiddleware"]

    def test_state(self, app_factory):
        app, metrics = app_factory(basic_auth="a:b")
        assert app.state.metrics is metrics
        assert app.state.settings.credentials == ("a", "b")
        assert app.state.exporter.registry is metrics.registry

    def test_defaults_build_their_own_metrics(self):
        s = make_settings()
        first = create_app(settings=s)
        second = create_app(settings=s)
        assert first.state.metrics is not second.state.metrics


class TestCreateMetricsApp:
    def test_only_metrics_route(self):
        s = make_settings(listen_metrics="127.0.0.1:9090")
        app = create_metrics_app(settings=s, service_metrics=build_service_metrics(s))
        assert _paths(app) == {"/metrics"}


class TestHealth:
    def test_healthy(self, client):
        resp = client.get("/-/healthy")
        assert resp.status_code == 200
        assert resp.text == "Healthy"

    def test_ready(self, client):
        resp = client.get("/-/ready")
        assert resp.status_code == 200
        assert resp.text == "Ready"

    def test_health_survives_simulator(self, app_factory):
        app, _ = app_factory(simulate=True)
        with TestClient(app) as c:
            assert c.get("/-/healthy").text == "Healthy"
            assert c.get("/-/ready").text == "Ready"
