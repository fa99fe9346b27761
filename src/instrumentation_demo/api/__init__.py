"""HTTP API: application factories, middleware and routers."""

from instrumentation_demo.api.app import create_app, create_metrics_app

__all__ = ["create_app", "create_metrics_app"]
