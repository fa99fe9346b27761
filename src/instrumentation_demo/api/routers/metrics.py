"""Metrics endpoint (Prometheus text format)."""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response

from instrumentation_demo.api.deps import Exporter

router = APIRouter()


@router.get("/metrics", tags=["observability"])
def metrics_endpoint(exporter: Exporter) -> Response:
    """Export every registered metric."""
    return Response(content=exporter.render(), media_type=exporter.content_type)
