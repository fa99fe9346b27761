"""Liveness and readiness probes.

Both always answer 200; they sit outside auth and instrumentation.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

router = APIRouter()


@router.get("/-/healthy", response_class=PlainTextResponse)
def healthy() -> str:
    """Liveness probe: is the service running?"""
    return "Healthy"


@router.get("/-/ready", response_class=PlainTextResponse)
def ready() -> str:
    """Readiness probe: can the service accept traffic?"""
    return "Ready"
