"""
Business endpoints: the signals the demo pretends to monitor.

``/cpu``
    GET renders the CPU temperature gauge, POST sets it from a float body.
``/hd``
    GET renders the failure count of every known device, POST with a
    device name as body records one failure for it.
``/``
    Only mounted with the simulator; answers ``Hello!`` after a random
    delay so the latency histogram has something to show.
"""

from __future__ import annotations

import asyncio
import math

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse, Response
from starlette.requests import ClientDisconnect

from instrumentation_demo.api.deps import Metrics, Rng, Settings
from instrumentation_demo.core.errors import BodyReadError, InvalidInputError
from instrumentation_demo.core.logging import get_logger

router = APIRouter()
root_router = APIRouter()
logger = get_logger(__name__)


def parse_float(text: str) -> float:
    """Parse a float the way a strict decimal parser would.

    Only ASCII literals are accepted.  Surrounding whitespace and ``_``
    digit separators are rejected even though :func:`float` tolerates
    them, as are finite literals that overflow to infinity.  Hexadecimal
    literals need a binary exponent (``0x1p-2``).  ``NaN`` and ``Inf`` are
    accepted.

    Raises:
        ValueError: if ``text`` is not a float literal
    """
    if not text or not text.isascii() or text != text.strip() or "_" in text:
        raise ValueError(f"not a float literal: {text!r}")

    if text.lstrip("+-")[:2].lower() == "0x":
        if "p" not in text.lower():
            raise ValueError(f"hexadecimal literal without exponent: {text!r}")
        try:
            return float.fromhex(text)
        except OverflowError as e:
            raise ValueError(f"value out of range: {text!r}") from e

    value = float(text)
    if math.isinf(value) and "inf" not in text.lower():
        raise ValueError(f"value out of range: {text!r}")
    return value


def format_float(value: float, precision: int) -> str:
    """Fixed-point text with ``NaN``, ``+Inf`` and ``-Inf`` for special values."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    return f"{value:.{precision}f}"


async def read_body_text(request: Request) -> str:
    """Read the whole request body as UTF-8 text."""
    try:
        body = await request.body()
    except ClientDisconnect as e:
        raise BodyReadError(cause=e) from e
    try:
        return body.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidInputError(cause=e) from e


# ── /cpu ─────────────────────────────────────────────────────────────────


@router.get("/cpu", response_class=PlainTextResponse)
def read_cpu_temperature(metrics: Metrics) -> PlainTextResponse:
    """Current CPU temperature."""
    return PlainTextResponse(f"The cpu temperature is {format_float(metrics.cpu_temperature_value, 2)}°C\n")


@router.post("/cpu")
async def set_cpu_temperature(request: Request, metrics: Metrics) -> Response:
    """Set the CPU temperature from a float in the request body."""
    text = await read_body_text(request)
    try:
        value = parse_float(text)
    except ValueError as e:
        raise InvalidInputError(cause=e) from e
    metrics.cpu_temperature.set(value)
    return Response(status_code=200)


# ── /hd ──────────────────────────────────────────────────────────────────


@router.get("/hd", response_class=PlainTextResponse)
def read_hd_failures(metrics: Metrics) -> PlainTextResponse:
    """Failure count of every known device, one per line."""
    lines = [
        f"The number of failures for {device} is {format_float(metrics.hd_failure_count(device), 0)}\n"
        for device in metrics.devices
    ]
    return PlainTextResponse("".join(lines))


@router.post("/hd")
async def record_hd_failure(request: Request, metrics: Metrics) -> Response:
    """Record one failure for the device named in the request body."""
    device = await read_body_text(request)
    if device not in metrics.devices:
        raise InvalidInputError()
    metrics.record_hd_failure(device)
    return Response(status_code=200)


# ── / ────────────────────────────────────────────────────────────────────


@root_router.get("/", response_class=PlainTextResponse)
async def hello(settings: Settings, rng: Rng) -> PlainTextResponse:
    """Say hello after a random delay."""
    await asyncio.sleep(rng.random() * settings.root_max_latency_ms / 1000)
    return PlainTextResponse("Hello!")
