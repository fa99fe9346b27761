"""Instrumentation middleware recording HTTP handler metrics.

For every request to a known path the middleware records:

- ``http_requests_total{method,code}``
- ``http_request_duration_seconds{handler,method}`` (handler paths only)
- ``http_request_size_bytes{handler,method}`` (handler paths only)

Paths listed in ``count_only`` get the request counter but no histograms.
Everything else passes through unrecorded.
"""

from __future__ import annotations

import time
from collections.abc import Mapping

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from instrumentation_demo.core.logging import get_logger
from instrumentation_demo.observability.service_metrics import ServiceMetrics

logger = get_logger(__name__)


def approximate_request_size(request: Request) -> int:
    """Request line, headers and declared body length, in bytes."""
    size = len(request.method) + len(request.url.path) + len(request.url.query)
    size += len("HTTP/") + len(request.scope.get("http_version", "1.1"))
    for name, value in request.headers.items():
        size += len(name) + len(value)
    content_length = request.headers.get("content-length", "")
    if content_length.isdigit():
        size += int(content_length)
    return size


class InstrumentationMiddleware(BaseHTTPMiddleware):
    """Measure request count, latency and size into :class:`ServiceMetrics`."""

    def __init__(
        self,
        app: object,
        metrics: ServiceMetrics,
        handlers: Mapping[str, str] | None = None,
        count_only: tuple[str, ...] = (),
    ) -> None:
        super().__init__(app)  # type: ignore[arg-type]
        self._metrics = metrics
        self._handlers = dict(handlers or {})
        self._count_only = frozenset(count_only)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        handler = self._handlers.get(path)
        if handler is None and path not in self._count_only:
            return await call_next(request)

        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start

        if handler is None:
            self._metrics.record_request(request.method, response.status_code)
        else:
            self._metrics.record_request(
                request.method,
                response.status_code,
                handler=handler,
                duration=elapsed,
                size=approximate_request_size(request),
            )

        logger.debug(
            "request_served",
            method=request.method,
            path=path,
            status_code=response.status_code,
            duration_ms=round(elapsed * 1000, 2),
        )
        return response
