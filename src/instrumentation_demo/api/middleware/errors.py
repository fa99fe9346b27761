"""
Render request errors as short plain-text responses.
"""

from __future__ import annotations

from fastapi import Request
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from instrumentation_demo.core.errors import MethodNotAllowedError, RequestError
from instrumentation_demo.core.logging import get_logger

logger = get_logger(__name__)

# ── Status → body for errors raised by routing itself ────────────────────

STATUS_TEXT: dict[int, str] = {
    404: "404 page not found",
    405: MethodNotAllowedError.default_detail,
}


def text_response(status: int, detail: str, headers: dict[str, str] | None = None) -> PlainTextResponse:
    """Build a plain-text error response (one line, newline terminated)."""
    return PlainTextResponse(f"{detail}\n", status_code=status, headers=headers)


async def request_error_handler(request: Request, exc: RequestError) -> PlainTextResponse:
    """Map a :class:`RequestError` raised by a handler to its HTTP status."""
    exc.with_context(path=request.url.path, method=request.method)
    log = logger.error if exc.status_code >= 500 else logger.info
    log("request_rejected", status_code=exc.status_code, **exc.to_dict())
    return text_response(exc.status_code, exc.detail)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> PlainTextResponse:
    """Render routing errors (404, 405) the same way as handler errors."""
    detail = STATUS_TEXT.get(exc.status_code, str(exc.detail))
    return text_response(exc.status_code, detail, headers=getattr(exc, "headers", None))
