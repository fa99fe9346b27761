"""
HTTP Basic authentication middleware.

When credentials are configured, every request must carry a matching
``Authorization: Basic ...`` header.  Requests without credentials, or with
the wrong ones, receive ``401 Unauthorized.`` and never reach the app.

Bypass paths (no auth required):
  - ``/-/healthy``
  - ``/-/ready``

Tags:
    api, middleware, authentication, basic-auth

Doc-Types:
    api-reference
"""

from __future__ import annotations

import base64
import binascii
import secrets

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from instrumentation_demo.core.errors import UnauthorizedError
from instrumentation_demo.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_BYPASS_PATHS: tuple[str, ...] = ("/-/healthy", "/-/ready")


def parse_basic_auth(header: str | None) -> tuple[str, str] | None:
    """Decode an ``Authorization`` header into ``(user, password)``.

    Returns None when the header is missing, uses another scheme, is not
    valid base64 or lacks the ``:`` separator.
    """
    if not header:
        return None
    scheme, _, encoded = header.partition(" ")
    if scheme.lower() != "basic":
        return None
    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    user, sep, password = decoded.partition(":")
    if not sep:
        return None
    return user, password


class BasicAuthMiddleware(BaseHTTPMiddleware):
    """Reject requests that lack valid basic-auth credentials.

    If ``credentials`` is ``None`` (the default), authentication is disabled
    and all requests pass through.

    Parameters
    ----------
    app:
        The ASGI application to wrap.
    credentials:
        Expected ``(user, password)``.  ``None`` disables enforcement.
    bypass_paths:
        Exact paths that never require credentials.
    realm:
        Realm announced in the ``WWW-Authenticate`` challenge.
    """

    def __init__(
        self,
        app: object,
        credentials: tuple[str, str] | None = None,
        bypass_paths: tuple[str, ...] = DEFAULT_BYPASS_PATHS,
        realm: str = "instrumentation-demo",
    ) -> None:
        super().__init__(app)  # type: ignore[arg-type]
        self._credentials = credentials
        self._bypass_paths = frozenset(bypass_paths)
        self._realm = realm

    def _is_authorized(self, request: Request) -> bool:
        provided = parse_basic_auth(request.headers.get("Authorization"))
        if provided is None:
            return False
        user, password = provided
        expected_user, expected_password = self._credentials  # type: ignore[misc]
        user_ok = secrets.compare_digest(user.encode(), expected_user.encode())
        password_ok = secrets.compare_digest(password.encode(), expected_password.encode())
        return user_ok and password_ok

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if self._credentials is None or request.url.path in self._bypass_paths:
            return await call_next(request)

        if not self._is_authorized(request):
            logger.info(
                "request_unauthorized",
                path=request.url.path,
                method=request.method,
                client=request.client.host if request.client else "unknown",
            )
            error = UnauthorizedError()
            return PlainTextResponse(
                f"{error.detail}\n",
                status_code=error.status_code,
                headers={"WWW-Authenticate": f'Basic realm="{self._realm}"'},
            )

        return await call_next(request)
