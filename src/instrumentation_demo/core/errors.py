"""
Structured error types for the instrumentation demo.

Every error raised by the service extends :class:`DemoError`, which carries
a category and an optional :class:`ErrorContext` so that log lines and HTTP
responses can be built from the same object.

Two families matter in practice:

- **Metric errors** are construction-time misconfigurations (duplicate
  metric names, wrong label arity, negative counter increments).  They are
  never caught inside request handling; the process fails fast.
- **Request errors** map one-to-one onto an HTTP status and a short text
  body.  Handlers raise them; the exception handler in
  :mod:`instrumentation_demo.api.middleware.errors` renders them.

Architecture:
    ::

        DemoError (category, context)
        ├── MetricError (METRIC)
        │   ├── DuplicateMetricNameError
        │   ├── LabelCardinalityError
        │   ├── NegativeIncrementError
        │   └── InvalidMetricError
        ├── RequestError (REQUEST, status_code, detail)
        │   ├── InvalidInputError        400
        │   ├── BodyReadError            500
        │   ├── MethodNotAllowedError    405
        │   └── UnauthorizedError        401
        ├── ConfigError (CONFIG)
        │   └── InvalidListenAddressError
        └── ListenerBindError (LISTENER)

Tags:
    error-handling, exception-hierarchy, http-status, metrics

Doc-Types:
    api-reference
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories used for classification in logs."""

    METRIC = "METRIC"
    REQUEST = "REQUEST"
    CONFIG = "CONFIG"
    LISTENER = "LISTENER"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """Structured metadata attached to an error.

    Attributes:
        metric: Name of the metric family involved
        path: Request path, for request errors
        method: Request method, for request errors
        address: Listen address, for listener/config errors
        metadata: Anything else worth logging
    """

    metric: str | None = None
    path: str | None = None
    method: str | None = None
    address: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Return the non-empty fields as a flat dict."""
        result: dict[str, Any] = {}
        for key in ("metric", "path", "method", "address"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        result.update(self.metadata)
        return result


class DemoError(Exception):
    """
    Base exception for all instrumentation-demo errors.

    Subclasses set ``default_category``; callers may attach context either
    through the constructor or fluently with :meth:`with_context`.

    Examples:
        >>> error = DemoError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(metric="cpu_temperature_celsius").context.metric
        'cpu_temperature_celsius'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> DemoError:
        """
        Add context to this error (fluent API).

        Usage:
            raise InvalidInputError().with_context(path="/cpu", method="POST")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# METRIC ERRORS (construction-time, fail fast)
# =============================================================================


class MetricError(DemoError):
    """Misuse of the metrics registry or one of its instruments."""

    default_category = ErrorCategory.METRIC


class DuplicateMetricNameError(MetricError):
    """A metric family with the same name is already registered."""

    def __init__(self, name: str):
        super().__init__(
            f"Duplicate metric name: {name!r} is already registered",
            context=ErrorContext(metric=name),
        )
        self.name = name


class LabelCardinalityError(MetricError):
    """Label values do not match the family's label names."""

    def __init__(self, name: str, expected: tuple[str, ...], got: Any):
        super().__init__(
            f"Incorrect label values for {name!r}: expected {list(expected)}, got {got!r}",
            context=ErrorContext(metric=name),
        )
        self.expected = expected


class NegativeIncrementError(MetricError):
    """Counters can only go up."""

    def __init__(self, name: str, delta: float):
        super().__init__(
            f"Counter {name!r} cannot be increased by a negative amount ({delta})",
            context=ErrorContext(metric=name),
        )
        self.delta = delta


class InvalidMetricError(MetricError):
    """A metric descriptor is malformed (bad name, label or buckets)."""


# =============================================================================
# REQUEST ERRORS (mapped to an HTTP status and short text body)
# =============================================================================


class RequestError(DemoError):
    """An error that is answered with an HTTP status and a plain-text body."""

    default_category = ErrorCategory.REQUEST
    status_code: int = 500
    default_detail: str = "Internal server error"

    def __init__(self, detail: str | None = None, *, cause: Exception | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail, cause=cause)


class InvalidInputError(RequestError):
    """Malformed request body."""

    status_code = 400
    default_detail = "Invalid request"


class BodyReadError(RequestError):
    """The request body could not be read."""

    status_code = 500
    default_detail = "Error processing request"


class MethodNotAllowedError(RequestError):
    """HTTP method not supported on this path."""

    status_code = 405
    default_detail = "Method not allowed"


class UnauthorizedError(RequestError):
    """Missing or mismatched basic-auth credentials."""

    status_code = 401
    default_detail = "Unauthorized."


# =============================================================================
# CONFIGURATION / LISTENER ERRORS (startup, fatal)
# =============================================================================


class ConfigError(DemoError):
    """Invalid startup configuration."""

    default_category = ErrorCategory.CONFIG


class InvalidListenAddressError(ConfigError):
    """A listen address is not of the form ``host:port``."""

    def __init__(self, address: str, reason: str):
        super().__init__(
            f"Invalid listen address {address!r}: {reason}",
            context=ErrorContext(address=address),
        )
        self.address = address


class ListenerBindError(DemoError):
    """An HTTP listener failed to bind or stopped serving."""

    default_category = ErrorCategory.LISTENER


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "DemoError",
    "MetricError",
    "DuplicateMetricNameError",
    "LabelCardinalityError",
    "NegativeIncrementError",
    "InvalidMetricError",
    "RequestError",
    "InvalidInputError",
    "BodyReadError",
    "MethodNotAllowedError",
    "UnauthorizedError",
    "ConfigError",
    "InvalidListenAddressError",
    "ListenerBindError",
]
