"""API middleware package.

Cross-cutting concerns (basic auth, request instrumentation, error
rendering) live here so routers stay focused on the business endpoints.
"""

from instrumentation_demo.api.middleware.auth import BasicAuthMiddleware
from instrumentation_demo.api.middleware.instrumentation import InstrumentationMiddleware

__all__ = [
    "BasicAuthMiddleware",
    "InstrumentationMiddleware",
]
