"""
Run the service on one or two uvicorn listeners in a single event loop.

::

    settings ──► bind sockets (fail fast) ──► uvicorn.Server per listener
                                                │
                         first server to exit ──┴──► ask the others to exit

The main listener serves the business and health endpoints (and
``/metrics`` unless ``listen_metrics`` is set).  The optional metrics
listener serves only ``/metrics``.  Both record into the same registry.
"""

from __future__ import annotations

import asyncio
import socket
from dataclasses import dataclass

import uvicorn

from instrumentation_demo.api.app import build_service_metrics, create_app, create_metrics_app
from instrumentation_demo.core.errors import ErrorContext, ListenerBindError
from instrumentation_demo.core.logging import get_logger
from instrumentation_demo.core.settings import DemoSettings, parse_listen_address
from instrumentation_demo.observability.service_metrics import ServiceMetrics

logger = get_logger(__name__)


@dataclass
class Listener:
    """A bound socket and the uvicorn server that will accept on it."""

    name: str
    address: str
    sock: socket.socket
    server: uvicorn.Server


def bind_socket(address: str) -> socket.socket:
    """Bind a listening TCP socket for ``host:port``.

    Raises:
        InvalidListenAddressError: if the address cannot be parsed
        ListenerBindError: if the socket cannot be bound
    """
    host, port = parse_listen_address(address)
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
    except OSError as e:
        sock.close()
        raise ListenerBindError(
            f"Cannot listen on {address}: {e}",
            context=ErrorContext(address=address),
            cause=e,
        ) from e
    sock.set_inheritable(True)
    return sock


def build_listeners(
    settings: DemoSettings,
    service_metrics: ServiceMetrics | None = None,
) -> list[Listener]:
    """Bind every configured listener and create its server."""
    service_metrics = service_metrics or build_service_metrics(settings)
    log_level = settings.log_level.lower()
    listeners: list[Listener] = []

    try:
        main_app = create_app(settings=settings, service_metrics=service_metrics)
        listeners.append(
            Listener(
                name="main",
                address=settings.listen,
                sock=bind_socket(settings.listen),
                server=uvicorn.Server(
                    uvicorn.Config(main_app, log_config=None, log_level=log_level, lifespan="on")
                ),
            )
        )

        if settings.listen_metrics:
            metrics_app = create_metrics_app(settings=settings, service_metrics=service_metrics)
            listeners.append(
                Listener(
                    name="metrics",
                    address=settings.listen_metrics,
                    sock=bind_socket(settings.listen_metrics),
                    server=uvicorn.Server(
                        uvicorn.Config(metrics_app, log_config=None, log_level=log_level, lifespan="off")
                    ),
                )
            )
    except Exception:
        for listener in listeners:
            listener.sock.close()
        raise

    return listeners


async def serve(listeners: list[Listener]) -> None:
    """Serve every listener until one of them stops, then stop the rest."""
    tasks = {
        asyncio.create_task(listener.server.serve(sockets=[listener.sock]), name=listener.name): listener
        for listener in listeners
    }
    for listener in listeners:
        logger.info(
            "listener_started",
            listener=listener.name,
            address=listener.address,
            metrics_only=listener.name == "metrics",
        )

    done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
    for task in pending:
        tasks[task].server.should_exit = True
    if pending:
        await asyncio.wait(pending)

    for task, listener in tasks.items():
        logger.info("listener_stopped", listener=listener.name, address=listener.address)
        # re-raise the first server failure, if any
        task.result()


def run(settings: DemoSettings) -> None:
    """Bind, serve and block until the process is asked to stop."""
    if settings.auth_enabled:
        logger.info("basic_auth_enabled")
    listeners = build_listeners(settings)
    asyncio.run(serve(listeners))
