"""
Root Typer application for the instrumentation demo.

Every option falls back to the matching ``DEMO_*`` environment variable
(or ``.env`` entry) when it is not given on the command line.
"""

from __future__ import annotations

import typer
from pydantic import ValidationError

from instrumentation_demo import __version__
from instrumentation_demo.core.errors import ConfigError, ListenerBindError
from instrumentation_demo.core.logging import configure_logging, get_logger
from instrumentation_demo.core.settings import DemoSettings

app = typer.Typer(
    name="instrumentation-demo",
    help="HTTP service instrumented with Prometheus metrics.",
    add_completion=False,
)

logger = get_logger(__name__)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"instrumentation-demo {__version__}")
        raise typer.Exit()


def build_settings(**overrides: object) -> DemoSettings:
    """Settings from env/.env with the given non-None overrides applied."""
    return DemoSettings(**{key: value for key, value in overrides.items() if value is not None})


@app.command()
def main(
    listen: str | None = typer.Option(
        None, "--listen", help="Listen address  [default: 127.0.0.1:8080]"
    ),
    listen_metrics: str | None = typer.Option(
        None,
        "--listen-metrics",
        help="Listen address for exposing metrics (default to 'listen' if blank)",
    ),
    basic_auth: str | None = typer.Option(
        None, "--basic-auth", help="Basic authentication (eg <user>:<password>)"
    ),
    simulate: bool | None = typer.Option(
        None,
        "--simulate/--no-simulate",
        help="Run the background simulator and serve '/'  [default: no-simulate]",
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="Log level  [default: INFO]"),
    log_json: bool | None = typer.Option(
        None, "--log-json/--no-log-json", help="JSON logs  [default: auto]"
    ),
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Serve the business endpoints and their metrics."""
    from instrumentation_demo import server

    try:
        settings = build_settings(
            listen=listen,
            listen_metrics=listen_metrics,
            basic_auth=basic_auth,
            simulate=simulate,
            log_level=log_level,
            log_json=log_json,
        )
    except ValidationError as e:
        typer.echo(f"Error: invalid configuration\n{e}", err=True)
        raise typer.Exit(code=2) from e

    configure_logging(level=settings.log_level, json_format=settings.log_json)

    if settings.basic_auth and not settings.auth_enabled:
        logger.warning("basic_auth_ignored", reason="expected <user>:<password>")

    try:
        server.run(settings)
    except (ConfigError, ListenerBindError) as e:
        logger.error("startup_failed", **e.to_dict())
        typer.echo(f"Error: {e.message}", err=True)
        raise typer.Exit(code=1) from e
    except KeyboardInterrupt:
        logger.info("interrupted")


if __name__ == "__main__":
    app()
