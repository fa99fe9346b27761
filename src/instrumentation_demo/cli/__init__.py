"""Command-line entry point."""

from instrumentation_demo.cli.app import app

__all__ = ["app"]
