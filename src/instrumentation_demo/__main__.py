"""``python -m instrumentation_demo``."""

from instrumentation_demo.cli.app import app

app(prog_name="instrumentation-demo")
