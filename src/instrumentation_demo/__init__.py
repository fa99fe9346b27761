"""
Instrumentation demo - an HTTP service instrumented with Prometheus-style metrics.

Serves a few simulated business signals (CPU temperature, hard-disk
failures, sessions, orders) and HTTP handler metrics on ``/metrics``,
optionally behind basic authentication and on a separate listener.
"""

__version__ = "0.1.0"
