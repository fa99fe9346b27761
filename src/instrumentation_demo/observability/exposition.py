"""Render a :class:`MetricsRegistry` in the Prometheus text format.

The registry is adapted to ``prometheus_client`` through a custom
collector, so the wire format (``# HELP``/``# TYPE`` lines, label
escaping, ``_bucket``/``_sum``/``_count`` series) comes from
``prometheus_client.generate_latest``.
"""

from __future__ import annotations

from collections.abc import Iterable

from prometheus_client import CollectorRegistry, generate_latest
from prometheus_client.core import (
    CounterMetricFamily,
    GaugeMetricFamily,
    HistogramMetricFamily,
    Metric,
)
from prometheus_client.registry import Collector
from prometheus_client.utils import floatToGoString

from instrumentation_demo.observability.metrics import (
    FamilySnapshot,
    MetricKind,
    MetricsRegistry,
)

# format written by generate_latest
CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"


def to_metric_family(snapshot: FamilySnapshot) -> Metric:
    """Convert one family snapshot to a ``prometheus_client`` metric family."""
    descriptor = snapshot.descriptor
    labels = list(descriptor.label_names)

    if descriptor.kind is MetricKind.GAUGE:
        family = GaugeMetricFamily(descriptor.name, descriptor.help, labels=labels)
        for label_values, value in snapshot.samples:
            family.add_metric(list(label_values), value)
        return family

    if descriptor.kind is MetricKind.COUNTER:
        family = CounterMetricFamily(descriptor.name, descriptor.help, labels=labels)
        for label_values, value in snapshot.samples:
            family.add_metric(list(label_values), value)
        return family

    family = HistogramMetricFamily(descriptor.name, descriptor.help, labels=labels)
    for label_values, histogram in snapshot.samples:
        family.add_metric(
            list(label_values),
            buckets=[(floatToGoString(bound), count) for bound, count in histogram.buckets],
            sum_value=histogram.sum,
        )
    return family


class RegistryCollector(Collector):
    """``prometheus_client`` collector backed by a :class:`MetricsRegistry`."""

    def __init__(self, registry: MetricsRegistry):
        self._registry = registry

    def collect(self) -> Iterable[Metric]:
        for snapshot in self._registry.collect():
            yield to_metric_family(snapshot)


class MetricsExporter:
    """Holds the ``CollectorRegistry`` that wraps one of our registries."""

    content_type = CONTENT_TYPE

    def __init__(self, registry: MetricsRegistry):
        self.registry = registry
        self._collector_registry = CollectorRegistry(auto_describe=False)
        self._collector_registry.register(RegistryCollector(registry))

    def render(self) -> bytes:
        """Current state of every family in the text exposition format."""
        return generate_latest(self._collector_registry)
