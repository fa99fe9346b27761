"""Observability package: metric instruments, registry and exposition."""

from .exposition import CONTENT_TYPE, MetricsExporter, RegistryCollector
from .metrics import (
    Counter,
    FamilySnapshot,
    Gauge,
    Histogram,
    HistogramSnapshot,
    MetricDescriptor,
    MetricFamily,
    MetricKind,
    MetricsRegistry,
)
from .service_metrics import ServiceMetrics

__all__ = [
    # Registry
    "MetricsRegistry",
    "MetricDescriptor",
    "MetricKind",
    "MetricFamily",
    "FamilySnapshot",
    "HistogramSnapshot",
    "Counter",
    "Gauge",
    "Histogram",
    # Exposition
    "MetricsExporter",
    "RegistryCollector",
    "CONTENT_TYPE",
    # Service
    "ServiceMetrics",
]
