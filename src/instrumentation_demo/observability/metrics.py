"""Prometheus-style metric instruments and their registry.

A :class:`MetricsRegistry` owns named metric families.  Each family is
described by an immutable :class:`MetricDescriptor` and maps a tuple of
label values (ordered like the descriptor's ``label_names``) to a sample.

Metric types:
- Gauge: value that can be set arbitrarily
- Counter: monotonically increasing value
- Histogram: distribution of values over fixed buckets, plus sum and count

Example:
    >>> registry = MetricsRegistry()
    >>> temp = registry.gauge("cpu_temperature_celsius", "Current temperature of the CPU.")
    >>> temp.set(37.0)
    >>>
    >>> failures = registry.counter("hd_errors_total", "Number of hard-disk errors.", ["device"])
    >>> failures.with_labels("sda").inc()
    >>>
    >>> latency = registry.histogram("http_request_duration_seconds", "Latencies.", ["method"])
    >>> latency.labels(method="get").observe(0.3)

Writers and readers of one family share that family's lock, so
:meth:`MetricsRegistry.collect` sees each family at a single point in time.
There is no atomicity across families.
"""

from __future__ import annotations

import math
import re
import threading
import time
from bisect import bisect_left
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator

from instrumentation_demo.core.errors import (
    DuplicateMetricNameError,
    InvalidMetricError,
    LabelCardinalityError,
    NegativeIncrementError,
)

_METRIC_NAME_RE = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")
_LABEL_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

INF = float("inf")

DEFAULT_BUCKETS: tuple[float, ...] = (
    0.005,
    0.01,
    0.025,
    0.05,
    0.075,
    0.1,
    0.25,
    0.5,
    0.75,
    1.0,
    2.5,
    5.0,
    7.5,
    10.0,
)


class MetricKind(str, Enum):
    """Kind of a metric family; the value is the exposition ``# TYPE``."""

    GAUGE = "gauge"
    COUNTER = "counter"
    HISTOGRAM = "histogram"


@dataclass(frozen=True)
class MetricDescriptor:
    """Static metadata of a metric family.

    ``buckets`` only applies to histograms and lists the finite upper
    bounds in ascending order; the ``+Inf`` bucket is implicit.  When a
    histogram is declared without buckets, :data:`DEFAULT_BUCKETS` is used.
    """

    name: str
    help: str
    kind: MetricKind
    label_names: tuple[str, ...] = ()
    buckets: tuple[float, ...] = ()

    def __post_init__(self) -> None:
        if not _METRIC_NAME_RE.match(self.name):
            raise InvalidMetricError(f"Invalid metric name: {self.name!r}")

        label_names = tuple(self.label_names)
        for label in label_names:
            if not _LABEL_NAME_RE.match(label) or label.startswith("__"):
                raise InvalidMetricError(f"Invalid label name {label!r} for {self.name!r}")
            if self.kind is MetricKind.HISTOGRAM and label == "le":
                raise InvalidMetricError(f"Histogram {self.name!r} cannot use the 'le' label")
        if len(set(label_names)) != len(label_names):
            raise InvalidMetricError(f"Duplicate label names for {self.name!r}: {label_names}")
        object.__setattr__(self, "label_names", label_names)

        if self.kind is MetricKind.COUNTER and not self.name.endswith("_total"):
            raise InvalidMetricError(f"Counter name {self.name!r} must end with '_total'")

        if self.kind is MetricKind.HISTOGRAM:
            buckets = tuple(float(b) for b in (self.buckets or DEFAULT_BUCKETS))
            if buckets and buckets[-1] == INF:
                buckets = buckets[:-1]
            if any(math.isnan(b) or math.isinf(b) for b in buckets):
                raise InvalidMetricError(f"Histogram {self.name!r} has a non-finite bucket bound")
            if any(lo >= hi for lo, hi in zip(buckets, buckets[1:])):
                raise InvalidMetricError(
                    f"Histogram {self.name!r} buckets must be strictly increasing: {buckets}"
                )
            object.__setattr__(self, "buckets", buckets)
        elif self.buckets:
            raise InvalidMetricError(f"Only histograms take buckets, {self.name!r} is a {self.kind.value}")

    @property
    def upper_bounds(self) -> tuple[float, ...]:
        """Bucket bounds including the implicit ``+Inf``."""
        return self.buckets + (INF,)


# =============================================================================
# Samples
# =============================================================================


@dataclass(frozen=True)
class HistogramSnapshot:
    """Point-in-time histogram state with cumulative bucket counts."""

    buckets: tuple[tuple[float, int], ...]
    sum: float
    count: int


class GaugeSample:
    """Gauge with fixed labels."""

    def __init__(self, descriptor: MetricDescriptor, lock: threading.Lock):
        self._descriptor = descriptor
        self._lock = lock
        self._value = 0.0

    def set(self, value: float) -> None:
        """Set the gauge value."""
        with self._lock:
            self._value = float(value)

    def inc(self, amount: float = 1.0) -> None:
        """Increment the gauge."""
        with self._lock:
            self._value += amount

    def dec(self, amount: float = 1.0) -> None:
        """Decrement the gauge."""
        self.inc(-amount)

    def _read(self) -> float:
        return self._value

    @property
    def value(self) -> float:
        """Get current value."""
        with self._lock:
            return self._value


class CounterSample:
    """Counter with fixed labels."""

    def __init__(self, descriptor: MetricDescriptor, lock: threading.Lock):
        self._descriptor = descriptor
        self._lock = lock
        self._value = 0.0

    def add(self, delta: float) -> None:
        """Increase the counter by a non-negative ``delta`` (NaN is rejected)."""
        if not delta >= 0:
            raise NegativeIncrementError(self._descriptor.name, delta)
        with self._lock:
            self._value += delta

    def inc(self, amount: float = 1.0) -> None:
        """Increment the counter."""
        self.add(amount)

    def _read(self) -> float:
        return self._value

    @property
    def value(self) -> float:
        """Get current value."""
        with self._lock:
            return self._value


class HistogramSample:
    """Histogram with fixed labels.

    Counts are stored per bucket and made cumulative on read.
    """

    def __init__(self, descriptor: MetricDescriptor, lock: threading.Lock):
        self._descriptor = descriptor
        self._lock = lock
        self._upper_bounds = descriptor.upper_bounds
        self._counts = [0] * len(self._upper_bounds)
        self._sum = 0.0

    def observe(self, value: float) -> None:
        """Record an observation."""
        # first bucket whose bound is >= value; NaN lands in +Inf
        index = bisect_left(self._upper_bounds, value) if not math.isnan(value) else -1
        with self._lock:
            self._counts[index] += 1
            self._sum += value

    def time(self) -> Timer:
        """Context manager to time a block and record duration."""
        return Timer(self)

    def _read(self) -> HistogramSnapshot:
        cumulative = []
        running = 0
        for bound, count in zip(self._upper_bounds, self._counts):
            running += count
            cumulative.append((bound, running))
        return HistogramSnapshot(buckets=tuple(cumulative), sum=self._sum, count=running)

    def snapshot(self) -> HistogramSnapshot:
        """Get histogram data."""
        with self._lock:
            return self._read()


class Timer:
    """Context manager for timing operations."""

    def __init__(self, sample: HistogramSample):
        self._sample = sample
        self._start: float | None = None

    def __enter__(self) -> Timer:
        self._start = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        self._sample.observe(time.perf_counter() - self._start)


# =============================================================================
# Families
# =============================================================================


@dataclass(frozen=True)
class FamilySnapshot:
    """Descriptor plus ``(label_values, value)`` pairs for one family."""

    descriptor: MetricDescriptor
    samples: list[tuple[tuple[str, ...], Any]] = field(default_factory=list)


class MetricFamily:
    """A named metric partitioned by label values.

    Unlabelled families hold exactly one sample, created up front, and
    forward ``set``/``inc``/``observe`` to it.  Labelled families create
    samples lazily through :meth:`with_labels` / :meth:`labels`.
    """

    sample_class: type = GaugeSample

    def __init__(self, descriptor: MetricDescriptor):
        self.descriptor = descriptor
        self._lock = threading.Lock()
        self._samples: dict[tuple[str, ...], Any] = {}
        if not descriptor.label_names:
            self._samples[()] = self.sample_class(descriptor, self._lock)

    @property
    def name(self) -> str:
        return self.descriptor.name

    def with_labels(self, *values: str) -> Any:
        """Return the sample for these label values, creating it if needed."""
        key = tuple(str(v) for v in values)
        if len(key) != len(self.descriptor.label_names):
            raise LabelCardinalityError(self.name, self.descriptor.label_names, values)
        with self._lock:
            sample = self._samples.get(key)
            if sample is None:
                sample = self.sample_class(self.descriptor, self._lock)
                self._samples[key] = sample
            return sample

    def labels(self, **kwargs: str) -> Any:
        """Keyword form of :meth:`with_labels`."""
        if set(kwargs) != set(self.descriptor.label_names):
            raise LabelCardinalityError(self.name, self.descriptor.label_names, kwargs)
        return self.with_labels(*(kwargs[name] for name in self.descriptor.label_names))

    def _unlabelled(self) -> Any:
        if self.descriptor.label_names:
            raise LabelCardinalityError(self.name, self.descriptor.label_names, ())
        return self._samples[()]

    def snapshot(self) -> FamilySnapshot:
        """Read every sample under the family lock."""
        with self._lock:
            samples = [(key, sample._read()) for key, sample in self._samples.items()]
        return FamilySnapshot(descriptor=self.descriptor, samples=samples)


class Gauge(MetricFamily):
    """A value that can go up or down."""

    sample_class = GaugeSample

    def set(self, value: float) -> None:
        self._unlabelled().set(value)

    def inc(self, amount: float = 1.0) -> None:
        self._unlabelled().inc(amount)

    def dec(self, amount: float = 1.0) -> None:
        self._unlabelled().dec(amount)

    @property
    def value(self) -> float:
        return self._unlabelled().value


class Counter(MetricFamily):
    """A monotonically increasing counter."""

    sample_class = CounterSample

    def add(self, delta: float) -> None:
        self._unlabelled().add(delta)

    def inc(self, amount: float = 1.0) -> None:
        self._unlabelled().inc(amount)

    @property
    def value(self) -> float:
        return self._unlabelled().value


class Histogram(MetricFamily):
    """A distribution of values."""

    sample_class = HistogramSample

    def observe(self, value: float) -> None:
        self._unlabelled().observe(value)

    def time(self) -> Timer:
        return self._unlabelled().time()

    def snapshot_values(self) -> HistogramSnapshot:
        return self._unlabelled().snapshot()


_FAMILY_CLASSES: dict[MetricKind, type[MetricFamily]] = {
    MetricKind.GAUGE: Gauge,
    MetricKind.COUNTER: Counter,
    MetricKind.HISTOGRAM: Histogram,
}


# =============================================================================
# Registry
# =============================================================================


class MetricsRegistry:
    """Registry of all metric families for collection and export."""

    def __init__(self) -> None:
        self._families: dict[str, MetricFamily] = {}
        self._lock = threading.Lock()

    def register(self, descriptor: MetricDescriptor) -> MetricFamily:
        """Create and register the family for ``descriptor``.

        Raises:
            DuplicateMetricNameError: if the name is already registered
        """
        family = _FAMILY_CLASSES[descriptor.kind](descriptor)
        with self._lock:
            if descriptor.name in self._families:
                raise DuplicateMetricNameError(descriptor.name)
            self._families[descriptor.name] = family
        return family

    def gauge(self, name: str, help: str, label_names: list[str] | tuple[str, ...] = ()) -> Gauge:
        """Register a gauge."""
        return self.register(  # type: ignore[return-value]
            MetricDescriptor(name=name, help=help, kind=MetricKind.GAUGE, label_names=tuple(label_names))
        )

    def counter(self, name: str, help: str, label_names: list[str] | tuple[str, ...] = ()) -> Counter:
        """Register a counter."""
        return self.register(  # type: ignore[return-value]
            MetricDescriptor(name=name, help=help, kind=MetricKind.COUNTER, label_names=tuple(label_names))
        )

    def histogram(
        self,
        name: str,
        help: str,
        label_names: list[str] | tuple[str, ...] = (),
        buckets: tuple[float, ...] | None = None,
    ) -> Histogram:
        """Register a histogram."""
        return self.register(  # type: ignore[return-value]
            MetricDescriptor(
                name=name,
                help=help,
                kind=MetricKind.HISTOGRAM,
                label_names=tuple(label_names),
                buckets=tuple(buckets or ()),
            )
        )

    def get(self, name: str) -> MetricFamily | None:
        with self._lock:
            return self._families.get(name)

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._families

    def __iter__(self) -> Iterator[MetricFamily]:
        with self._lock:
            return iter(list(self._families.values()))

    def collect(self) -> list[FamilySnapshot]:
        """Snapshot every family, in registration order."""
        return [family.snapshot() for family in self]

    def sample_value(self, name: str, labels: dict[str, str] | None = None) -> float | None:
        """Current value of a gauge or counter sample, None if it does not exist."""
        family = self.get(name)
        if family is None or family.descriptor.kind is MetricKind.HISTOGRAM:
            return None
        labels = labels or {}
        if set(labels) != set(family.descriptor.label_names):
            return None
        key = tuple(labels[label] for label in family.descriptor.label_names)
        with family._lock:
            sample = family._samples.get(key)
            return None if sample is None else sample._read()
