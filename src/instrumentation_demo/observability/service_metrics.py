"""Pre-defined metrics of the demo service."""

from __future__ import annotations

from instrumentation_demo.observability.metrics import MetricsRegistry

HTTP_DURATION_BUCKETS = (0.25, 0.5, 1.0, 2.5, 5.0, 10.0)
HTTP_SIZE_BUCKETS = (64.0, 256.0, 1024.0, 4096.0, 16384.0, 65536.0)


class ServiceMetrics:
    """Business and HTTP handler metrics, registered once per registry.

    Business signals:
        cpu_temperature_celsius, hd_errors_total{device}, sessions_active,
        orders_total, stage_errors_total{stage}
    HTTP handler metrics:
        http_requests_total{method,code},
        http_request_duration_seconds{handler,method},
        http_request_size_bytes{handler,method}
    """

    def __init__(
        self,
        registry: MetricsRegistry | None = None,
        *,
        devices: list[str] | tuple[str, ...] = ("sda", "sdb"),
        stages: list[str] | tuple[str, ...] = (),
        initial_cpu_temperature: float = 37.0,
        build_date: str = "",
        commit_id: str = "",
    ):
        reg = registry if registry is not None else MetricsRegistry()
        self.registry = reg
        self.devices = tuple(devices)
        self.stages = tuple(stages)

        self.cpu_temperature = reg.gauge(
            "cpu_temperature_celsius",
            "Current temperature of the CPU.",
        )
        self.hd_failures = reg.counter(
            "hd_errors_total",
            "Number of hard-disk errors.",
            ["device"],
        )

        self.sessions_active = reg.gauge(
            "sessions_active",
            "Number of active user sessions.",
        )
        self.orders = reg.counter(
            "orders_total",
            "Number of orders placed.",
        )
        self.stage_errors = reg.counter(
            "stage_errors_total",
            "Number of errors per processing stage.",
            ["stage"],
        )

        self.http_requests = reg.counter(
            "http_requests_total",
            "Number of HTTP requests.",
            ["method", "code"],
        )
        self.http_duration = reg.histogram(
            "http_request_duration_seconds",
            "Histogram of latencies for HTTP requests.",
            ["handler", "method"],
            buckets=HTTP_DURATION_BUCKETS,
        )
        self.http_request_size = reg.histogram(
            "http_request_size_bytes",
            "Histogram of approximate HTTP request sizes.",
            ["handler", "method"],
            buckets=HTTP_SIZE_BUCKETS,
        )

        if build_date and commit_id:
            version = reg.gauge(
                "version_info",
                "Information about the app version.",
                ["build_date", "commit_id"],
            )
            version.with_labels(build_date, commit_id).set(1)

        self.cpu_temperature.set(initial_cpu_temperature)
        # expose every known label value as 0 before the first event
        for device in self.devices:
            self.hd_failures.with_labels(device)
        for stage in self.stages:
            self.stage_errors.with_labels(stage)

    @property
    def cpu_temperature_value(self) -> float:
        return self.cpu_temperature.value

    def hd_failure_count(self, device: str) -> float:
        return self.hd_failures.with_labels(device).value

    def record_hd_failure(self, device: str) -> None:
        self.hd_failures.with_labels(device).inc()

    def record_request(
        self,
        method: str,
        code: int,
        *,
        handler: str | None = None,
        duration: float | None = None,
        size: float | None = None,
    ) -> None:
        """Record one served request; duration/size need a handler name."""
        method = method.lower()
        self.http_requests.with_labels(method, str(code)).inc()
        if handler is None:
            return
        if duration is not None:
            self.http_duration.with_labels(handler, method).observe(duration)
        if size is not None:
            self.http_request_size.with_labels(handler, method).observe(size)
