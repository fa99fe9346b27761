"""Tests for the pre-defined service metrics."""

import pytest

from instrumentation_demo.core.errors import DuplicateMetricNameError
from instrumentation_demo.observability.metrics import MetricsRegistry
from instrumentation_demo.observability.service_metrics import ServiceMetrics


class TestServiceMetrics:
    """ServiceMetrics registration and helpers."""

    def test_registers_business_and_http_metrics(self):
        metrics = ServiceMetrics()
        names = {family.name for family in metrics.registry}
        assert {
            "cpu_temperature_celsius",
            "hd_errors_total",
            "sessions_active",
            "orders_total",
            "stage_errors_total",
            "http_requests_total",
            "http_request_duration_seconds",
            "http_request_size_bytes",
        } <= names
        assert "version_info" not in names

    def test_initial_values(self):
        metrics = ServiceMetrics(devices=["sda", "sdb"], initial_cpu_temperature=40.5)
        assert metrics.cpu_temperature_value == 40.5
        assert metrics.hd_failure_count("sda") == 0
        assert metrics.registry.sample_value("hd_errors_total", {"device": "sdb"}) == 0

    def test_stage_counters_pre_created(self):
        metrics = ServiceMetrics(stages=["payment"])
        assert metrics.registry.sample_value("stage_errors_total", {"stage": "payment"}) == 0

    def test_version_info_needs_both_fields(self):
        only_date = ServiceMetrics(build_date="2024-01-01")
        assert "version_info" not in only_date.registry

        both = ServiceMetrics(build_date="2024-01-01", commit_id="abc123")
        value = both.registry.sample_value(
            "version_info", {"build_date": "2024-01-01", "commit_id": "abc123"}
        )
        assert value == 1

    def test_record_request_counts_by_method_and_code(self):
        metrics = ServiceMetrics()
        metrics.record_request("GET", 200)
        metrics.record_request("get", 200)
        metrics.record_request("POST", 400)

        assert metrics.http_requests.with_labels("get", "200").value == 2
        assert metrics.http_requests.with_labels("post", "400").value == 1
        assert metrics.http_duration.snapshot().samples == []

    def test_record_request_with_handler_observes_histograms(self):
        metrics = ServiceMetrics()
        metrics.record_request("POST", 200, handler="cpu", duration=0.3, size=120)

        duration = dict(metrics.http_duration.snapshot().samples)[("cpu", "post")]
        size = dict(metrics.http_request_size.snapshot().samples)[("cpu", "post")]
        assert duration.count == 1
        assert duration.sum == pytest.approx(0.3)
        assert size.sum == 120

    def test_two_instances_cannot_share_a_registry(self):
        registry = MetricsRegistry()
        ServiceMetrics(registry)
        with pytest.raises(DuplicateMetricNameError):
            ServiceMetrics(registry)
