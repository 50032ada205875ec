"""Tests for the metrics sink and its exposition."""

import threading

import pytest
from prometheus_client import REGISTRY

from pollgauge.sink import MetricsSink


def test_fresh_sink_has_no_value():
    sink = MetricsSink()
    assert sink.latest_value is None
    assert sink.error_count == 0
    assert sink.duration_count == 0


def test_record_success_sets_gauge_as_float():
    sink = MetricsSink()
    sink.record_success(17)
    assert sink.latest_value == 17.0
    assert isinstance(sink.latest_value, float)


def test_record_error_leaves_gauge_alone():
    sink = MetricsSink()
    sink.record_success(10)
    sink.record_error()
    sink.record_error()
    assert sink.latest_value == 10.0
    assert sink.error_count == 2


def test_observe_duration_counts_samples():
    sink = MetricsSink()
    sink.observe_duration(0.2)
    sink.observe_duration(1.4)
    assert sink.duration_count == 2
    assert sink.registry.get_sample_value("obloc_scrape_duration_seconds_sum") == pytest.approx(1.6)


def test_sinks_are_independent():
    # Each sink owns its registry, so two can coexist in one process
    a = MetricsSink()
    b = MetricsSink()
    a.record_success(1)
    b.record_error()
    assert b.latest_value is None
    assert a.error_count == 0


def test_default_registry_untouched():
    MetricsSink(namespace="isolated_check")
    assert REGISTRY.get_sample_value("isolated_check_scrape_errors_total") is None


def test_exposition_text():
    sink = MetricsSink()
    sink.record_success(42)
    sink.record_error()
    sink.observe_duration(0.05)

    body, content_type = sink.exposition()
    text = body.decode()

    assert content_type.startswith("text/plain")
    assert "# TYPE obloc_utilization_percent gauge" in text
    assert "obloc_utilization_percent 42.0" in text
    assert "obloc_scrape_errors_total 1.0" in text
    assert 'obloc_scrape_duration_seconds_bucket{le="0.05"} 1.0' in text
    assert "obloc_scrape_duration_seconds_count 1.0" in text


def test_custom_namespace():
    sink = MetricsSink(namespace="gym")
    sink.record_success(3)
    text = sink.exposition()[0].decode()
    assert "gym_utilization_percent 3.0" in text
    assert "obloc_" not in text


def test_concurrent_reads_never_see_partial_values():
    sink = MetricsSink()
    sink.record_success(1)
    seen = set()
    stop = threading.Event()

    def reader():
        while not stop.is_set():
            seen.add(sink.latest_value)

    threads = [threading.Thread(target=reader) for _ in range(4)]
    for t in threads:
        t.start()
    for _ in range(2000):
        sink.record_success(55)
        sink.record_success(1)
    stop.set()
    for t in threads:
        t.join()

    assert seen <= {1.0, 55.0}
