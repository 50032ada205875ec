"""
The three instruments the bridge publishes, kept in a registry owned by
this object instead of prometheus_client's global default one.

Instruments are lock-protected inside prometheus_client, so the poll
thread can write while scrape handlers read. Each read sees a whole
value; a scrape may still catch the gauge and the counter from
different cycles.
"""

from __future__ import annotations

import threading
from typing import Optional, Tuple

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from pollgauge.config import DEFAULT_NAMESPACE


class MetricsSink:

    def __init__(self, namespace: str = DEFAULT_NAMESPACE, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()
        self._gauge_name = f"{namespace}_utilization_percent"
        self._errors_name = f"{namespace}_scrape_errors_total"
        self._duration_name = f"{namespace}_scrape_duration_seconds"

        self._value = Gauge(
            self._gauge_name,
            "The current value reported by the upstream",
            registry=self.registry,
        )
        self._duration = Histogram(
            self._duration_name,
            "Time taken to fetch and parse the upstream value",
            registry=self.registry,
        )
        self._errors = Counter(
            self._errors_name,
            "Total number of failed poll cycles",
            registry=self.registry,
        )

        # Guards _has_value together with the gauge write so latest_value
        # never reports the initial 0 as an observed reading.
        self._lock = threading.Lock()
        self._has_value = False

    def record_success(self, value: int):
        with self._lock:
            self._value.set(float(value))
            self._has_value = True

    def record_error(self):
        self._errors.inc()

    def observe_duration(self, seconds: float):
        self._duration.observe(seconds)

    @property
    def latest_value(self) -> Optional[float]:
        """Last successfully parsed value, or None before the first success."""
        with self._lock:
            if not self._has_value:
                return None
            return self.registry.get_sample_value(self._gauge_name)

    @property
    def error_count(self) -> int:
        return int(self.registry.get_sample_value(self._errors_name) or 0)

    @property
    def duration_count(self) -> int:
        return int(self.registry.get_sample_value(f"{self._duration_name}_count") or 0)

    def exposition(self) -> Tuple[bytes, str]:
        """Render the registry in the Prometheus text format."""
        return generate_latest(self.registry), CONTENT_TYPE_LATEST
