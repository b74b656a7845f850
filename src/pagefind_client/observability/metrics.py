"""Prometheus metrics for chunk loading and search, mirrored to OpenTelemetry."""

from __future__ import annotations

from contextlib import contextmanager
import time
from typing import TYPE_CHECKING, Any

from opentelemetry import metrics as otel_metrics
from prometheus_client import Counter, Histogram


if TYPE_CHECKING:
    from collections.abc import Generator


_meter_holder: dict[str, Any] = {"meter": None}


def _get_meter():
    meter = _meter_holder.get("meter")
    if meter is None:
        meter = otel_metrics.get_meter(__name__)
        _meter_holder["meter"] = meter
    return meter


class _BoundMetric:
    def __init__(self, wrapper: MetricBridge, labels: dict[str, str]) -> None:
        self._wrapper = wrapper
        self._labels = labels

    def inc(self, amount: float = 1.0) -> None:
        self._wrapper.inc(self._labels, amount)

    def observe(self, value: float) -> None:
        self._wrapper.observe(self._labels, value)


class MetricBridge:
    """Bridge Prometheus metrics to OTel instruments from the global meter provider."""

    def __init__(
        self,
        prom_metric: Counter | Histogram,
        *,
        otel_name: str,
        otel_description: str,
        otel_kind: str,
    ) -> None:
        self._prom_metric = prom_metric
        self._otel_name = otel_name
        self._otel_description = otel_description
        self._otel_kind = otel_kind
        self._otel_instrument = None

    def labels(self, **labels: str) -> _BoundMetric:
        return _BoundMetric(self, labels)

    def _ensure_otel_instrument(self):
        if self._otel_instrument is not None:
            return self._otel_instrument
        meter = _get_meter()
        if self._otel_kind == "counter":
            self._otel_instrument = meter.create_counter(self._otel_name, description=self._otel_description)
        elif self._otel_kind == "histogram":
            self._otel_instrument = meter.create_histogram(self._otel_name, description=self._otel_description)
        else:
            raise ValueError(f"Unknown metric kind: {self._otel_kind}")
        return self._otel_instrument

    def inc(self, labels: dict[str, str], amount: float = 1.0) -> None:
        self._prom_metric.labels(**labels).inc(amount)
        self._ensure_otel_instrument().add(amount, labels)

    def observe(self, labels: dict[str, str], value: float) -> None:
        self._prom_metric.labels(**labels).observe(value)
        self._ensure_otel_instrument().record(value, labels)


_CHUNK_FETCHES_PROM = Counter(
    "pagefind_chunk_fetch_total",
    "Bundle file fetches by kind and outcome",
    ["kind", "outcome"],
)

_CHUNK_BYTES_PROM = Counter(
    "pagefind_chunk_bytes_total",
    "Decompressed bytes fetched by kind",
    ["kind"],
)

_SEARCH_LATENCY_PROM = Histogram(
    "pagefind_search_latency_seconds",
    "End-to-end search latency including chunk preload",
    ["exact"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

_SEARCH_RESULTS_PROM = Histogram(
    "pagefind_search_results",
    "Number of results per search",
    ["exact"],
    buckets=(0, 1, 5, 10, 25, 50, 100, 250, 1000),
)

CHUNK_FETCHES = MetricBridge(
    _CHUNK_FETCHES_PROM,
    otel_name="pagefind_chunk_fetch_total",
    otel_description="Bundle file fetches by kind and outcome",
    otel_kind="counter",
)

CHUNK_BYTES = MetricBridge(
    _CHUNK_BYTES_PROM,
    otel_name="pagefind_chunk_bytes_total",
    otel_description="Decompressed bytes fetched by kind",
    otel_kind="counter",
)

SEARCH_LATENCY = MetricBridge(
    _SEARCH_LATENCY_PROM,
    otel_name="pagefind_search_latency_seconds",
    otel_description="End-to-end search latency including chunk preload",
    otel_kind="histogram",
)

SEARCH_RESULTS = MetricBridge(
    _SEARCH_RESULTS_PROM,
    otel_name="pagefind_search_results",
    otel_description="Number of results per search",
    otel_kind="histogram",
)


@contextmanager
def track_latency(histogram: MetricBridge, **labels: str) -> Generator[None, None, None]:
    """Context manager to track operation latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        histogram.labels(**labels).observe(time.perf_counter() - start)
