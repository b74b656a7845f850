"""Observability module for OpenTelemetry-aligned tracing, metrics, and logging."""

from pagefind_client.observability.context import LogContext, bind_bundle, bind_span, current_context
from pagefind_client.observability.logging import JsonFormatter, configure_logging
from pagefind_client.observability.metrics import (
    CHUNK_BYTES,
    CHUNK_FETCHES,
    SEARCH_LATENCY,
    SEARCH_RESULTS,
    track_latency,
)
from pagefind_client.observability.tracing import create_span, get_tracer, init_tracing


__all__ = [
    "CHUNK_BYTES",
    "CHUNK_FETCHES",
    "SEARCH_LATENCY",
    "SEARCH_RESULTS",
    "JsonFormatter",
    "LogContext",
    "bind_bundle",
    "bind_span",
    "configure_logging",
    "create_span",
    "current_context",
    "get_tracer",
    "init_tracing",
    "track_latency",
]
