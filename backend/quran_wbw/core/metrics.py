"""Prometheus metrics instrumentation."""

from __future__ import annotations

from fastapi import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

STORE_OPERATIONS = Counter(
    "qwbw_store_operations_total",
    "Local store operations",
    labelnames=("collection", "operation", "outcome"),
    registry=REGISTRY,
)

STORE_LATENCY = Histogram(
    "qwbw_store_operation_seconds",
    "Latency of local store operations",
    labelnames=("collection", "operation"),
    registry=REGISTRY,
)

REMOTE_FETCHES = Counter(
    "qwbw_remote_fetches_total",
    "Upstream API fetches",
    labelnames=("kind", "outcome"),
    registry=REGISTRY,
)

CACHED_DOCUMENTS = Gauge(
    "qwbw_cached_documents",
    "Number of documents stored for offline reading",
    registry=REGISTRY,
)


def metrics_response() -> Response:
    """Return Prometheus metrics as an HTTP response."""
    payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "REGISTRY",
    "STORE_OPERATIONS",
    "STORE_LATENCY",
    "REMOTE_FETCHES",
    "CACHED_DOCUMENTS",
    "metrics_response",
]
