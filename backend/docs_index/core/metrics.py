"""Prometheus metrics instrumentation."""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest

REGISTRY = CollectorRegistry()

DOCUMENT_COUNT = Gauge(
    "docs_index_documents",
    "Number of documents held in the cache",
    registry=REGISTRY,
)

FETCH_COUNT = Counter(
    "docs_index_fetch_total",
    "Online documentation fetches",
    labelnames=("outcome",),
    registry=REGISTRY,
)

INDEX_EVENTS = Counter(
    "docs_index_index_events_total",
    "Indexing jobs processed by the update loop",
    labelnames=("kind", "outcome"),
    registry=REGISTRY,
)


def render_metrics() -> str:
    """Return metrics in the Prometheus text exposition format."""
    return generate_latest(REGISTRY).decode("utf-8")


__all__ = [
    "REGISTRY",
    "DOCUMENT_COUNT",
    "FETCH_COUNT",
    "INDEX_EVENTS",
    "render_metrics",
]
