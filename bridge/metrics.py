"""Prometheus metrics helpers."""

from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

INVOCATIONS_TOTAL = Counter(
    "bridge_invocations_total",
    "Number of completed invocations grouped by status class",
    labelnames=("status_class",),
    registry=REGISTRY,
)

INVOCATION_LATENCY = Histogram(
    "bridge_invocation_latency_seconds",
    "Latency of adapter invocations, handler time included",
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
    registry=REGISTRY,
)

ADAPTER_ERRORS = Counter(
    "bridge_adapter_errors_total",
    "Number of invocations converted into error results",
    labelnames=("kind",),
    registry=REGISTRY,
)


def status_class(status_code: int) -> str:
    return f"{status_code // 100}xx"


def observe_invocation(*, latency_ms: float, status_code: int) -> None:
    INVOCATION_LATENCY.observe(latency_ms / 1000.0)
    INVOCATIONS_TOTAL.labels(status_class=status_class(status_code)).inc()


def observe_error(*, kind: str) -> None:
    ADAPTER_ERRORS.labels(kind=kind).inc()


def render_metrics() -> tuple[bytes, str]:
    payload = generate_latest(REGISTRY)
    return payload, CONTENT_TYPE_LATEST
