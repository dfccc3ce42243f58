"""Prometheus metrics for the sighost runtime.

All metric objects are module-level singletons registered on the default
``prometheus_client`` registry.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, generate_latest

CALLS_TOTAL = Counter(
    "sighost_calls_total",
    "Total boundary calls by outcome",
    ["call", "errno"],
)
LIVE_HANDLES = Gauge(
    "sighost_live_handles",
    "Currently allocated handles",
    ["kind"],
)
ZEROIZATIONS_TOTAL = Counter(
    "sighost_zeroizations_total",
    "Secret buffers wiped on retirement",
)
metrics_generate_latest = generate_latest


def record_call(call: str, outcome: str) -> None:
    CALLS_TOTAL.labels(call=call, errno=outcome).inc()


__all__ = [
    "CALLS_TOTAL",
    "LIVE_HANDLES",
    "ZEROIZATIONS_TOTAL",
    "metrics_generate_latest",
    "record_call",
]
