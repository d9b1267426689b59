"""
Prometheus metrics for analytics operations.
"""

import time
from contextlib import contextmanager
from typing import Iterator

from prometheus_client import Counter, Histogram


analytics_requests_total = Counter(
    "analytics_requests_total",
    "Total analytics operations by outcome",
    ["operation", "outcome"],
)

analytics_duration_seconds = Histogram(
    "analytics_duration_seconds",
    "Analytics operation latency in seconds",
    ["operation"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)


@contextmanager
def track_operation(operation: str) -> Iterator[None]:
    """Count one analytics operation and observe its latency."""
    start = time.perf_counter()
    outcome = "error"
    try:
        yield
        outcome = "success"
    finally:
        analytics_duration_seconds.labels(operation=operation).observe(time.perf_counter() - start)
        analytics_requests_total.labels(operation=operation, outcome=outcome).inc()
