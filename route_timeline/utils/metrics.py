"""Prometheus metrics for timeline saves and conflicts."""

from prometheus_client import Counter, Histogram

save_latency_ms = Histogram(
    "timeline_save_latency_ms",
    "Schedule save latency in milliseconds",
    ["kind", "outcome"],
    buckets=[10, 50, 100, 200, 500, 1000, 2000, 4000, 8000],
)

save_errors_total = Counter(
    "timeline_save_errors_total",
    "Total failed schedule saves",
    ["kind"],
)

conflicts_flagged_total = Counter(
    "timeline_conflicts_flagged_total",
    "Total times a route-order conflict was flagged",
    ["source"],
)


class PrometheusTimelineMetrics:
    """Prometheus-based timeline metrics implementation."""

    def record_save(self, kind: str, outcome: str, latency_ms: float) -> None:
        """Record schedule save latency."""
        save_latency_ms.labels(kind=kind, outcome=outcome).observe(latency_ms)
        if outcome == "error":
            save_errors_total.labels(kind=kind).inc()

    def inc_conflict(self, source: str) -> None:
        """Increment flagged conflict counter."""
        conflicts_flagged_total.labels(source=source).inc()
