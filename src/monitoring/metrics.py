"""Prometheus metrics definitions."""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Histogram


class Metrics:
    """Expose order execution metrics for monitoring."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        # Own registry so several engines (and tests) can coexist in one process.
        self.registry = registry or CollectorRegistry()
        self.orders_submitted_total = Counter(
            "orders_submitted_total",
            "Orders submitted by exchange and normalized status",
            ["exchange", "status"],
            registry=self.registry,
        )
        self.order_errors_total = Counter(
            "order_errors_total",
            "Order submissions that raised, by exchange and error type",
            ["exchange", "error"],
            registry=self.registry,
        )
        self.order_request_latency_ms = Histogram(
            "order_request_latency_ms",
            "Exchange order request latency (ms)",
            ["exchange"],
            buckets=[25, 50, 100, 250, 500, 1000, 2500, 5000, 10000, 30000],
            registry=self.registry,
        )
        self.multientry_legs_total = Counter(
            "multientry_legs_total",
            "Multientry legs by level and resulting status",
            ["level", "status"],
            registry=self.registry,
        )
        self.cancels_total = Counter(
            "order_cancels_total",
            "Cancel requests by exchange and outcome",
            ["exchange", "outcome"],
            registry=self.registry,
        )

    def sample(self, name: str, labels: dict[str, str] | None = None) -> float:
        """Current value of one sample, 0.0 when it was never recorded."""
        value = self.registry.get_sample_value(name, labels or {})
        return value if value is not None else 0.0
