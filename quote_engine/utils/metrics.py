"""Prometheus metrics for quote calculations."""

from prometheus_client import Counter, Histogram

# Calculation metrics
calculation_latency_ms = Histogram(
    "quote_calculation_latency_ms",
    "Quote calculation latency in milliseconds",
    ["currency", "outcome"],
    buckets=[1, 5, 10, 25, 50, 100, 250, 500, 1000],
)

calculation_blocking_total = Counter(
    "quote_calculation_blocking_total",
    "Total blocking validation items raised",
    ["code"],
)

calculation_warnings_total = Counter(
    "quote_calculation_warnings_total",
    "Total non-blocking warnings raised",
    ["code"],
)


class PrometheusCalculationMetrics:
    """Prometheus-based calculation metrics implementation."""

    def record_latency(self, currency: str, outcome: str, latency_ms: float) -> None:
        """Record calculation latency."""
        calculation_latency_ms.labels(currency=currency, outcome=outcome).observe(latency_ms)

    def inc_blocking(self, code: str) -> None:
        """Increment blocking item counter."""
        calculation_blocking_total.labels(code=code).inc()

    def inc_warning(self, code: str) -> None:
        """Increment warning counter."""
        calculation_warnings_total.labels(code=code).inc()
