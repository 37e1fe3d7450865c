from __future__ import annotations

from prometheus_client import Counter, Histogram

REPORT_REQUESTS = Counter(
    "transit_insights_report_requests_total",
    "Report documents generated by Transit Insights.",
    labelnames=("report", "result"),
)
REPORT_LATENCY = Histogram(
    "transit_insights_report_seconds",
    "Latency of in-memory report generation.",
    labelnames=("report",),
)
STORE_OPERATIONS = Counter(
    "transit_insights_store_operations_total",
    "Record store reads and writes.",
    labelnames=("operation", "result"),
)
STORE_LATENCY = Histogram(
    "transit_insights_store_seconds",
    "Latency of record store reads and writes.",
    labelnames=("operation",),
)


def observe_report(report: str, result: str, duration_seconds: float) -> None:
    """Record report generation result and latency."""
    REPORT_REQUESTS.labels(report=report, result=result).inc()
    REPORT_LATENCY.labels(report=report).observe(duration_seconds)


def observe_store_operation(
    operation: str, result: str, duration_seconds: float
) -> None:
    """Record a store operation result and latency."""
    STORE_OPERATIONS.labels(operation=operation, result=result).inc()
    STORE_LATENCY.labels(operation=operation).observe(duration_seconds)
