"""
Metric aggregation helpers.

All functions are pure and keep full precision. Percentages are rounded only
when a response model is built, via ``round_half_up``.
"""

from __future__ import annotations

import math
from collections import Counter
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Iterable, TypeVar

from transit_insights.models.records import Payment

R = TypeVar("R")

UNKNOWN = "unknown"


def rate(numerator: float, denominator: float) -> float:
    """Percentage of ``numerator`` over ``denominator``; 0 when the denominator is 0."""
    if denominator > 0:
        return numerator / denominator * 100
    return 0.0


def safe_ratio(numerator: float, denominator: float) -> float:
    """Plain ratio with the same zero guard as ``rate``."""
    if denominator > 0:
        return numerator / denominator
    return 0.0


def utilization(passengers: int, capacity: int, run_count: int) -> float:
    """Seat utilization of one vehicle over ``run_count`` runs."""
    return rate(passengers, capacity * run_count)


def round_half_up(value: float, places: int = 2) -> float:
    """Round for presentation; 2.345 -> 2.35 rather than banker's 2.34."""
    if not math.isfinite(value):
        return 0.0
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def count_where(records: Iterable[R], predicate: Callable[[R], bool]) -> int:
    return sum(1 for record in records if predicate(record))


def count_by(
    records: Iterable[R], key: Callable[[R], str | None]
) -> dict[str, int]:
    """Distribution of ``key`` values in first-seen order; missing keys count as 'unknown'."""
    counts: Counter[str] = Counter()
    for record in records:
        counts[key(record) or UNKNOWN] += 1
    return dict(counts)


def status_counts(
    records: Iterable[R], statuses: Iterable[str]
) -> dict[str, int]:
    """Zero-filled counts for each of ``statuses``."""
    counts = count_by(records, lambda record: getattr(record, "status", None))
    return {status: counts.get(status, 0) for status in statuses}


def sum_amounts(
    payments: Iterable[Payment],
    predicate: Callable[[Payment], bool] | None = None,
) -> float:
    return math.fsum(
        payment.amount
        for payment in payments
        if predicate is None or predicate(payment)
    )


def revenue_by_status(payments: Iterable[Payment], status: str) -> float:
    return sum_amounts(payments, lambda payment: payment.status == status)


def completed_revenue(payments: Iterable[Payment]) -> float:
    """Sum of completed payment amounts; the revenue figure used everywhere."""
    return revenue_by_status(payments, "completed")


__all__ = [
    "rate",
    "safe_ratio",
    "utilization",
    "round_half_up",
    "count_where",
    "count_by",
    "status_counts",
    "sum_amounts",
    "revenue_by_status",
    "completed_revenue",
]
