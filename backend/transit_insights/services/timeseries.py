"""
Calendar-month bucketing of run, payment and reservation activity.

A record belongs to a bucket when its date string starts with the bucket's
``YYYY-MM`` key. Two window modes are supported: a trailing window of N
months ending at the clock's current month (zero-filled), and the set of
months that actually carry data.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime

from transit_insights.core.clock import Clock
from transit_insights.models.reports import MonthlyBucket
from transit_insights.services.filters import (
    FilteredSnapshot,
    effective_date,
    run_dates,
)

_MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


def month_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def month_label(key: str) -> str:
    """Turn ``2024-02`` into ``Feb 2024``."""
    year, month = key.split("-")
    return f"{_MONTH_ABBREVIATIONS[int(month) - 1]} {year}"


def trailing_months(now: datetime, months: int) -> list[str]:
    """Chronological month keys for the ``months`` months ending at ``now``."""
    keys: list[str] = []
    year, month = now.year, now.month
    for _ in range(months):
        keys.append(month_key(year, month))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    keys.reverse()
    return keys


def _month_of(value: str | None) -> str | None:
    if not value or len(value) < 7:
        return None
    return value[:7]


@dataclass(slots=True)
class _Accumulator:
    trips: int = 0
    revenue: list[float] = field(default_factory=list)
    reservations: int = 0
    passengers: int = 0

    def to_bucket(self, key: str) -> MonthlyBucket:
        return MonthlyBucket(
            month=key,
            label=month_label(key),
            trips=self.trips,
            revenue=math.fsum(self.revenue),
            reservations=self.reservations,
            passengers=self.passengers,
        )


def _accumulate(
    filtered: FilteredSnapshot, keys: list[str] | None
) -> dict[str, _Accumulator]:
    """Accumulate per-month metrics; ``keys=None`` admits every observed month."""
    buckets: dict[str, _Accumulator] = (
        {key: _Accumulator() for key in keys} if keys is not None else {}
    )

    def slot(value: str | None) -> _Accumulator | None:
        key = _month_of(value)
        if key is None:
            return None
        if keys is None:
            return buckets.setdefault(key, _Accumulator())
        return buckets.get(key)

    dates = run_dates(filtered.runs)
    for run in filtered.runs:
        bucket = slot(run.date)
        if bucket is not None:
            bucket.trips += 1
            bucket.passengers += run.passengers
    for payment in filtered.payments:
        if payment.status != "completed":
            continue
        bucket = slot(effective_date(payment.date, payment.run_id, dates))
        if bucket is not None:
            bucket.revenue.append(payment.amount)
    for reservation in filtered.reservations:
        bucket = slot(effective_date(reservation.date, reservation.run_id, dates))
        if bucket is not None:
            bucket.reservations += 1
    return buckets


def bucket_trailing(
    filtered: FilteredSnapshot, clock: Clock, months: int
) -> list[MonthlyBucket]:
    """Zero-filled buckets for the trailing window ending at the current month."""
    keys = trailing_months(clock.now(), months)
    buckets = _accumulate(filtered, keys)
    return [buckets[key].to_bucket(key) for key in keys]


def bucket_observed(filtered: FilteredSnapshot) -> list[MonthlyBucket]:
    """Buckets for months that contain at least one record, oldest first."""
    buckets = _accumulate(filtered, None)
    return [buckets[key].to_bucket(key) for key in sorted(buckets)]


__all__ = [
    "month_key",
    "month_label",
    "trailing_months",
    "bucket_trailing",
    "bucket_observed",
]
