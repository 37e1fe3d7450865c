"""
Filter engine for report requests.

Date predicates compare ISO date strings lexicographically after truncating
the record's value to the bound's length, so a timestamp such as
``2024-02-20T10:00:00Z`` falls within a range ending ``2024-02-20``.
Payments, reservations and attendance without a date of their own are dated
by the run they belong to.

Filtering a primary collection never cascades on its own. Dependent records
(payments, reservations, attendance) are narrowed in a second, explicit step
against the id set of the filtered runs; every report variant goes through
``scope_snapshot`` so all of them see the same narrowed data.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Iterable, TypeVar

from transit_insights.errors import InputValidationError
from transit_insights.models.records import (
    AttendanceRecord,
    MaintenanceTicket,
    Payment,
    Reservation,
    Rider,
    Route,
    Run,
    Vehicle,
)
from transit_insights.persistence.snapshot import Snapshot

R = TypeVar("R")

_DATE_BOUND_LENGTHS = (4, 7, 10)


@dataclass(frozen=True, slots=True, kw_only=True)
class FilterCriteria:
    """Optional date range plus equality filters on foreign keys."""

    date_from: str | None = None
    date_to: str | None = None
    route_id: str | None = None
    vehicle_id: str | None = None
    driver_id: str | None = None
    supervisor_id: str | None = None
    rider_id: str | None = None

    @property
    def has_run_scope(self) -> bool:
        """True when runs are restricted by one of their own foreign keys."""
        return any(
            value is not None
            for value in (
                self.route_id,
                self.vehicle_id,
                self.driver_id,
                self.supervisor_id,
            )
        )


@dataclass(frozen=True, slots=True, kw_only=True)
class FilteredSnapshot:
    """Filtered sub-collections plus the unfiltered reference collections."""

    source: Snapshot
    criteria: FilterCriteria
    runs: tuple[Run, ...]
    payments: tuple[Payment, ...]
    reservations: tuple[Reservation, ...]
    attendance: tuple[AttendanceRecord, ...]
    maintenance_tickets: tuple[MaintenanceTicket, ...]

    @property
    def riders(self) -> tuple[Rider, ...]:
        return self.source.riders

    @property
    def vehicles(self) -> tuple[Vehicle, ...]:
        return self.source.vehicles

    @property
    def routes(self) -> tuple[Route, ...]:
        return self.source.routes

    def run_ids(self) -> frozenset[str]:
        return frozenset(run.id for run in self.runs)


def parse_date_bound(value: str | None, *, name: str) -> str | None:
    """Validate a ``YYYY``, ``YYYY-MM`` or ``YYYY-MM-DD`` filter bound."""
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None
    if len(text) not in _DATE_BOUND_LENGTHS or not _looks_like_iso_date(text):
        raise InputValidationError(
            f"Invalid {name}: '{value}'. Expected an ISO date such as 2024-01-31."
        )
    return text


def _looks_like_iso_date(text: str) -> bool:
    parts = text.split("-")
    expected = (4, 2, 2)[: len(parts)]
    return len(parts) <= 3 and all(
        part.isdigit() and len(part) == size for part, size in zip(parts, expected)
    )


def in_date_range(value: str | None, start: str | None, end: str | None) -> bool:
    """Return True when ``value`` lies within the inclusive ``[start, end]`` range."""
    if start is None and end is None:
        return True
    if not value:
        return False
    if start is not None and end is not None and start > end:
        return False
    if start is not None and value[: len(start)] < start:
        return False
    if end is not None and value[: len(end)] > end:
        return False
    return True


def _select(
    records: Iterable[R],
    *predicates: Callable[[R], bool],
) -> tuple[R, ...]:
    return tuple(
        record for record in records if all(check(record) for check in predicates)
    )


def _matches(expected: str | None, actual: str | None) -> bool:
    return expected is None or actual == expected


def run_dates(runs: Iterable[Run]) -> dict[str, str | None]:
    return {run.id: run.date for run in runs}


def effective_date(
    own_date: str | None, run_id: str | None, dates: dict[str, str | None]
) -> str | None:
    """A record's own date, falling back to the date of the run it belongs to."""
    if own_date:
        return own_date
    return dates.get(run_id) if run_id else None


def filter_snapshot(snapshot: Snapshot, criteria: FilterCriteria) -> FilteredSnapshot:
    """Apply date and entity predicates to each collection independently."""
    start, end = criteria.date_from, criteria.date_to
    dates = run_dates(snapshot.runs)

    runs = _select(
        snapshot.runs,
        lambda run: in_date_range(run.date, start, end),
        lambda run: _matches(criteria.route_id, run.route_id),
        lambda run: _matches(criteria.vehicle_id, run.vehicle_id),
        lambda run: _matches(criteria.driver_id, run.driver_id),
        lambda run: _matches(criteria.supervisor_id, run.supervisor_id),
    )
    payments = _select(
        snapshot.payments,
        lambda payment: in_date_range(
            effective_date(payment.date, payment.run_id, dates), start, end
        ),
        lambda payment: _matches(criteria.rider_id, payment.rider_id),
    )
    reservations = _select(
        snapshot.reservations,
        lambda reservation: in_date_range(
            effective_date(reservation.date, reservation.run_id, dates), start, end
        ),
        lambda reservation: _matches(criteria.rider_id, reservation.rider_id),
    )
    attendance = _select(
        snapshot.attendance,
        lambda record: in_date_range(
            effective_date(record.timestamp, record.run_id, dates), start, end
        ),
        lambda record: _matches(criteria.rider_id, record.rider_id),
    )
    tickets = _select(
        snapshot.maintenance_tickets,
        lambda ticket: in_date_range(ticket.reference_date, start, end),
        lambda ticket: _matches(criteria.vehicle_id, ticket.vehicle_id),
    )

    return FilteredSnapshot(
        source=snapshot,
        criteria=criteria,
        runs=runs,
        payments=payments,
        reservations=reservations,
        attendance=attendance,
        maintenance_tickets=tickets,
    )


def narrow_to_runs(filtered: FilteredSnapshot) -> FilteredSnapshot:
    """Restrict run-bound records to the id set of the filtered runs.

    Subscription payments carry no run id; they survive unless the runs were
    narrowed by route, vehicle, driver or supervisor.
    """
    run_ids = filtered.run_ids()
    keep_subscriptions = not filtered.criteria.has_run_scope

    def payment_in_scope(payment: Payment) -> bool:
        if payment.run_id is None:
            return keep_subscriptions
        return payment.run_id in run_ids

    return replace(
        filtered,
        payments=_select(filtered.payments, payment_in_scope),
        reservations=_select(
            filtered.reservations, lambda item: item.run_id in run_ids
        ),
        attendance=_select(filtered.attendance, lambda item: item.run_id in run_ids),
    )


def scope_snapshot(snapshot: Snapshot, criteria: FilterCriteria) -> FilteredSnapshot:
    """Filter then narrow; the single entry point used by every report."""
    return narrow_to_runs(filter_snapshot(snapshot, criteria))


__all__ = [
    "FilterCriteria",
    "FilteredSnapshot",
    "filter_snapshot",
    "narrow_to_runs",
    "scope_snapshot",
    "in_date_range",
    "effective_date",
    "run_dates",
    "parse_date_bound",
]
