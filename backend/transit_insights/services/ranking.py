"""
Entity performance ranking.

One procedure serves the route, vehicle, driver and supervisor dimensions;
they differ only in the run attribute used as the join key, in the entity
collection that is enumerated and in the descriptive fields copied onto the
row. Reservations, payments and attendance are always reached through the
entity's own runs, never by filtering the global collections by entity id.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Callable, Iterable, Sequence

from transit_insights.models.records import Record, Rider, Route, Run, Vehicle
from transit_insights.models.reports import (
    Dimension,
    EntityPerformance,
    PerformanceTables,
)
from transit_insights.services.aggregation import (
    completed_revenue,
    count_where,
    rate,
    safe_ratio,
    utilization,
)
from transit_insights.services.filters import FilterCriteria, FilteredSnapshot

logger = logging.getLogger(__name__)


_CLOCK_DAY = date(2000, 1, 1)


def _parse_clock_time(value: str | None) -> datetime | None:
    """Place a run's clock time on a fixed day; times without an offset are UTC."""
    if not value:
        return None
    try:
        clock_time = time.fromisoformat(value)
    except ValueError:
        try:
            clock_time = datetime.fromisoformat(value).timetz()
        except ValueError:
            logger.debug("Ignoring unparseable run time %r", value)
            return None
    instant = datetime.combine(_CLOCK_DAY, clock_time)
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant


def is_on_time(run: Run, grace_minutes: int) -> bool:
    """True when the actual start is within ``grace_minutes`` of the schedule."""
    scheduled = _parse_clock_time(run.scheduled_time)
    actual = _parse_clock_time(run.actual_start_time)
    if scheduled is None or actual is None:
        return False
    return abs((actual - scheduled).total_seconds()) <= grace_minutes * 60


@dataclass(frozen=True, slots=True)
class DimensionSpec:
    """How one dimension joins runs to its entities."""

    name: Dimension
    run_key: Callable[[Run], str | None]
    entities: Callable[[FilteredSnapshot], Sequence[Record]]
    criteria_key: Callable[[FilterCriteria], str | None]
    describe: Callable[[Any], dict[str, Any]]
    has_capacity: bool = False


def _describe_route(route: Route) -> dict[str, Any]:
    return {
        "name": route.name,
        "start_point": route.start_point,
        "end_point": route.end_point,
        "status": route.status,
    }


def _describe_vehicle(vehicle: Vehicle) -> dict[str, Any]:
    return {
        "name": vehicle.number,
        "model": vehicle.model,
        "capacity": vehicle.capacity,
        "status": vehicle.status,
    }


def _describe_person(rider: Rider) -> dict[str, Any]:
    return {
        "name": rider.name,
        "status": rider.status,
        "license_number": rider.license_number,
        "phone": rider.phone,
    }


DIMENSIONS: dict[Dimension, DimensionSpec] = {
    "route": DimensionSpec(
        name="route",
        run_key=lambda run: run.route_id,
        entities=lambda filtered: filtered.routes,
        criteria_key=lambda criteria: criteria.route_id,
        describe=_describe_route,
        has_capacity=True,
    ),
    "vehicle": DimensionSpec(
        name="vehicle",
        run_key=lambda run: run.vehicle_id,
        entities=lambda filtered: filtered.vehicles,
        criteria_key=lambda criteria: criteria.vehicle_id,
        describe=_describe_vehicle,
        has_capacity=True,
    ),
    "driver": DimensionSpec(
        name="driver",
        run_key=lambda run: run.driver_id,
        entities=lambda filtered: filtered.source.riders_with_role("driver"),
        criteria_key=lambda criteria: criteria.driver_id,
        describe=_describe_person,
    ),
    "supervisor": DimensionSpec(
        name="supervisor",
        run_key=lambda run: run.supervisor_id,
        entities=lambda filtered: filtered.source.riders_with_role("supervisor"),
        criteria_key=lambda criteria: criteria.supervisor_id,
        describe=_describe_person,
    ),
}


class RunIndex:
    """Dependent records of a filtered snapshot grouped by run id."""

    def __init__(self, filtered: FilteredSnapshot) -> None:
        self.reservations = _group(filtered.reservations, lambda item: item.run_id)
        self.payments = _group(filtered.payments, lambda item: item.run_id)
        self.attendance = _group(filtered.attendance, lambda item: item.run_id)


def _group(records: Iterable[Any], key: Callable[[Any], str | None]) -> dict[str, list[Any]]:
    grouped: dict[str, list[Any]] = defaultdict(list)
    for record in records:
        value = key(record)
        if value is not None:
            grouped[value].append(record)
    return grouped


def _collect(runs: Sequence[Run], index: dict[str, list[Any]]) -> list[Any]:
    collected: list[Any] = []
    for run in runs:
        collected.extend(index.get(run.id, ()))
    return collected


def _latest_run(runs: Sequence[Run]) -> Run | None:
    dated = [run for run in runs if run.date]
    if not dated:
        return None
    return max(dated, key=lambda run: run.date or "")


def entity_performance(
    spec: DimensionSpec,
    entity: Record,
    runs: Sequence[Run],
    filtered: FilteredSnapshot,
    index: RunIndex,
    *,
    on_time_grace_minutes: int,
) -> EntityPerformance:
    """Compute the metrics row of one entity from its own runs."""
    reservations = _collect(runs, index.reservations)
    payments = _collect(runs, index.payments)
    attendance = _collect(runs, index.attendance)

    total = len(runs)
    completed = count_where(runs, lambda run: run.status == "completed")
    on_time = count_where(runs, lambda run: is_on_time(run, on_time_grace_minutes))
    passengers = sum(run.passengers for run in runs)
    revenue = completed_revenue(payments)
    present = count_where(attendance, lambda record: record.status == "present")

    total_capacity: int | None = None
    seat_utilization: float | None = None
    if spec.has_capacity:
        if isinstance(entity, Vehicle):
            total_capacity = entity.capacity * total
            seat_utilization = utilization(passengers, entity.capacity, total)
        else:
            total_capacity = sum(
                vehicle.capacity
                for vehicle in (filtered.source.vehicle(run.vehicle_id) for run in runs)
                if vehicle is not None
            )
            seat_utilization = rate(passengers, total_capacity)

    latest = _latest_run(runs)
    return EntityPerformance(
        dimension=spec.name,
        entity_id=entity.id,
        **spec.describe(entity),
        total_trips=total,
        completed_trips=completed,
        active_trips=count_where(runs, lambda run: run.status == "active"),
        cancelled_trips=count_where(runs, lambda run: run.status == "cancelled"),
        on_time_trips=on_time,
        completion_rate=rate(completed, total),
        on_time_rate=rate(on_time, total),
        total_reservations=len(reservations),
        confirmed_reservations=count_where(
            reservations, lambda item: item.status == "confirmed"
        ),
        total_passengers=passengers,
        total_revenue=revenue,
        average_revenue=safe_ratio(revenue, total),
        total_capacity=total_capacity,
        utilization=seat_utilization,
        attendance=len(attendance),
        present_attendance=present,
        attendance_rate=rate(present, len(attendance)),
        last_trip_id=latest.id if latest else None,
        last_trip_date=latest.date if latest else None,
    )


def rank_by_revenue(rows: Iterable[EntityPerformance]) -> list[EntityPerformance]:
    """Order rows by revenue, highest first; ties keep their input order."""
    return sorted(rows, key=lambda row: row.total_revenue, reverse=True)


def top_n(rows: Sequence[EntityPerformance], size: int) -> list[EntityPerformance]:
    return list(rank_by_revenue(rows)[:size])


def performance_table(
    filtered: FilteredSnapshot,
    dimension: Dimension,
    *,
    on_time_grace_minutes: int,
    index: RunIndex | None = None,
) -> list[EntityPerformance]:
    """Full per-entity table for ``dimension`` in leaderboard order.

    When the request filters on this dimension's own id, only that entity
    is listed.
    """
    spec = DIMENSIONS[dimension]
    index = index or RunIndex(filtered)
    runs_by_entity = _group(filtered.runs, spec.run_key)
    wanted = spec.criteria_key(filtered.criteria)

    rows = [
        entity_performance(
            spec,
            entity,
            runs_by_entity.get(entity.id, ()),
            filtered,
            index,
            on_time_grace_minutes=on_time_grace_minutes,
        )
        for entity in spec.entities(filtered)
        if wanted is None or entity.id == wanted
    ]
    return rank_by_revenue(rows)


def performance_tables(
    filtered: FilteredSnapshot,
    *,
    on_time_grace_minutes: int,
    dimensions: Iterable[Dimension] = ("route", "vehicle", "driver", "supervisor"),
) -> PerformanceTables:
    index = RunIndex(filtered)
    tables = {
        dimension: performance_table(
            filtered,
            dimension,
            on_time_grace_minutes=on_time_grace_minutes,
            index=index,
        )
        for dimension in dimensions
    }
    return PerformanceTables(
        routes=tables.get("route", []),
        vehicles=tables.get("vehicle", []),
        drivers=tables.get("driver", []),
        supervisors=tables.get("supervisor", []),
    )


def leaderboards(tables: PerformanceTables, size: int) -> PerformanceTables:
    """Truncate every table of ``tables`` to its top ``size`` earners."""
    return PerformanceTables(
        routes=top_n(tables.routes, size),
        vehicles=top_n(tables.vehicles, size),
        drivers=top_n(tables.drivers, size),
        supervisors=top_n(tables.supervisors, size),
    )


__all__ = [
    "DIMENSIONS",
    "DimensionSpec",
    "RunIndex",
    "is_on_time",
    "entity_performance",
    "performance_table",
    "performance_tables",
    "leaderboards",
    "rank_by_revenue",
    "top_n",
]
