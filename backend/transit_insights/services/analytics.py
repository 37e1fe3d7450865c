"""
Role-specific analytics views built from the same components as the reports.

The fleet-manager and supervisor views bucket only months that carry data;
the revenue dashboard uses its own shorter trailing window.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from typing import Sequence

from transit_insights.core.clock import Clock
from transit_insights.core.config import Settings
from transit_insights.errors import InputValidationError
from transit_insights.models.fleet import (
    FleetOverview,
    FleetVehicle,
    FleetView,
    RecentRun,
    RouteRef,
    ServiceInterval,
)
from transit_insights.models.records import Rider, Run, Vehicle
from transit_insights.models.reports import (
    FleetManagerAnalytics,
    FleetManagerSummary,
    MonthlyRevenue,
    RevenueDashboard,
    RouteUtilization,
    SupervisorReport,
)
from transit_insights.persistence.snapshot import Snapshot
from transit_insights.services.aggregation import count_where, rate, safe_ratio, status_counts
from transit_insights.services.filters import FilterCriteria, scope_snapshot
from transit_insights.services.maintenance import format_timestamp, parse_instant
from transit_insights.services.ranking import (
    DIMENSIONS,
    RunIndex,
    entity_performance,
    leaderboards,
    performance_table,
    performance_tables,
)
from transit_insights.services.reports import (
    PAYMENT_STATUSES,
    ReportService,
    attendance_summary,
    financial_summary,
    period_of,
    reservation_summary,
    trip_summary,
)
from transit_insights.services.timeseries import bucket_observed, bucket_trailing

logger = logging.getLogger(__name__)

DUE_SOON_DAYS = 7
RECENT_RUN_LIMIT = 5


def fleet_manager_analytics(
    snapshot: Snapshot, criteria: FilterCriteria, *, leaderboard_size: int, grace: int
) -> FleetManagerAnalytics:
    filtered = scope_snapshot(snapshot, criteria)
    tables = performance_tables(
        filtered,
        on_time_grace_minutes=grace,
        dimensions=("vehicle", "driver", "route"),
    )
    return FleetManagerAnalytics(
        period=period_of(criteria),
        summary=FleetManagerSummary(
            trips=trip_summary(filtered.runs, grace),
            reservations=reservation_summary(filtered.reservations),
            attendance=attendance_summary(filtered.attendance),
            financial=financial_summary(filtered),
        ),
        monthly_trends=bucket_observed(filtered),
        performance=tables,
        top_performers=leaderboards(tables, leaderboard_size),
    )


def supervisor_report(
    snapshot: Snapshot, criteria: FilterCriteria, *, grace: int
) -> SupervisorReport:
    """Totals and monthly statistics for the supervisor named in ``criteria``.

    Raises:
        InputValidationError: If no supervisor id was supplied.
    """
    supervisor_id = criteria.supervisor_id
    if not supervisor_id:
        raise InputValidationError("Supervisor ID is required")

    filtered = scope_snapshot(snapshot, criteria)
    supervisor = snapshot.rider(supervisor_id)
    if supervisor is None:
        logger.debug("Supervisor %s not found; reporting without enrichment", supervisor_id)
        supervisor = Rider(id=supervisor_id, role="supervisor")

    summary = entity_performance(
        DIMENSIONS["supervisor"],
        supervisor,
        filtered.runs,
        filtered,
        RunIndex(filtered),
        on_time_grace_minutes=grace,
    )
    return SupervisorReport(
        supervisor_id=supervisor_id,
        supervisor_name=supervisor.name,
        period=period_of(criteria),
        summary=summary,
        monthly_stats=bucket_observed(filtered),
    )


def revenue_dashboard(
    snapshot: Snapshot, clock: Clock, *, months: int, grace: int
) -> RevenueDashboard:
    filtered = scope_snapshot(snapshot, FilterCriteria())
    monthly = [
        MonthlyRevenue(month=bucket.month, label=bucket.label, revenue=bucket.revenue)
        for bucket in bucket_trailing(filtered, clock, months)
    ]

    reservations_by_run: dict[str, int] = {}
    for reservation in filtered.reservations:
        if reservation.run_id is not None:
            reservations_by_run[reservation.run_id] = (
                reservations_by_run.get(reservation.run_id, 0) + 1
            )

    utilization_rows = []
    for route in snapshot.routes:
        runs = [run for run in filtered.runs if run.route_id == route.id]
        reservations = sum(reservations_by_run.get(run.id, 0) for run in runs)
        capacity = sum(
            vehicle.capacity
            for vehicle in (snapshot.vehicle(run.vehicle_id) for run in runs)
            if vehicle is not None
        )
        utilization_rows.append(
            RouteUtilization(
                route_id=route.id,
                route_name=route.name,
                total_trips=len(runs),
                total_reservations=reservations,
                total_capacity=capacity,
                utilization=rate(reservations, capacity),
            )
        )

    return RevenueDashboard(
        monthly_revenue=monthly,
        payment_status=status_counts(filtered.payments, PAYMENT_STATUSES),
        route_utilization=utilization_rows,
        vehicle_performance=performance_table(
            filtered, "vehicle", on_time_grace_minutes=grace
        ),
        totals={
            "riders": len(snapshot.riders),
            "vehicles": len(snapshot.vehicles),
            "routes": len(snapshot.routes),
            "runs": len(snapshot.runs),
            "payments": len(snapshot.payments),
            "reservations": len(snapshot.reservations),
        },
    )


def service_interval(vehicle: Vehicle, now: datetime) -> ServiceInterval:
    """Due state from the vehicle's service interval.

    A vehicle with an interval but no recorded service is due immediately.
    """
    if vehicle.maintenance_interval is None:
        return ServiceInterval(last_maintenance=vehicle.last_maintenance)

    last = parse_instant(vehicle.last_maintenance)
    due = last + timedelta(days=vehicle.maintenance_interval) if last else now
    is_due = now >= due
    days_until = math.ceil((due - now).total_seconds() / 86400)
    if is_due:
        status = "overdue"
    elif days_until <= DUE_SOON_DAYS:
        status = "due_soon"
    else:
        status = "ok"
    return ServiceInterval(
        last_maintenance=vehicle.last_maintenance,
        maintenance_interval=vehicle.maintenance_interval,
        maintenance_due=format_timestamp(due),
        is_maintenance_due=is_due,
        days_until_maintenance=days_until,
        status=status,
    )


def _run_minutes(run: Run) -> float | None:
    start = parse_instant(f"2000-01-01T{run.start_time}") if run.start_time else None
    end = parse_instant(f"2000-01-01T{run.end_time}") if run.end_time else None
    if start is None or end is None:
        return None
    minutes = (end - start).total_seconds() / 60
    return minutes if minutes > 0 else None


def _recent_runs(runs: Sequence[Run], snapshot: Snapshot) -> list[RecentRun]:
    newest_first = sorted(runs, key=lambda run: run.date or "", reverse=True)
    recent = []
    for run in newest_first[:RECENT_RUN_LIMIT]:
        route = snapshot.route(run.route_id)
        recent.append(
            RecentRun(
                id=run.id,
                date=run.date,
                start_time=run.start_time,
                end_time=run.end_time,
                status=run.status,
                passengers=run.passengers,
                route=(
                    RouteRef(
                        id=route.id,
                        name=route.name,
                        start_point=route.start_point,
                        end_point=route.end_point,
                    )
                    if route
                    else None
                ),
            )
        )
    return recent


def fleet_view(
    snapshot: Snapshot,
    clock: Clock,
    *,
    status: str | None,
    vehicle_type: str | None,
    grace: int,
) -> FleetView:
    now = clock.now()
    filtered = scope_snapshot(snapshot, FilterCriteria())
    index = RunIndex(filtered)
    spec = DIMENSIONS["vehicle"]

    fleet: list[FleetVehicle] = []
    for vehicle in snapshot.vehicles:
        if status is not None and vehicle.status != status:
            continue
        if vehicle_type is not None and vehicle.vehicle_type != vehicle_type:
            continue
        runs = [run for run in snapshot.runs if run.vehicle_id == vehicle.id]
        durations = [
            minutes
            for minutes in (_run_minutes(run) for run in runs if run.status == "completed")
            if minutes is not None
        ]
        fleet.append(
            FleetVehicle(
                vehicle=vehicle,
                performance=entity_performance(
                    spec, vehicle, runs, filtered, index, on_time_grace_minutes=grace
                ),
                average_trip_duration_minutes=safe_ratio(math.fsum(durations), len(durations)),
                maintenance=service_interval(vehicle, now),
                recent_trips=_recent_runs(runs, snapshot),
            )
        )

    fleet.sort(key=lambda item: item.performance.total_revenue, reverse=True)
    utilizations = [item.performance.utilization or 0.0 for item in fleet]
    return FleetView(
        fleet=fleet,
        summary=FleetOverview(
            total_vehicles=len(fleet),
            active_vehicles=count_where(fleet, lambda item: item.vehicle.status == "active"),
            maintenance_vehicles=count_where(
                fleet, lambda item: item.vehicle.status == "maintenance"
            ),
            retired_vehicles=count_where(
                fleet, lambda item: item.vehicle.status == "retired"
            ),
            total_capacity=sum(item.vehicle.capacity for item in fleet),
            total_revenue=math.fsum(item.performance.total_revenue for item in fleet),
            average_utilization=safe_ratio(math.fsum(utilizations), len(utilizations)),
            maintenance_due=count_where(
                fleet, lambda item: item.maintenance.is_maintenance_due
            ),
            maintenance_due_soon=count_where(
                fleet, lambda item: item.maintenance.status == "due_soon"
            ),
        ),
    )


class AnalyticsService:
    """Async facade over the analytics views; one snapshot fetch per call."""

    def __init__(self, reports: ReportService, clock: Clock, settings: Settings) -> None:
        self._reports = reports
        self._clock = clock
        self._settings = settings

    async def fleet_manager(self, criteria: FilterCriteria) -> FleetManagerAnalytics:
        snapshot = await self._reports.load()
        return self._reports.timed(
            "fleet-manager",
            lambda: fleet_manager_analytics(
                snapshot,
                criteria,
                leaderboard_size=self._settings.leaderboard_size,
                grace=self._settings.on_time_grace_minutes,
            ),
            criteria,
        )

    async def supervisor(self, criteria: FilterCriteria) -> SupervisorReport:
        if not criteria.supervisor_id:
            raise InputValidationError("Supervisor ID is required")
        snapshot = await self._reports.load()
        return self._reports.timed(
            "supervisor",
            lambda: supervisor_report(
                snapshot, criteria, grace=self._settings.on_time_grace_minutes
            ),
            criteria,
        )

    async def revenue(self) -> RevenueDashboard:
        snapshot = await self._reports.load()
        return self._reports.timed(
            "revenue",
            lambda: revenue_dashboard(
                snapshot,
                self._clock,
                months=self._settings.dashboard_window_months,
                grace=self._settings.on_time_grace_minutes,
            ),
            FilterCriteria(),
        )

    async def fleet(self, status: str | None, vehicle_type: str | None) -> FleetView:
        snapshot = await self._reports.load()
        return self._reports.timed(
            "fleet",
            lambda: fleet_view(
                snapshot,
                self._clock,
                status=status,
                vehicle_type=vehicle_type,
                grace=self._settings.on_time_grace_minutes,
            ),
            FilterCriteria(),
        )


__all__ = [
    "AnalyticsService",
    "fleet_manager_analytics",
    "supervisor_report",
    "revenue_dashboard",
    "fleet_view",
    "service_interval",
]
