"""
Report dispatcher.

Each report variant is a pure function of a scoped snapshot, the current
instant and the reporting settings. ``ReportService`` performs the single
snapshot fetch, times the build and records it in the metrics.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Iterable

from transit_insights.core.clock import Clock
from transit_insights.core.config import Settings
from transit_insights.core.metrics import observe_report
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
from transit_insights.models.reports import (
    AttendanceSummary,
    FinancialBreakdown,
    FinancialReport,
    FinancialReportSummary,
    FinancialSummary,
    FinancialTrends,
    FleetSummary,
    MaintenanceBreakdown,
    MaintenanceReport,
    MaintenanceSummary,
    OperationalBreakdown,
    OperationalReport,
    OperationalSummary,
    OverviewReport,
    OverviewSummary,
    PerformanceBreakdown,
    PerformanceReport,
    PerformanceSummary,
    Period,
    ReportType,
    ReservationSummary,
    RiderActivity,
    Trends,
    TripSummary,
    UserActivitySummary,
    UserBreakdown,
    UserReport,
    UsersSummary,
    VehicleMaintenanceStatus,
)
from transit_insights.persistence.snapshot import Snapshot
from transit_insights.persistence.store import RecordStore
from transit_insights.services.aggregation import (
    completed_revenue,
    count_by,
    count_where,
    rate,
    revenue_by_status,
    safe_ratio,
    status_counts,
    sum_amounts,
)
from transit_insights.services.filters import (
    FilterCriteria,
    FilteredSnapshot,
    scope_snapshot,
)
from transit_insights.services.maintenance import (
    PRIORITY_RANK,
    STATUS_RANK,
    vehicle_urgency,
)
from transit_insights.services.ranking import (
    is_on_time,
    leaderboards,
    performance_tables,
)
from transit_insights.services.timeseries import bucket_trailing

logger = logging.getLogger(__name__)

REPORT_TYPES: tuple[ReportType, ...] = (
    "overview",
    "financial",
    "operational",
    "performance",
    "maintenance",
    "user",
)
DEFAULT_REPORT_TYPE: ReportType = "overview"

RUN_STATUSES = ("scheduled", "active", "completed", "cancelled")
RESERVATION_STATUSES = ("confirmed", "pending", "cancelled")
PAYMENT_STATUSES = ("completed", "pending", "failed", "refunded")


def resolve_report_type(name: str | None) -> ReportType:
    """Map a requested variant name to a known one, defaulting to overview."""
    if name:
        normalized = name.strip().lower()
        for report_type in REPORT_TYPES:
            if report_type == normalized:
                return report_type
        logger.debug("Unknown report type %r; using %s", name, DEFAULT_REPORT_TYPE)
    return DEFAULT_REPORT_TYPE


@dataclass(frozen=True, slots=True, kw_only=True)
class ReportContext:
    """Everything a variant needs besides the scoped data."""

    clock: Clock
    trend_window_months: int = 12
    leaderboard_size: int = 5
    on_time_grace_minutes: int = 5

    @classmethod
    def from_settings(cls, settings: Settings, clock: Clock) -> "ReportContext":
        return cls(
            clock=clock,
            trend_window_months=settings.trend_window_months,
            leaderboard_size=settings.leaderboard_size,
            on_time_grace_minutes=settings.on_time_grace_minutes,
        )


def period_of(criteria: FilterCriteria) -> Period:
    return Period(
        start_date=criteria.date_from or "all",
        end_date=criteria.date_to or "all",
    )


# ==========================================================================
# Summary blocks
# ==========================================================================


def users_summary(riders: Iterable[Rider]) -> UsersSummary:
    roles = count_by(riders, lambda rider: rider.role)
    return UsersSummary(
        total=sum(roles.values()),
        riders=roles.get("rider", 0),
        drivers=roles.get("driver", 0),
        supervisors=roles.get("supervisor", 0),
        fleet_managers=roles.get("fleet-manager", 0),
        admins=roles.get("admin", 0),
    )


def fleet_summary(vehicles: Iterable[Vehicle], routes: Iterable[Route]) -> FleetSummary:
    vehicle_statuses = status_counts(vehicles, ("active", "maintenance", "retired"))
    route_statuses = status_counts(routes, ("active", "inactive"))
    total_vehicles = sum(vehicle_statuses.values())
    return FleetSummary(
        total_vehicles=total_vehicles,
        active_vehicles=vehicle_statuses["active"],
        maintenance_vehicles=vehicle_statuses["maintenance"],
        retired_vehicles=vehicle_statuses["retired"],
        total_routes=sum(route_statuses.values()),
        active_routes=route_statuses["active"],
        inactive_routes=route_statuses["inactive"],
        utilization_rate=rate(vehicle_statuses["active"], total_vehicles),
    )


def trip_summary(runs: tuple[Run, ...], on_time_grace_minutes: int) -> TripSummary:
    statuses = status_counts(runs, RUN_STATUSES)
    on_time = count_where(runs, lambda run: is_on_time(run, on_time_grace_minutes))
    return TripSummary(
        total=len(runs),
        completed=statuses["completed"],
        active=statuses["active"],
        scheduled=statuses["scheduled"],
        cancelled=statuses["cancelled"],
        on_time=on_time,
        completion_rate=rate(statuses["completed"], len(runs)),
        on_time_rate=rate(on_time, len(runs)),
        total_passengers=sum(run.passengers for run in runs),
    )


def reservation_summary(reservations: tuple[Reservation, ...]) -> ReservationSummary:
    statuses = status_counts(reservations, RESERVATION_STATUSES)
    return ReservationSummary(
        total=len(reservations),
        confirmed=statuses["confirmed"],
        pending=statuses["pending"],
        cancelled=statuses["cancelled"],
        confirmation_rate=rate(statuses["confirmed"], len(reservations)),
    )


def attendance_summary(attendance: tuple[AttendanceRecord, ...]) -> AttendanceSummary:
    present = count_where(attendance, lambda record: record.status == "present")
    return AttendanceSummary(
        total=len(attendance),
        present=present,
        absent=len(attendance) - present,
        rate=rate(present, len(attendance)),
    )


def _financial_fields(filtered: FilteredSnapshot) -> dict[str, float | int]:
    payments = filtered.payments
    revenue = completed_revenue(payments)
    refunded = revenue_by_status(payments, "refunded")
    completed_count = count_where(payments, lambda payment: payment.status == "completed")
    return {
        "total_payments": len(payments),
        "total_revenue": revenue,
        "pending_revenue": revenue_by_status(payments, "pending"),
        "failed_revenue": revenue_by_status(payments, "failed"),
        "refunded_revenue": refunded,
        "net_revenue": revenue - refunded,
        "subscription_revenue": sum_amounts(
            payments,
            lambda payment: payment.is_subscription and payment.status == "completed",
        ),
        "average_revenue_per_trip": safe_ratio(revenue, len(filtered.runs)),
        "average_revenue_per_reservation": safe_ratio(
            revenue, len(filtered.reservations)
        ),
        "success_rate": rate(completed_count, len(payments)),
    }


def financial_summary(filtered: FilteredSnapshot) -> FinancialSummary:
    return FinancialSummary(**_financial_fields(filtered))


def maintenance_summary(tickets: tuple[MaintenanceTicket, ...]) -> MaintenanceSummary:
    statuses = status_counts(tickets, ("open", "scheduled", "in_progress", "completed"))
    priorities = count_by(tickets, lambda ticket: ticket.priority)
    estimated = math.fsum(ticket.estimated_cost or 0.0 for ticket in tickets)
    actual = math.fsum(ticket.actual_cost or 0.0 for ticket in tickets)
    return MaintenanceSummary(
        total=len(tickets),
        open=statuses["open"],
        scheduled=statuses["scheduled"],
        in_progress=statuses["in_progress"],
        completed=statuses["completed"],
        critical=priorities.get("critical", 0),
        high=priorities.get("high", 0),
        completion_rate=rate(statuses["completed"], len(tickets)),
        estimated_cost=estimated,
        actual_cost=actual,
        cost_variance=actual - estimated,
    )


def trends(filtered: FilteredSnapshot, context: ReportContext) -> Trends:
    return Trends(
        monthly=bucket_trailing(filtered, context.clock, context.trend_window_months),
        payment_methods=count_by(filtered.payments, lambda payment: payment.method),
        reservation_statuses=status_counts(filtered.reservations, RESERVATION_STATUSES),
        trip_statuses=status_counts(filtered.runs, RUN_STATUSES),
    )


# ==========================================================================
# Variants
# ==========================================================================


def overview_report(filtered: FilteredSnapshot, context: ReportContext) -> OverviewReport:
    tables = performance_tables(
        filtered, on_time_grace_minutes=context.on_time_grace_minutes
    )
    return OverviewReport(
        period=period_of(filtered.criteria),
        summary=OverviewSummary(
            users=users_summary(filtered.riders),
            fleet=fleet_summary(filtered.vehicles, filtered.routes),
            trips=trip_summary(filtered.runs, context.on_time_grace_minutes),
            reservations=reservation_summary(filtered.reservations),
            attendance=attendance_summary(filtered.attendance),
            financial=financial_summary(filtered),
            maintenance=maintenance_summary(filtered.maintenance_tickets),
        ),
        trends=trends(filtered, context),
        performance=tables,
        top_performers=leaderboards(tables, context.leaderboard_size),
    )


def financial_report(filtered: FilteredSnapshot, context: ReportContext) -> FinancialReport:
    tables = performance_tables(
        filtered,
        on_time_grace_minutes=context.on_time_grace_minutes,
        dimensions=("route", "vehicle"),
    )
    return FinancialReport(
        period=period_of(filtered.criteria),
        summary=FinancialReportSummary(
            **_financial_fields(filtered),
            total_trips=len(filtered.runs),
        ),
        trends=FinancialTrends(
            monthly=bucket_trailing(
                filtered, context.clock, context.trend_window_months
            )
        ),
        breakdown=FinancialBreakdown(
            by_route=tables.routes,
            by_vehicle=tables.vehicles,
            by_payment_method=count_by(
                filtered.payments, lambda payment: payment.method
            ),
        ),
        top_performers=leaderboards(tables, context.leaderboard_size),
    )


def operational_report(
    filtered: FilteredSnapshot, context: ReportContext
) -> OperationalReport:
    tables = performance_tables(
        filtered,
        on_time_grace_minutes=context.on_time_grace_minutes,
        dimensions=("route", "vehicle"),
    )
    return OperationalReport(
        period=period_of(filtered.criteria),
        summary=OperationalSummary(
            trips=trip_summary(filtered.runs, context.on_time_grace_minutes),
            reservations=reservation_summary(filtered.reservations),
            attendance=attendance_summary(filtered.attendance),
        ),
        breakdown=OperationalBreakdown(by_route=tables.routes, by_vehicle=tables.vehicles),
    )


def performance_report(
    filtered: FilteredSnapshot, context: ReportContext
) -> PerformanceReport:
    tables = performance_tables(
        filtered,
        on_time_grace_minutes=context.on_time_grace_minutes,
        dimensions=("driver", "supervisor"),
    )
    return PerformanceReport(
        period=period_of(filtered.criteria),
        summary=PerformanceSummary(
            trips=trip_summary(filtered.runs, context.on_time_grace_minutes),
            attendance=attendance_summary(filtered.attendance),
            maintenance=maintenance_summary(filtered.maintenance_tickets),
        ),
        breakdown=PerformanceBreakdown(
            by_driver=tables.drivers, by_supervisor=tables.supervisors
        ),
        top_performers=leaderboards(tables, context.leaderboard_size),
    )


def maintenance_report(
    filtered: FilteredSnapshot, context: ReportContext
) -> MaintenanceReport:
    now = context.clock.now()
    wanted = filtered.criteria.vehicle_id
    rows: list[VehicleMaintenanceStatus] = []
    for vehicle in filtered.vehicles:
        if wanted is not None and vehicle.id != wanted:
            continue
        tickets = [
            ticket
            for ticket in filtered.maintenance_tickets
            if ticket.vehicle_id == vehicle.id
        ]
        days, (status, priority) = vehicle_urgency(vehicle, now)
        rows.append(
            VehicleMaintenanceStatus(
                vehicle_id=vehicle.id,
                vehicle_number=vehicle.number,
                maintenance_count=len(tickets),
                open_maintenance=count_where(
                    tickets, lambda ticket: ticket.status != "completed"
                ),
                critical_maintenance=count_where(
                    tickets, lambda ticket: ticket.priority == "critical"
                ),
                trips=count_where(
                    filtered.runs, lambda run: run.vehicle_id == vehicle.id
                ),
                last_maintenance=vehicle.last_maintenance,
                next_maintenance=vehicle.next_maintenance,
                days_since_last_maintenance=days,
                maintenance_status=status,
                maintenance_priority=priority,
            )
        )
    rows.sort(
        key=lambda row: (
            PRIORITY_RANK[row.maintenance_priority],
            STATUS_RANK[row.maintenance_status],
        )
    )
    return MaintenanceReport(
        period=period_of(filtered.criteria),
        summary=maintenance_summary(filtered.maintenance_tickets),
        breakdown=MaintenanceBreakdown(by_vehicle=rows),
    )


def _rider_activity(rider: Rider, filtered: FilteredSnapshot) -> RiderActivity:
    reservations = [item for item in filtered.reservations if item.rider_id == rider.id]
    payments: list[Payment] = [
        item for item in filtered.payments if item.rider_id == rider.id
    ]
    attendance = [item for item in filtered.attendance if item.rider_id == rider.id]
    present = count_where(attendance, lambda record: record.status == "present")
    return RiderActivity(
        rider_id=rider.id,
        rider_name=rider.name,
        reservations=len(reservations),
        confirmed_reservations=count_where(
            reservations, lambda item: item.status == "confirmed"
        ),
        payments=len(payments),
        completed_payments=count_where(
            payments, lambda payment: payment.status == "completed"
        ),
        total_spent=completed_revenue(payments),
        attendance=len(attendance),
        present_attendance=present,
        attendance_rate=rate(present, len(attendance)),
    )


def user_report(filtered: FilteredSnapshot, context: ReportContext) -> UserReport:
    wanted = filtered.criteria.rider_id
    activity = [
        _rider_activity(rider, filtered)
        for rider in filtered.source.riders_with_role("rider")
        if wanted is None or rider.id == wanted
    ]
    activity.sort(key=lambda row: row.total_spent, reverse=True)
    drivers = performance_tables(
        filtered,
        on_time_grace_minutes=context.on_time_grace_minutes,
        dimensions=("driver",),
    ).drivers
    return UserReport(
        period=period_of(filtered.criteria),
        summary=UserActivitySummary(
            users=users_summary(filtered.riders),
            active_riders=count_where(
                activity, lambda row: row.reservations > 0 or row.payments > 0
            ),
        ),
        breakdown=UserBreakdown(rider_activity=activity, driver_activity=drivers),
    )


ReportBuilder = Callable[[FilteredSnapshot, ReportContext], object]

REPORT_BUILDERS: dict[ReportType, ReportBuilder] = {
    "overview": overview_report,
    "financial": financial_report,
    "operational": operational_report,
    "performance": performance_report,
    "maintenance": maintenance_report,
    "user": user_report,
}


def build_report(
    snapshot: Snapshot,
    report_type: str | None,
    criteria: FilterCriteria,
    context: ReportContext,
):
    """Scope ``snapshot`` by ``criteria`` and compose the requested variant."""
    builder = REPORT_BUILDERS[resolve_report_type(report_type)]
    return builder(scope_snapshot(snapshot, criteria), context)


class ReportService:
    """Fetches one snapshot per request and builds a report from it."""

    def __init__(self, store: RecordStore, clock: Clock, settings: Settings) -> None:
        self._store = store
        self._settings = settings
        self._context = ReportContext.from_settings(settings, clock)

    async def load(self) -> Snapshot:
        return await self._store.load_snapshot()

    async def generate(self, report_type: str | None, criteria: FilterCriteria):
        resolved = resolve_report_type(report_type)
        snapshot = await self.load()
        return self.timed(
            resolved,
            lambda: build_report(snapshot, resolved, criteria, self._context),
            criteria,
        )

    def timed(self, name: str, build: Callable[[], object], criteria: FilterCriteria):
        """Run ``build`` and record its outcome and latency under ``name``."""
        logger.info("Generating %s report (criteria=%s)", name, criteria)
        started = time.monotonic()
        try:
            report = build()
        except Exception:
            observe_report(name, "error", time.monotonic() - started)
            raise
        elapsed = time.monotonic() - started
        observe_report(name, "success", elapsed)
        if elapsed * 1000 > self._settings.slow_report_log_ms:
            logger.warning("Slow %s report: %.0f ms", name, elapsed * 1000)
        return report


__all__ = [
    "REPORT_TYPES",
    "DEFAULT_REPORT_TYPE",
    "REPORT_BUILDERS",
    "ReportContext",
    "ReportService",
    "build_report",
    "resolve_report_type",
    "period_of",
    "users_summary",
    "fleet_summary",
    "trip_summary",
    "reservation_summary",
    "attendance_summary",
    "financial_summary",
    "maintenance_summary",
]
