"""
Report response models.

Provides Pydantic models for the report and analytics API endpoints. Values
keep full precision in memory; ``Percentage`` and ``Money`` fields are
rounded half-up to two decimals only when serialised.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import Field, PlainSerializer

from transit_insights.models.records import CamelModel
from transit_insights.services.aggregation import round_half_up

Percentage = Annotated[float, PlainSerializer(round_half_up, return_type=float)]
Money = Annotated[float, PlainSerializer(round_half_up, return_type=float)]

Dimension = Literal["route", "vehicle", "driver", "supervisor"]
ReportType = Literal[
    "overview", "financial", "operational", "performance", "maintenance", "user"
]
MaintenanceStatus = Literal["overdue", "due_soon", "approaching", "up_to_date"]
MaintenancePriority = Literal["critical", "high", "medium", "low"]


class Period(CamelModel):
    start_date: str = "all"
    end_date: str = "all"


class MonthlyBucket(CamelModel):
    """Aggregated metrics for one calendar month."""

    month: str = Field(..., description="Bucket key formatted as YYYY-MM.")
    label: str = Field(..., description="Display label such as 'Feb 2024'.")
    trips: int = Field(0, ge=0)
    revenue: Money = Field(0.0, ge=0)
    reservations: int = Field(0, ge=0)
    passengers: int = Field(0, ge=0)


class EntityPerformance(CamelModel):
    """Per-entity metrics shared by every performance dimension."""

    dimension: Dimension
    entity_id: str
    name: str | None = None

    # Descriptive enrichment; null when not applicable to the dimension.
    start_point: str | None = None
    end_point: str | None = None
    model: str | None = None
    capacity: int | None = None
    status: str | None = None
    license_number: str | None = None
    phone: str | None = None

    total_trips: int = 0
    completed_trips: int = 0
    active_trips: int = 0
    cancelled_trips: int = 0
    on_time_trips: int = 0
    completion_rate: Percentage = 0.0
    on_time_rate: Percentage = 0.0

    total_reservations: int = 0
    confirmed_reservations: int = 0
    total_passengers: int = 0
    total_revenue: Money = 0.0
    average_revenue: Money = 0.0

    total_capacity: int | None = None
    utilization: Percentage | None = None

    attendance: int = 0
    present_attendance: int = 0
    attendance_rate: Percentage = 0.0

    last_trip_id: str | None = None
    last_trip_date: str | None = None


class PerformanceTables(CamelModel):
    routes: list[EntityPerformance] = Field(default_factory=list)
    vehicles: list[EntityPerformance] = Field(default_factory=list)
    drivers: list[EntityPerformance] = Field(default_factory=list)
    supervisors: list[EntityPerformance] = Field(default_factory=list)


# ==========================================================================
# Summary blocks
# ==========================================================================


class UsersSummary(CamelModel):
    total: int = 0
    riders: int = 0
    drivers: int = 0
    supervisors: int = 0
    fleet_managers: int = 0
    admins: int = 0


class FleetSummary(CamelModel):
    total_vehicles: int = 0
    active_vehicles: int = 0
    maintenance_vehicles: int = 0
    retired_vehicles: int = 0
    total_routes: int = 0
    active_routes: int = 0
    inactive_routes: int = 0
    utilization_rate: Percentage = 0.0


class TripSummary(CamelModel):
    total: int = 0
    completed: int = 0
    active: int = 0
    scheduled: int = 0
    cancelled: int = 0
    on_time: int = 0
    completion_rate: Percentage = 0.0
    on_time_rate: Percentage = 0.0
    total_passengers: int = 0


class ReservationSummary(CamelModel):
    total: int = 0
    confirmed: int = 0
    pending: int = 0
    cancelled: int = 0
    confirmation_rate: Percentage = 0.0


class AttendanceSummary(CamelModel):
    total: int = 0
    present: int = 0
    absent: int = 0
    rate: Percentage = 0.0


class FinancialSummary(CamelModel):
    total_payments: int = 0
    total_revenue: Money = 0.0
    pending_revenue: Money = 0.0
    failed_revenue: Money = 0.0
    refunded_revenue: Money = 0.0
    net_revenue: Money = 0.0
    subscription_revenue: Money = 0.0
    average_revenue_per_trip: Money = 0.0
    average_revenue_per_reservation: Money = 0.0
    success_rate: Percentage = 0.0


class MaintenanceSummary(CamelModel):
    total: int = 0
    open: int = 0
    scheduled: int = 0
    in_progress: int = 0
    completed: int = 0
    critical: int = 0
    high: int = 0
    completion_rate: Percentage = 0.0
    estimated_cost: Money = 0.0
    actual_cost: Money = 0.0
    cost_variance: Money = 0.0


class Trends(CamelModel):
    monthly: list[MonthlyBucket] = Field(default_factory=list)
    payment_methods: dict[str, int] = Field(default_factory=dict)
    reservation_statuses: dict[str, int] = Field(default_factory=dict)
    trip_statuses: dict[str, int] = Field(default_factory=dict)


class VehicleMaintenanceStatus(CamelModel):
    """Urgency classification of one vehicle within the maintenance report."""

    vehicle_id: str
    vehicle_number: str | None = None
    maintenance_count: int = 0
    open_maintenance: int = 0
    critical_maintenance: int = 0
    trips: int = 0
    last_maintenance: str | None = None
    next_maintenance: str | None = None
    days_since_last_maintenance: int | None = None
    maintenance_status: MaintenanceStatus = "up_to_date"
    maintenance_priority: MaintenancePriority = "low"


class RiderActivity(CamelModel):
    rider_id: str
    rider_name: str | None = None
    reservations: int = 0
    confirmed_reservations: int = 0
    payments: int = 0
    completed_payments: int = 0
    total_spent: Money = 0.0
    attendance: int = 0
    present_attendance: int = 0
    attendance_rate: Percentage = 0.0


# ==========================================================================
# Report variants
# ==========================================================================


class OverviewSummary(CamelModel):
    users: UsersSummary
    fleet: FleetSummary
    trips: TripSummary
    reservations: ReservationSummary
    attendance: AttendanceSummary
    financial: FinancialSummary
    maintenance: MaintenanceSummary


class OverviewReport(CamelModel):
    type: Literal["overview"] = "overview"
    period: Period
    summary: OverviewSummary
    trends: Trends
    performance: PerformanceTables
    top_performers: PerformanceTables


class FinancialReportSummary(FinancialSummary):
    total_trips: int = 0


class FinancialBreakdown(CamelModel):
    by_route: list[EntityPerformance] = Field(default_factory=list)
    by_vehicle: list[EntityPerformance] = Field(default_factory=list)
    by_payment_method: dict[str, int] = Field(default_factory=dict)


class FinancialTrends(CamelModel):
    monthly: list[MonthlyBucket] = Field(default_factory=list)


class FinancialReport(CamelModel):
    type: Literal["financial"] = "financial"
    period: Period
    summary: FinancialReportSummary
    trends: FinancialTrends
    breakdown: FinancialBreakdown
    top_performers: PerformanceTables


class OperationalSummary(CamelModel):
    trips: TripSummary
    reservations: ReservationSummary
    attendance: AttendanceSummary


class OperationalBreakdown(CamelModel):
    by_route: list[EntityPerformance] = Field(default_factory=list)
    by_vehicle: list[EntityPerformance] = Field(default_factory=list)


class OperationalReport(CamelModel):
    type: Literal["operational"] = "operational"
    period: Period
    summary: OperationalSummary
    breakdown: OperationalBreakdown


class PerformanceSummary(CamelModel):
    trips: TripSummary
    attendance: AttendanceSummary
    maintenance: MaintenanceSummary


class PerformanceBreakdown(CamelModel):
    by_driver: list[EntityPerformance] = Field(default_factory=list)
    by_supervisor: list[EntityPerformance] = Field(default_factory=list)


class PerformanceReport(CamelModel):
    type: Literal["performance"] = "performance"
    period: Period
    summary: PerformanceSummary
    breakdown: PerformanceBreakdown
    top_performers: PerformanceTables


class MaintenanceBreakdown(CamelModel):
    by_vehicle: list[VehicleMaintenanceStatus] = Field(default_factory=list)


class MaintenanceReport(CamelModel):
    type: Literal["maintenance"] = "maintenance"
    period: Period
    summary: MaintenanceSummary
    breakdown: MaintenanceBreakdown


class UserActivitySummary(CamelModel):
    users: UsersSummary
    active_riders: int = 0


class UserBreakdown(CamelModel):
    rider_activity: list[RiderActivity] = Field(default_factory=list)
    driver_activity: list[EntityPerformance] = Field(default_factory=list)


class UserReport(CamelModel):
    type: Literal["user"] = "user"
    period: Period
    summary: UserActivitySummary
    breakdown: UserBreakdown


ReportResponse = Annotated[
    Union[
        OverviewReport,
        FinancialReport,
        OperationalReport,
        PerformanceReport,
        MaintenanceReport,
        UserReport,
    ],
    Field(discriminator="type"),
]


# ==========================================================================
# Supplementary analytics views
# ==========================================================================


class FleetManagerSummary(CamelModel):
    trips: TripSummary
    reservations: ReservationSummary
    attendance: AttendanceSummary
    financial: FinancialSummary


class FleetManagerAnalytics(CamelModel):
    period: Period
    summary: FleetManagerSummary
    monthly_trends: list[MonthlyBucket] = Field(default_factory=list)
    performance: PerformanceTables
    top_performers: PerformanceTables


class SupervisorReport(CamelModel):
    supervisor_id: str
    supervisor_name: str | None = None
    period: Period
    summary: EntityPerformance
    monthly_stats: list[MonthlyBucket] = Field(default_factory=list)


class MonthlyRevenue(CamelModel):
    month: str
    label: str
    revenue: Money = 0.0


class RouteUtilization(CamelModel):
    route_id: str
    route_name: str | None = None
    total_trips: int = 0
    total_reservations: int = 0
    total_capacity: int = 0
    utilization: Percentage = 0.0


class RevenueDashboard(CamelModel):
    monthly_revenue: list[MonthlyRevenue] = Field(default_factory=list)
    payment_status: dict[str, int] = Field(default_factory=dict)
    route_utilization: list[RouteUtilization] = Field(default_factory=list)
    vehicle_performance: list[EntityPerformance] = Field(default_factory=list)
    totals: dict[str, int] = Field(default_factory=dict)
