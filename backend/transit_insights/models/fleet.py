"""
Fleet view models.

Each vehicle is returned with its performance row, interval-based service
due state and most recent runs.
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field

from transit_insights.models.records import CamelModel, Vehicle
from transit_insights.models.reports import EntityPerformance, Money, Percentage

ServiceDueStatus = Literal["overdue", "due_soon", "ok"]


class RouteRef(CamelModel):
    id: str
    name: str | None = None
    start_point: str | None = None
    end_point: str | None = None


class RecentRun(CamelModel):
    id: str
    date: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    status: str
    passengers: int = 0
    route: RouteRef | None = Field(
        default=None, description="Null when the run's route no longer exists."
    )


class ServiceInterval(CamelModel):
    last_maintenance: str | None = None
    maintenance_interval: int | None = None
    maintenance_due: str | None = None
    is_maintenance_due: bool = False
    days_until_maintenance: int | None = None
    status: ServiceDueStatus = "ok"


class FleetVehicle(CamelModel):
    vehicle: Vehicle
    performance: EntityPerformance
    average_trip_duration_minutes: Money = 0.0
    maintenance: ServiceInterval
    recent_trips: list[RecentRun] = Field(default_factory=list)


class FleetOverview(CamelModel):
    total_vehicles: int = 0
    active_vehicles: int = 0
    maintenance_vehicles: int = 0
    retired_vehicles: int = 0
    total_capacity: int = 0
    total_revenue: Money = 0.0
    average_utilization: Percentage = 0.0
    maintenance_due: int = 0
    maintenance_due_soon: int = 0


class FleetView(CamelModel):
    fleet: list[FleetVehicle] = Field(default_factory=list)
    summary: FleetOverview


__all__ = [
    "RouteRef",
    "RecentRun",
    "ServiceInterval",
    "FleetVehicle",
    "FleetOverview",
    "FleetView",
]
