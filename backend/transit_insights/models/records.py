"""
Record schema for the collections held by the record store.

Every model is immutable; snapshots hand the same instances to concurrent
report requests. Foreign keys are plain optional strings and may dangle.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

RiderRole = Literal["rider", "driver", "supervisor", "fleet-manager", "admin"]
VehicleStatus = Literal["active", "maintenance", "retired"]
RouteStatus = Literal["active", "inactive"]
RunStatus = Literal["scheduled", "active", "completed", "cancelled"]
PaymentStatus = Literal["completed", "pending", "failed", "refunded"]
ReservationStatus = Literal["confirmed", "pending", "cancelled"]
AttendanceStatus = Literal["present", "absent"]
TicketStatus = Literal["open", "scheduled", "in_progress", "completed"]
TicketPriority = Literal["critical", "high", "medium", "low"]


class CamelModel(BaseModel):
    """Base model serialising to the camelCase keys used on the wire and on disk."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class Record(CamelModel):
    """Immutable stored record."""

    model_config = ConfigDict(frozen=True)

    id: str


class Rider(Record):
    name: str | None = None
    role: RiderRole = "rider"
    status: str | None = None
    phone: str | None = None
    license_number: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class Vehicle(Record):
    number: str | None = None
    model: str | None = None
    vehicle_type: str | None = Field(default=None, alias="type")
    capacity: int = Field(default=0, ge=0)
    status: VehicleStatus = "active"
    last_maintenance: str | None = None
    next_maintenance: str | None = None
    maintenance_interval: int | None = Field(
        default=None, ge=1, description="Days between scheduled services."
    )


class Route(Record):
    name: str | None = None
    start_point: str | None = None
    end_point: str | None = None
    distance: float | None = None
    status: RouteStatus = "active"


class Run(Record):
    """A scheduled trip of one vehicle along one route."""

    route_id: str | None = None
    vehicle_id: str | None = None
    driver_id: str | None = None
    supervisor_id: str | None = None
    date: str | None = None
    status: RunStatus = "scheduled"
    passengers: int = Field(default=0, ge=0)
    scheduled_time: str | None = None
    actual_start_time: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    cost: float | None = Field(default=None, ge=0)
    estimated_distance: float | None = Field(default=None, ge=0)


class Payment(Record):
    run_id: str | None = None
    rider_id: str | None = None
    reservation_id: str | None = None
    amount: float = Field(default=0.0, ge=0)
    status: PaymentStatus = "pending"
    method: str | None = None
    date: str | None = None

    @property
    def is_subscription(self) -> bool:
        return self.run_id is None


class Reservation(Record):
    run_id: str | None = None
    rider_id: str | None = None
    date: str | None = None
    status: ReservationStatus = "pending"


class AttendanceRecord(Record):
    run_id: str | None = None
    rider_id: str | None = None
    status: AttendanceStatus = "absent"
    timestamp: str | None = None


class MaintenanceTicket(Record):
    vehicle_id: str | None = None
    type: str = "preventive"
    status: TicketStatus = "scheduled"
    priority: TicketPriority = "medium"
    description: str | None = None
    scheduled_date: str | None = None
    completed_date: str | None = None
    estimated_cost: float | None = Field(default=None, ge=0)
    actual_cost: float | None = Field(default=None, ge=0)
    created_at: str | None = None
    updated_at: str | None = None
    version: int = Field(default=1, ge=1)

    @property
    def reference_date(self) -> str | None:
        """Date a ticket is filtered and ordered by."""
        return self.scheduled_date or self.created_at


__all__ = [
    "CamelModel",
    "Record",
    "Rider",
    "Vehicle",
    "Route",
    "Run",
    "Payment",
    "Reservation",
    "AttendanceRecord",
    "MaintenanceTicket",
    "RiderRole",
    "VehicleStatus",
    "RouteStatus",
    "RunStatus",
    "PaymentStatus",
    "ReservationStatus",
    "AttendanceStatus",
    "TicketStatus",
    "TicketPriority",
]
