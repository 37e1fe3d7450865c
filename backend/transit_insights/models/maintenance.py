"""
Maintenance schedule models.

Response models for the prioritized fleet maintenance schedule and the
payload models accepted by the ticket write endpoints.
"""

from __future__ import annotations

from pydantic import Field

from transit_insights.models.records import (
    CamelModel,
    MaintenanceTicket,
    TicketPriority,
    TicketStatus,
)
from transit_insights.models.reports import (
    MaintenancePriority,
    MaintenanceStatus,
    Money,
    Percentage,
)


class TicketDigest(CamelModel):
    """Condensed ticket as listed under a vehicle's recent maintenance."""

    id: str
    type: str
    status: TicketStatus
    priority: TicketPriority
    scheduled_date: str | None = None
    completed_date: str | None = None
    actual_cost: float | None = None
    description: str | None = None

    @classmethod
    def from_ticket(cls, ticket: MaintenanceTicket) -> "TicketDigest":
        return cls(
            id=ticket.id,
            type=ticket.type,
            status=ticket.status,
            priority=ticket.priority,
            scheduled_date=ticket.scheduled_date,
            completed_date=ticket.completed_date,
            actual_cost=ticket.actual_cost,
            description=ticket.description,
        )


class ScheduleEntry(CamelModel):
    """One vehicle in the prioritized maintenance schedule."""

    vehicle_id: str
    vehicle_number: str | None = None
    vehicle_model: str | None = None
    capacity: int = 0
    status: str | None = None
    last_maintenance: str | None = None
    next_maintenance: str | None = None
    days_since_last_maintenance: int | None = None
    days_until_next_maintenance: int | None = None
    maintenance_status: MaintenanceStatus = "up_to_date"
    maintenance_priority: MaintenancePriority = "low"
    total_trips: int = 0
    completed_trips: int = 0
    active_trips: int = 0
    completion_rate: Percentage = 0.0
    estimated_mileage: float = 0.0
    total_maintenance_cost: Money = 0.0
    average_maintenance_cost: Money = 0.0
    recent_maintenance: list[TicketDigest] = Field(default_factory=list)
    upcoming_maintenance: list[MaintenanceTicket] = Field(default_factory=list)


class ScheduleSummary(CamelModel):
    total_vehicles: int = 0
    overdue_maintenance: int = 0
    due_soon_maintenance: int = 0
    approaching_maintenance: int = 0
    up_to_date_maintenance: int = 0
    critical_priority: int = 0
    high_priority: int = 0
    medium_priority: int = 0
    low_priority: int = 0
    total_maintenance_cost: Money = 0.0
    average_maintenance_cost: Money = 0.0
    maintenance_efficiency: Percentage = 0.0


class MaintenanceSchedule(CamelModel):
    schedule: list[ScheduleEntry] = Field(default_factory=list)
    summary: ScheduleSummary


class TicketCreate(CamelModel):
    """Payload for creating a maintenance ticket; omitted fields take defaults."""

    vehicle_id: str | None = None
    type: str | None = None
    status: TicketStatus | None = None
    priority: TicketPriority | None = None
    description: str | None = None
    scheduled_date: str | None = None
    completed_date: str | None = None
    estimated_cost: float | None = Field(default=None, ge=0)
    actual_cost: float | None = Field(default=None, ge=0)


class TicketUpdate(CamelModel):
    """Partial update; only fields present in the request are merged."""

    vehicle_id: str | None = None
    type: str | None = None
    status: TicketStatus | None = None
    priority: TicketPriority | None = None
    description: str | None = None
    scheduled_date: str | None = None
    completed_date: str | None = None
    estimated_cost: float | None = Field(default=None, ge=0)
    actual_cost: float | None = Field(default=None, ge=0)


class DeletedTicket(CamelModel):
    message: str
    deleted_ticket: MaintenanceTicket


__all__ = [
    "TicketDigest",
    "ScheduleEntry",
    "ScheduleSummary",
    "MaintenanceSchedule",
    "TicketCreate",
    "TicketUpdate",
    "DeletedTicket",
]
