"""
Maintenance urgency classification and schedule management.

Urgency is derived from the vehicle's own ``lastMaintenance`` field on every
call; ticket history is reported alongside but does not move that date.
Ticket mutations go through ``RecordStore.modify_tickets`` so that they are
serialised by the store and checked against the ticket's version.
"""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable

from transit_insights.core.clock import Clock
from transit_insights.core.config import Settings
from transit_insights.errors import ConflictError, InputValidationError, NotFoundError
from transit_insights.models.maintenance import (
    MaintenanceSchedule,
    ScheduleEntry,
    ScheduleSummary,
    TicketCreate,
    TicketDigest,
    TicketUpdate,
)
from transit_insights.models.records import MaintenanceTicket, Run, Vehicle
from transit_insights.models.reports import MaintenancePriority, MaintenanceStatus
from transit_insights.persistence.store import RecordStore
from transit_insights.services.aggregation import count_where, rate, safe_ratio
from transit_insights.services.filters import in_date_range

logger = logging.getLogger(__name__)

Urgency = tuple[MaintenanceStatus, MaintenancePriority]

# First matching threshold wins.
_THRESHOLDS: tuple[tuple[int, MaintenanceStatus, MaintenancePriority], ...] = (
    (90, "overdue", "critical"),
    (60, "due_soon", "high"),
    (30, "approaching", "medium"),
)

PRIORITY_RANK: dict[str, int] = {"critical": 0, "high": 1, "medium": 2, "low": 3}
STATUS_RANK: dict[str, int] = {
    "overdue": 0,
    "due_soon": 1,
    "approaching": 2,
    "up_to_date": 3,
}
TICKET_STATUS_ORDER: dict[str, int] = {
    "open": 0,
    "scheduled": 1,
    "in_progress": 2,
    "completed": 3,
}

_DAY_SECONDS = 86400

# Ticket fields that an update may change but never clear.
_REQUIRED_FIELDS = frozenset({"vehicle_id", "type", "status", "priority"})


def classify(days_since_last_maintenance: int | None) -> Urgency:
    """Map days since the last service to a (status, priority) pair."""
    if days_since_last_maintenance is None:
        return "up_to_date", "low"
    for threshold, status, priority in _THRESHOLDS:
        if days_since_last_maintenance > threshold:
            return status, priority
    return "up_to_date", "low"


def parse_instant(value: str | None) -> datetime | None:
    """Parse an ISO date or timestamp; naive values are taken as UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        logger.debug("Ignoring unparseable date %r", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def days_between(earlier: datetime, later: datetime) -> int:
    return math.floor((later - earlier).total_seconds() / _DAY_SECONDS)


def days_since(value: str | None, now: datetime) -> int | None:
    instant = parse_instant(value)
    return days_between(instant, now) if instant else None


def days_until(value: str | None, now: datetime) -> int | None:
    instant = parse_instant(value)
    return days_between(now, instant) if instant else None


def vehicle_urgency(vehicle: Vehicle, now: datetime) -> tuple[int | None, Urgency]:
    days = days_since(vehicle.last_maintenance, now)
    return days, classify(days)


def prioritize(entries: Iterable[ScheduleEntry]) -> list[ScheduleEntry]:
    """Stable sort by priority rank, then status rank."""
    return sorted(
        entries,
        key=lambda entry: (
            PRIORITY_RANK[entry.maintenance_priority],
            STATUS_RANK[entry.maintenance_status],
        ),
    )


def format_timestamp(instant: datetime) -> str:
    """UTC ISO-8601 timestamp with millisecond precision and a ``Z`` suffix."""
    text = instant.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


@dataclass(frozen=True, slots=True, kw_only=True)
class ScheduleQuery:
    """Filters accepted by the schedule read endpoint."""

    vehicle_id: str | None = None
    type: str | None = None
    status: str | None = None
    date_from: str | None = None
    date_to: str | None = None

    def matches(self, ticket: MaintenanceTicket) -> bool:
        if self.type is not None and ticket.type != self.type:
            return False
        if self.status is not None and ticket.status != self.status:
            return False
        return in_date_range(ticket.reference_date, self.date_from, self.date_to)


class MaintenanceScheduleService:
    """Builds the prioritized schedule and owns maintenance ticket writes."""

    def __init__(self, store: RecordStore, clock: Clock, settings: Settings) -> None:
        self._store = store
        self._clock = clock
        self._settings = settings

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    async def get_schedule(self, query: ScheduleQuery) -> MaintenanceSchedule:
        snapshot = await self._store.load_snapshot()
        now = self._clock.now()

        vehicles = [
            vehicle
            for vehicle in snapshot.vehicles
            if query.vehicle_id is None or vehicle.id == query.vehicle_id
        ]
        tickets = [ticket for ticket in snapshot.maintenance_tickets if query.matches(ticket)]

        entries = [
            self._schedule_entry(
                vehicle,
                [ticket for ticket in tickets if ticket.vehicle_id == vehicle.id],
                [run for run in snapshot.runs if run.vehicle_id == vehicle.id],
                now,
            )
            for vehicle in vehicles
        ]
        schedule = prioritize(entries)
        return MaintenanceSchedule(schedule=schedule, summary=_summarize(schedule))

    def _schedule_entry(
        self,
        vehicle: Vehicle,
        tickets: list[MaintenanceTicket],
        runs: list[Run],
        now: datetime,
    ) -> ScheduleEntry:
        days, (status, priority) = vehicle_urgency(vehicle, now)
        completed = [ticket for ticket in tickets if ticket.status == "completed"]
        completed_cost = math.fsum(ticket.actual_cost or 0.0 for ticket in completed)
        completed_runs = count_where(runs, lambda run: run.status == "completed")

        recent = sorted(
            tickets,
            key=lambda ticket: ticket.created_at or ticket.reference_date or "",
            reverse=True,
        )[: self._settings.recent_ticket_limit]
        upcoming = sorted(
            (ticket for ticket in tickets if ticket.status in ("open", "scheduled")),
            key=lambda ticket: ticket.reference_date or "",
        )[: self._settings.upcoming_ticket_limit]

        return ScheduleEntry(
            vehicle_id=vehicle.id,
            vehicle_number=vehicle.number,
            vehicle_model=vehicle.model,
            capacity=vehicle.capacity,
            status=vehicle.status,
            last_maintenance=vehicle.last_maintenance,
            next_maintenance=vehicle.next_maintenance,
            days_since_last_maintenance=days,
            days_until_next_maintenance=days_until(vehicle.next_maintenance, now),
            maintenance_status=status,
            maintenance_priority=priority,
            total_trips=len(runs),
            completed_trips=completed_runs,
            active_trips=count_where(runs, lambda run: run.status == "active"),
            completion_rate=rate(completed_runs, len(runs)),
            estimated_mileage=math.fsum(
                run.estimated_distance or self._settings.default_trip_distance_km
                for run in runs
            ),
            total_maintenance_cost=completed_cost,
            average_maintenance_cost=safe_ratio(completed_cost, len(completed)),
            recent_maintenance=[TicketDigest.from_ticket(ticket) for ticket in recent],
            upcoming_maintenance=upcoming,
        )

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    async def create(self, payload: TicketCreate) -> MaintenanceTicket:
        """Append a new ticket with defaults for omitted fields.

        Raises:
            InputValidationError: If no vehicle id was supplied.
        """
        if not payload.vehicle_id:
            raise InputValidationError("Vehicle ID is required")

        now = self._clock.now()
        stamp = format_timestamp(now)
        ticket = MaintenanceTicket(
            id=f"ticket-{int(now.timestamp() * 1000)}-{uuid.uuid4().hex[:9]}",
            vehicle_id=payload.vehicle_id,
            type=payload.type or "preventive",
            status=payload.status or "scheduled",
            priority=payload.priority or "medium",
            description=payload.description,
            scheduled_date=payload.scheduled_date,
            completed_date=payload.completed_date,
            estimated_cost=payload.estimated_cost,
            actual_cost=payload.actual_cost,
            created_at=stamp,
            updated_at=stamp,
            version=1,
        )

        def append(tickets: list[MaintenanceTicket]):
            return [*tickets, ticket], ticket

        created = await self._store.modify_tickets(append)
        logger.info(
            "Created maintenance ticket %s for vehicle %s", created.id, created.vehicle_id
        )
        return created

    async def update(
        self,
        ticket_id: str | None,
        payload: TicketUpdate,
        expected_version: int | None = None,
    ) -> MaintenanceTicket:
        """Merge the supplied fields over an existing ticket.

        Args:
            ticket_id: Id of the ticket to update.
            payload: Fields to merge; fields absent from the request are kept.
            expected_version: Version the caller last saw, if any.

        Returns:
            The persisted ticket with its new version.

        Raises:
            InputValidationError: Missing id, vehicle reassignment or a status
                moving backwards through the lifecycle.
            NotFoundError: No ticket with ``ticket_id``.
            ConflictError: ``expected_version`` is stale.
        """
        if not ticket_id:
            raise InputValidationError("Schedule ID is required")
        changes = {
            name: value
            for name, value in payload.model_dump(exclude_unset=True).items()
            if value is not None or name not in _REQUIRED_FIELDS
        }
        now = self._clock.now()

        def merge(tickets: list[MaintenanceTicket]):
            position, current = _locate(tickets, ticket_id, expected_version)
            _check_transition(current, changes)
            updated = current.model_copy(
                update={
                    **changes,
                    "updated_at": _next_stamp(current, now),
                    "version": current.version + 1,
                }
            )
            return [*tickets[:position], updated, *tickets[position + 1 :]], updated

        updated = await self._store.modify_tickets(merge)
        logger.info(
            "Updated maintenance ticket %s to version %d", updated.id, updated.version
        )
        return updated

    async def delete(
        self, ticket_id: str | None, expected_version: int | None = None
    ) -> MaintenanceTicket:
        """Remove a ticket and return the removed record."""
        if not ticket_id:
            raise InputValidationError("Schedule ID is required")

        def remove(tickets: list[MaintenanceTicket]):
            position, current = _locate(tickets, ticket_id, expected_version)
            return [*tickets[:position], *tickets[position + 1 :]], current

        removed = await self._store.modify_tickets(remove)
        logger.info("Deleted maintenance ticket %s", removed.id)
        return removed


def _locate(
    tickets: list[MaintenanceTicket], ticket_id: str, expected_version: int | None
) -> tuple[int, MaintenanceTicket]:
    for position, ticket in enumerate(tickets):
        if ticket.id == ticket_id:
            if expected_version is not None and ticket.version != expected_version:
                raise ConflictError(
                    f"Maintenance schedule '{ticket_id}' was modified "
                    f"(version {ticket.version}, expected {expected_version})"
                )
            return position, ticket
    raise NotFoundError("Maintenance schedule not found")


def _check_transition(current: MaintenanceTicket, changes: dict) -> None:
    vehicle_id = changes.get("vehicle_id")
    if vehicle_id is not None and vehicle_id != current.vehicle_id:
        raise InputValidationError("A maintenance ticket cannot move to another vehicle")
    status = changes.get("status")
    if status is None:
        return
    if TICKET_STATUS_ORDER[status] < TICKET_STATUS_ORDER[current.status]:
        raise InputValidationError(
            f"Cannot move maintenance ticket from '{current.status}' back to '{status}'"
        )


def _next_stamp(current: MaintenanceTicket, now: datetime) -> str:
    """Timestamp for an update, strictly later than the ticket's last stamp."""
    previous = parse_instant(current.updated_at) or parse_instant(current.created_at)
    if previous is not None and now <= previous:
        now = previous + timedelta(milliseconds=1)
    return format_timestamp(now)


def _summarize(schedule: list[ScheduleEntry]) -> ScheduleSummary:
    total = len(schedule)
    total_cost = math.fsum(entry.total_maintenance_cost for entry in schedule)
    up_to_date = count_where(
        schedule, lambda entry: entry.maintenance_status == "up_to_date"
    )

    def with_status(status: str) -> int:
        return count_where(schedule, lambda entry: entry.maintenance_status == status)

    def with_priority(priority: str) -> int:
        return count_where(
            schedule, lambda entry: entry.maintenance_priority == priority
        )

    return ScheduleSummary(
        total_vehicles=total,
        overdue_maintenance=with_status("overdue"),
        due_soon_maintenance=with_status("due_soon"),
        approaching_maintenance=with_status("approaching"),
        up_to_date_maintenance=up_to_date,
        critical_priority=with_priority("critical"),
        high_priority=with_priority("high"),
        medium_priority=with_priority("medium"),
        low_priority=with_priority("low"),
        total_maintenance_cost=total_cost,
        average_maintenance_cost=safe_ratio(total_cost, total),
        maintenance_efficiency=rate(up_to_date, total),
    )


__all__ = [
    "classify",
    "days_since",
    "days_until",
    "vehicle_urgency",
    "prioritize",
    "format_timestamp",
    "parse_instant",
    "ScheduleQuery",
    "MaintenanceScheduleService",
    "PRIORITY_RANK",
    "STATUS_RANK",
]
