"""
Maintenance schedule endpoints.

Reads return the prioritized fleet schedule; writes create, update and
delete maintenance tickets. Ticket responses carry the ticket version as an
``ETag``; sending it back as ``If-Match`` rejects the write with 409 when the
ticket changed in the meantime.
"""

from typing import Annotated

from fastapi import APIRouter, Body, Depends, Header, Query, Response, status

from transit_insights.api.v1.shared.dependencies import get_maintenance_service
from transit_insights.api.v1.shared.validation import etag_for, parse_if_match
from transit_insights.models.maintenance import (
    DeletedTicket,
    MaintenanceSchedule,
    TicketCreate,
    TicketUpdate,
)
from transit_insights.models.records import MaintenanceTicket
from transit_insights.services.filters import parse_date_bound
from transit_insights.services.maintenance import (
    MaintenanceScheduleService,
    ScheduleQuery,
)

router = APIRouter()

TicketId = Annotated[
    str | None, Query(alias="id", description="Maintenance ticket id.")
]
IfMatch = Annotated[
    str | None,
    Header(description="Expected ticket version (ETag)."),
]


@router.get("/schedule", response_model=MaintenanceSchedule, summary="Maintenance schedule")
async def get_schedule(
    vehicle_id: Annotated[str | None, Query(alias="vehicleId")] = None,
    ticket_type: Annotated[str | None, Query(alias="type")] = None,
    ticket_status: Annotated[str | None, Query(alias="status")] = None,
    date_from: Annotated[str | None, Query(alias="dateFrom")] = None,
    date_to: Annotated[str | None, Query(alias="dateTo")] = None,
    service: MaintenanceScheduleService = Depends(get_maintenance_service),
) -> MaintenanceSchedule:
    """Vehicles ordered by maintenance priority, then status."""
    query = ScheduleQuery(
        vehicle_id=vehicle_id or None,
        type=ticket_type or None,
        status=ticket_status or None,
        date_from=parse_date_bound(date_from, name="dateFrom"),
        date_to=parse_date_bound(date_to, name="dateTo"),
    )
    return await service.get_schedule(query)


@router.post(
    "/schedule",
    response_model=MaintenanceTicket,
    status_code=status.HTTP_201_CREATED,
    summary="Create a maintenance ticket",
)
async def create_ticket(
    response: Response,
    payload: Annotated[TicketCreate, Body()],
    service: MaintenanceScheduleService = Depends(get_maintenance_service),
) -> MaintenanceTicket:
    ticket = await service.create(payload)
    response.headers["ETag"] = etag_for(ticket)
    return ticket


@router.put(
    "/schedule",
    response_model=MaintenanceTicket,
    summary="Update a maintenance ticket",
)
async def update_ticket(
    response: Response,
    payload: Annotated[TicketUpdate, Body()],
    ticket_id: TicketId = None,
    if_match: IfMatch = None,
    service: MaintenanceScheduleService = Depends(get_maintenance_service),
) -> MaintenanceTicket:
    ticket = await service.update(ticket_id, payload, parse_if_match(if_match))
    response.headers["ETag"] = etag_for(ticket)
    return ticket


@router.delete(
    "/schedule",
    response_model=DeletedTicket,
    summary="Delete a maintenance ticket",
)
async def delete_ticket(
    ticket_id: TicketId = None,
    if_match: IfMatch = None,
    service: MaintenanceScheduleService = Depends(get_maintenance_service),
) -> DeletedTicket:
    ticket = await service.delete(ticket_id, parse_if_match(if_match))
    return DeletedTicket(
        message="Maintenance schedule deleted successfully", deleted_ticket=ticket
    )
