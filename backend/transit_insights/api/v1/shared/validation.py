"""Input validation utilities for report and maintenance endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import Query

from transit_insights.errors import InputValidationError
from transit_insights.models.records import MaintenanceTicket
from transit_insights.services.filters import FilterCriteria, parse_date_bound


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def report_criteria(
    date_from: Annotated[
        str | None,
        Query(alias="dateFrom", description="Inclusive start date (YYYY-MM-DD)."),
    ] = None,
    date_to: Annotated[
        str | None,
        Query(alias="dateTo", description="Inclusive end date (YYYY-MM-DD)."),
    ] = None,
    route_id: Annotated[str | None, Query(alias="routeId")] = None,
    vehicle_id: Annotated[str | None, Query(alias="vehicleId")] = None,
    driver_id: Annotated[str | None, Query(alias="driverId")] = None,
    supervisor_id: Annotated[str | None, Query(alias="supervisorId")] = None,
    rider_id: Annotated[str | None, Query(alias="riderId")] = None,
) -> FilterCriteria:
    """FastAPI dependency turning report query parameters into filter criteria."""
    return FilterCriteria(
        date_from=parse_date_bound(date_from, name="dateFrom"),
        date_to=parse_date_bound(date_to, name="dateTo"),
        route_id=_clean(route_id),
        vehicle_id=_clean(vehicle_id),
        driver_id=_clean(driver_id),
        supervisor_id=_clean(supervisor_id),
        rider_id=_clean(rider_id),
    )


def parse_if_match(value: str | None) -> int | None:
    """Extract the ticket version from an ``If-Match`` header.

    Accepts ``3``, ``"3"`` and weak ``W/"3"`` forms; ``*`` means any version.
    """
    if value is None:
        return None
    text = value.strip()
    if not text or text == "*":
        return None
    if text.startswith("W/"):
        text = text[2:]
    text = text.strip('"')
    if not text.isdigit():
        raise InputValidationError(f"Invalid If-Match header: '{value}'")
    return int(text)


def etag_for(ticket: MaintenanceTicket) -> str:
    return f'"{ticket.version}"'


__all__ = ["report_criteria", "parse_if_match", "etag_for"]
