"""Immutable point-in-time view of every record collection."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

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

# Collection name on disk -> record model.
COLLECTIONS: dict[str, type] = {
    "riders": Rider,
    "vehicles": Vehicle,
    "routes": Route,
    "runs": Run,
    "payments": Payment,
    "reservations": Reservation,
    "attendance": AttendanceRecord,
    "maintenanceTickets": MaintenanceTicket,
}
TICKETS_COLLECTION = "maintenanceTickets"


@dataclass(frozen=True, slots=True, kw_only=True)
class Snapshot:
    riders: tuple[Rider, ...] = ()
    vehicles: tuple[Vehicle, ...] = ()
    routes: tuple[Route, ...] = ()
    runs: tuple[Run, ...] = ()
    payments: tuple[Payment, ...] = ()
    reservations: tuple[Reservation, ...] = ()
    attendance: tuple[AttendanceRecord, ...] = ()
    maintenance_tickets: tuple[MaintenanceTicket, ...] = ()

    _vehicles_by_id: dict[str, Vehicle] = field(
        init=False, repr=False, compare=False
    )
    _routes_by_id: dict[str, Route] = field(init=False, repr=False, compare=False)
    _riders_by_id: dict[str, Rider] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        # First occurrence wins when a collection carries duplicate ids.
        object.__setattr__(self, "_vehicles_by_id", _index(self.vehicles))
        object.__setattr__(self, "_routes_by_id", _index(self.routes))
        object.__setattr__(self, "_riders_by_id", _index(self.riders))

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "Snapshot":
        """Validate a raw store document into typed, immutable collections."""
        values: dict[str, tuple[Any, ...]] = {}
        for name, model in COLLECTIONS.items():
            raw = document.get(name) or []
            values[_attribute_name(name)] = tuple(
                model.model_validate(item) for item in raw
            )
        return cls(**values)

    def vehicle(self, vehicle_id: str | None) -> Vehicle | None:
        return self._vehicles_by_id.get(vehicle_id) if vehicle_id else None

    def route(self, route_id: str | None) -> Route | None:
        return self._routes_by_id.get(route_id) if route_id else None

    def rider(self, rider_id: str | None) -> Rider | None:
        return self._riders_by_id.get(rider_id) if rider_id else None

    def riders_with_role(self, role: str) -> tuple[Rider, ...]:
        return tuple(rider for rider in self.riders if rider.role == role)


def _index(records) -> dict[str, Any]:
    indexed: dict[str, Any] = {}
    for record in records:
        indexed.setdefault(record.id, record)
    return indexed


def _attribute_name(collection: str) -> str:
    if collection == TICKETS_COLLECTION:
        return "maintenance_tickets"
    return collection


__all__ = ["Snapshot", "COLLECTIONS", "TICKETS_COLLECTION"]
