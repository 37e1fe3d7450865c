"""Record factories and clocks shared by the test suite."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from transit_insights.persistence.snapshot import Snapshot

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


class TickingClock:
    """Clock that advances by ``step`` every time it is read."""

    def __init__(self, start: datetime, step: timedelta = timedelta(seconds=1)) -> None:
        self._current = start
        self._step = step

    def now(self) -> datetime:
        current = self._current
        self._current = current + self._step
        return current


def days_ago(days: int, *, now: datetime = NOW) -> str:
    return (now - timedelta(days=days)).isoformat()


def write_document(path: Path, document: dict[str, Any]) -> None:
    path.write_text(json.dumps(document), encoding="utf-8")


def build_snapshot(**collections: list[dict[str, Any]]) -> Snapshot:
    return Snapshot.from_document(collections)


def run(run_id: str, **fields: Any) -> dict[str, Any]:
    return {"id": run_id, "status": "completed", **fields}


def payment(payment_id: str, amount: float, **fields: Any) -> dict[str, Any]:
    return {"id": payment_id, "amount": amount, "status": "completed", **fields}


def scenario_a_document() -> dict[str, Any]:
    """Three runs over January and February, revenue only in February."""
    return {
        "routes": [{"id": "route-1", "name": "Campus Loop", "status": "active"}],
        "vehicles": [
            {"id": "bus-1", "number": "B-101", "capacity": 40, "status": "active"}
        ],
        "riders": [
            {"id": "driver-1", "name": "Dana Driver", "role": "driver"},
            {"id": "rider-1", "name": "Riley Rider", "role": "rider"},
        ],
        "runs": [
            run(
                "run-1",
                routeId="route-1",
                vehicleId="bus-1",
                driverId="driver-1",
                date="2024-01-05",
                passengers=20,
            ),
            run(
                "run-2",
                routeId="route-1",
                vehicleId="bus-1",
                driverId="driver-1",
                date="2024-02-10",
                passengers=30,
            ),
            run(
                "run-3",
                routeId="route-1",
                vehicleId="bus-1",
                driverId="driver-1",
                date="2024-02-20",
                passengers=10,
            ),
        ],
        "payments": [
            payment("pay-1", 100, runId="run-2", riderId="rider-1", method="card"),
            payment("pay-2", 100, runId="run-3", riderId="rider-1", method="card"),
        ],
    }
