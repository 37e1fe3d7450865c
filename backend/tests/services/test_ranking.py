"""
Tests for entity performance ranking.
"""

from __future__ import annotations

import pytest

from transit_insights.models.records import Run
from transit_insights.services.filters import FilterCriteria, scope_snapshot
from transit_insights.services.ranking import (
    is_on_time,
    leaderboards,
    performance_table,
    performance_tables,
)

from tests.factories import build_snapshot, payment, run, scenario_a_document

GRACE = 5


def _scoped(document, criteria=None):
    return scope_snapshot(build_snapshot(**document), criteria or FilterCriteria())


def _earning_routes(count: int) -> dict:
    """``count`` routes where route-N earns N * 10."""
    routes = [{"id": f"route-{n}", "name": f"Route {n}"} for n in range(1, count + 1)]
    runs = [run(f"run-{n}", routeId=f"route-{n}", date="2024-02-01") for n in range(1, count + 1)]
    payments = [
        payment(f"pay-{n}", n * 10, runId=f"run-{n}") for n in range(1, count + 1)
    ]
    return {"routes": routes, "runs": runs, "payments": payments}


@pytest.mark.parametrize(
    ("scheduled", "actual", "expected"),
    [
        ("08:00", "08:05", True),
        ("08:00", "07:55", True),
        ("08:00", "08:06", False),
        ("08:00", None, False),
        ("2024-02-01T08:00:00", "2024-02-01T08:03:00", True),
        ("not a time", "08:00", False),
        ("08:00:00Z", "08:03:00", True),
        ("08:00:00", "08:03:00+00:00", True),
        ("08:00:00+01:00", "07:04:00", True),
        ("08:00:00Z", "08:10:00", False),
        ("2024-02-01T08:00:00Z", "08:02", True),
    ],
)
def test_is_on_time(scheduled, actual, expected):
    trip = Run(id="r", scheduled_time=scheduled, actual_start_time=actual)

    assert is_on_time(trip, GRACE) is expected


class TestPerformanceTable:
    def test_vehicle_metrics_from_own_runs(self):
        filtered = _scoped(scenario_a_document())

        [row] = performance_table(filtered, "vehicle", on_time_grace_minutes=GRACE)

        assert row.entity_id == "bus-1"
        assert row.name == "B-101"
        assert row.total_trips == 3
        assert row.completed_trips == 3
        assert row.completion_rate == 100.0
        assert row.total_revenue == 200
        assert row.average_revenue == pytest.approx(200 / 3)
        assert row.total_capacity == 120
        assert row.utilization == pytest.approx(50.0)
        assert row.last_trip_id == "run-3"
        assert row.last_trip_date == "2024-02-20"

    def test_entities_without_runs_are_listed_with_zeroes(self):
        document = scenario_a_document()
        document["vehicles"].append({"id": "bus-2", "capacity": 20})
        filtered = _scoped(document)

        rows = performance_table(filtered, "vehicle", on_time_grace_minutes=GRACE)

        idle = next(row for row in rows if row.entity_id == "bus-2")
        assert idle.total_trips == 0
        assert idle.completion_rate == 0.0
        assert idle.utilization == 0.0
        assert idle.last_trip_id is None

    def test_runs_with_dangling_references_are_skipped(self):
        document = scenario_a_document()
        document["runs"].append(
            run("run-x", routeId="route-deleted", vehicleId="bus-deleted", date="2024-02-01")
        )
        filtered = _scoped(document)

        routes = performance_table(filtered, "route", on_time_grace_minutes=GRACE)

        assert [row.entity_id for row in routes] == ["route-1"]
        assert routes[0].total_trips == 3

    def test_route_utilization_uses_vehicle_capacity(self):
        filtered = _scoped(scenario_a_document())

        [route] = performance_table(filtered, "route", on_time_grace_minutes=GRACE)

        assert route.total_capacity == 120
        assert route.utilization == pytest.approx(50.0)

    def test_driver_table_only_lists_drivers(self):
        filtered = _scoped(scenario_a_document())

        drivers = performance_table(filtered, "driver", on_time_grace_minutes=GRACE)

        assert [row.entity_id for row in drivers] == ["driver-1"]
        assert drivers[0].utilization is None

    def test_dimension_filter_narrows_entity_list(self):
        document = _earning_routes(3)
        filtered = _scoped(document, FilterCriteria(route_id="route-2"))

        rows = performance_table(filtered, "route", on_time_grace_minutes=GRACE)

        assert [row.entity_id for row in rows] == ["route-2"]
        assert rows[0].total_revenue == 20

    def test_attendance_reached_through_runs(self):
        document = scenario_a_document()
        document["attendance"] = [
            {"id": "a-1", "runId": "run-1", "riderId": "rider-1", "status": "present"},
            {"id": "a-2", "runId": "run-2", "riderId": "rider-1", "status": "absent"},
            {"id": "a-3", "runId": "run-other", "riderId": "rider-1", "status": "present"},
        ]
        filtered = _scoped(document)

        [driver] = performance_table(filtered, "driver", on_time_grace_minutes=GRACE)

        assert driver.attendance == 2
        assert driver.present_attendance == 1
        assert driver.attendance_rate == 50.0


class TestLeaderboards:
    def test_top_five_sorted_by_revenue(self):
        filtered = _scoped(_earning_routes(7))

        tables = performance_tables(filtered, on_time_grace_minutes=GRACE)
        top = leaderboards(tables, 5)

        assert len(tables.routes) == 7
        assert [row.entity_id for row in top.routes] == [
            "route-7",
            "route-6",
            "route-5",
            "route-4",
            "route-3",
        ]
        revenues = [row.total_revenue for row in top.routes]
        assert revenues == sorted(revenues, reverse=True)

    def test_ties_keep_collection_order(self):
        document = _earning_routes(3)
        for item in document["payments"]:
            item["amount"] = 10
        filtered = _scoped(document)

        top = leaderboards(performance_tables(filtered, on_time_grace_minutes=GRACE), 5)

        assert [row.entity_id for row in top.routes] == ["route-1", "route-2", "route-3"]

    def test_fewer_entities_than_size(self):
        filtered = _scoped(scenario_a_document())

        top = leaderboards(performance_tables(filtered, on_time_grace_minutes=GRACE), 5)

        assert len(top.vehicles) == 1
        assert top.supervisors == []
