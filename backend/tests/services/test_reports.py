"""
Tests for report composition and the report service.
"""

from __future__ import annotations

import logging

import pytest
from prometheus_client import REGISTRY

from transit_insights.core.clock import FixedClock
from transit_insights.services.filters import FilterCriteria
from transit_insights.services.reports import (
    REPORT_TYPES,
    ReportContext,
    ReportService,
    build_report,
    resolve_report_type,
)

from tests.factories import NOW, build_snapshot, days_ago, payment, run, scenario_a_document


@pytest.fixture()
def context() -> ReportContext:
    return ReportContext(clock=FixedClock(NOW))


def _scenario_a():
    return build_snapshot(**scenario_a_document())


@pytest.mark.parametrize(
    ("requested", "expected"),
    [
        ("financial", "financial"),
        (" USER ", "user"),
        ("bogus", "overview"),
        (None, "overview"),
        ("", "overview"),
    ],
)
def test_resolve_report_type(requested, expected):
    assert resolve_report_type(requested) == expected


class TestOverview:
    def test_scenario_totals(self, context):
        report = build_report(_scenario_a(), "overview", FilterCriteria(), context)

        assert report.type == "overview"
        assert report.period.start_date == "all"
        assert report.summary.trips.total == 3
        assert report.summary.trips.completion_rate == 100.0
        assert report.summary.financial.total_revenue == 200
        assert report.summary.financial.average_revenue_per_trip == pytest.approx(200 / 3)
        assert report.summary.users.drivers == 1
        assert report.summary.fleet.utilization_rate == 100.0
        assert report.trends.payment_methods == {"card": 2}
        assert report.trends.trip_statuses["completed"] == 3

    def test_monthly_trend_window(self, context):
        report = build_report(_scenario_a(), "overview", FilterCriteria(), context)

        monthly = report.trends.monthly
        assert len(monthly) == 12
        assert monthly[-1].month == "2024-03"
        february = next(bucket for bucket in monthly if bucket.month == "2024-02")
        january = next(bucket for bucket in monthly if bucket.month == "2024-01")
        assert (february.trips, february.revenue) == (2, 200)
        assert (january.trips, january.revenue) == (1, 0)

    def test_presentation_rounding_happens_on_serialization(self, context):
        report = build_report(_scenario_a(), "overview", FilterCriteria(), context)

        body = report.model_dump(mode="json", by_alias=True)

        assert body["summary"]["financial"]["averageRevenuePerTrip"] == 66.67
        assert body["summary"]["trips"]["completionRate"] == 100.0

    def test_inverted_range_is_empty_not_error(self, context):
        criteria = FilterCriteria(date_from="2024-03-01", date_to="2024-01-01")

        report = build_report(_scenario_a(), "overview", criteria, context)

        assert report.summary.trips.total == 0
        assert report.summary.financial.total_revenue == 0
        assert report.summary.financial.success_rate == 0.0
        assert report.period.start_date == "2024-03-01"
        assert all(bucket.trips == 0 for bucket in report.trends.monthly)

    def test_same_snapshot_and_clock_give_identical_output(self, context):
        snapshot = _scenario_a()

        first = build_report(snapshot, "overview", FilterCriteria(), context)
        second = build_report(snapshot, "overview", FilterCriteria(), context)

        assert first.model_dump_json(by_alias=True) == second.model_dump_json(by_alias=True)

    def test_top_performers_truncated(self):
        document = {
            "vehicles": [{"id": f"bus-{n}", "capacity": 10} for n in range(8)],
            "runs": [run(f"run-{n}", vehicleId=f"bus-{n}", date="2024-02-01") for n in range(8)],
            "payments": [payment(f"pay-{n}", n, runId=f"run-{n}") for n in range(8)],
        }
        context = ReportContext(clock=FixedClock(NOW), leaderboard_size=3)

        report = build_report(build_snapshot(**document), "overview", FilterCriteria(), context)

        assert len(report.performance.vehicles) == 8
        assert [row.entity_id for row in report.top_performers.vehicles] == [
            "bus-7",
            "bus-6",
            "bus-5",
        ]


class TestVariants:
    def test_every_variant_builds_on_empty_data(self, context):
        for report_type in REPORT_TYPES:
            report = build_report(build_snapshot(), report_type, FilterCriteria(), context)
            assert report.type == report_type

    def test_financial_breakdown(self, context):
        document = scenario_a_document()
        document["payments"].extend(
            [
                payment("pay-3", 40, runId="run-1", status="refunded", method="cash"),
                payment("sub-1", 25, date="2024-02-01", method="card"),
            ]
        )

        report = build_report(build_snapshot(**document), "financial", FilterCriteria(), context)

        summary = report.summary
        assert summary.total_revenue == 225
        assert summary.refunded_revenue == 40
        assert summary.net_revenue == 185
        assert summary.subscription_revenue == 25
        assert summary.total_trips == 3
        assert summary.success_rate == 75.0
        assert report.breakdown.by_payment_method == {"card": 3, "cash": 1}
        assert [row.entity_id for row in report.breakdown.by_route] == ["route-1"]

    def test_operational_counts(self, context):
        document = scenario_a_document()
        document["runs"][0]["status"] = "cancelled"
        document["reservations"] = [
            {"id": "res-1", "runId": "run-2", "status": "confirmed"},
            {"id": "res-2", "runId": "run-3", "status": "pending"},
        ]
        document["attendance"] = [
            {"id": "a-1", "runId": "run-2", "status": "present"},
        ]

        report = build_report(build_snapshot(**document), "operational", FilterCriteria(), context)

        assert report.summary.trips.cancelled == 1
        assert report.summary.trips.completion_rate == pytest.approx(200 / 3)
        assert report.summary.reservations.confirmation_rate == 50.0
        assert report.summary.attendance.rate == 100.0
        assert report.breakdown.by_vehicle[0].total_reservations == 2

    def test_performance_report_on_time(self, context):
        document = scenario_a_document()
        document["riders"].append({"id": "sup-1", "name": "Sam", "role": "supervisor"})
        for item in document["runs"]:
            item.update(supervisorId="sup-1", scheduledTime="08:00")
        document["runs"][0]["actualStartTime"] = "08:04"
        document["runs"][1]["actualStartTime"] = "08:20"

        report = build_report(build_snapshot(**document), "performance", FilterCriteria(), context)

        assert report.summary.trips.on_time == 1
        assert report.summary.trips.on_time_rate == pytest.approx(100 / 3)
        [supervisor] = report.breakdown.by_supervisor
        assert supervisor.entity_id == "sup-1"
        assert supervisor.on_time_trips == 1

    def test_mixed_offset_run_times_do_not_break_reports(self, context):
        snapshot = build_snapshot(
            runs=[
                run(
                    "run-1",
                    date="2024-02-01",
                    scheduledTime="08:00:00Z",
                    actualStartTime="08:03:00",
                )
            ]
        )

        for report_type in REPORT_TYPES:
            build_report(snapshot, report_type, FilterCriteria(), context)
        report = build_report(snapshot, "overview", FilterCriteria(), context)

        assert report.summary.trips.on_time == 1

    def test_maintenance_report_orders_by_urgency(self, context):
        document = {
            "vehicles": [
                {"id": "bus-ok", "lastMaintenance": days_ago(5)},
                {"id": "bus-late", "lastMaintenance": days_ago(120)},
            ],
            "maintenanceTickets": [
                {"id": "t-1", "vehicleId": "bus-late", "priority": "critical",
                 "estimatedCost": 100, "actualCost": 150, "status": "completed"},
                {"id": "t-2", "vehicleId": "bus-late", "status": "open"},
            ],
        }

        report = build_report(build_snapshot(**document), "maintenance", FilterCriteria(), context)

        assert [row.vehicle_id for row in report.breakdown.by_vehicle] == ["bus-late", "bus-ok"]
        late = report.breakdown.by_vehicle[0]
        assert late.maintenance_count == 2
        assert late.open_maintenance == 1
        assert late.critical_maintenance == 1
        assert report.summary.cost_variance == 50
        assert report.summary.completion_rate == 50.0

    def test_user_report_activity(self, context):
        document = scenario_a_document()
        document["riders"].append({"id": "rider-2", "name": "Idle", "role": "rider"})

        report = build_report(build_snapshot(**document), "user", FilterCriteria(), context)

        assert report.summary.active_riders == 1
        assert [row.rider_id for row in report.breakdown.rider_activity] == ["rider-1", "rider-2"]
        assert report.breakdown.rider_activity[0].total_spent == 200
        assert [row.entity_id for row in report.breakdown.driver_activity] == ["driver-1"]


class TestReportService:
    @pytest.mark.asyncio
    async def test_generate_records_metrics(self, store, settings):
        service = ReportService(store, FixedClock(NOW), settings)
        labels = {"report": "overview", "result": "success"}
        before = REGISTRY.get_sample_value("transit_insights_report_requests_total", labels) or 0

        report = await service.generate("nonsense", FilterCriteria())

        assert report.type == "overview"
        after = REGISTRY.get_sample_value("transit_insights_report_requests_total", labels)
        assert after == before + 1

    @pytest.mark.asyncio
    async def test_slow_report_logs_warning(self, store, settings, caplog):
        service = ReportService(
            store, FixedClock(NOW), settings.model_copy(update={"slow_report_log_ms": -1})
        )

        with caplog.at_level(logging.WARNING, logger="transit_insights.services.reports"):
            await service.generate("user", FilterCriteria())

        assert any("Slow user report" in record.message for record in caplog.records)
