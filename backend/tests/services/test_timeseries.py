from __future__ import annotations

from datetime import datetime, timezone

from transit_insights.core.clock import FixedClock
from transit_insights.services.filters import FilterCriteria, scope_snapshot
from transit_insights.services.timeseries import (
    bucket_observed,
    bucket_trailing,
    month_label,
    trailing_months,
)

from tests.factories import NOW, build_snapshot, scenario_a_document


def test_trailing_months_cross_year_boundary():
    assert trailing_months(datetime(2024, 2, 10, tzinfo=timezone.utc), 4) == [
        "2023-11",
        "2023-12",
        "2024-01",
        "2024-02",
    ]


def test_month_label():
    assert month_label("2024-02") == "Feb 2024"
    assert month_label("2023-12") == "Dec 2023"


def test_trailing_window_is_zero_filled_and_ends_at_current_month():
    filtered = scope_snapshot(build_snapshot(**scenario_a_document()), FilterCriteria())

    buckets = bucket_trailing(filtered, FixedClock(NOW), 12)

    assert len(buckets) == 12
    assert buckets[0].month == "2023-04"
    assert buckets[-1].month == "2024-03"
    by_month = {bucket.month: bucket for bucket in buckets}
    assert by_month["2024-01"].trips == 1
    assert by_month["2024-01"].revenue == 0
    assert by_month["2024-02"].trips == 2
    assert by_month["2024-02"].revenue == 200
    assert by_month["2024-02"].passengers == 40
    assert by_month["2024-03"].trips == 0
    assert by_month["2023-04"].label == "Apr 2023"


def test_records_outside_trailing_window_are_ignored():
    document = scenario_a_document()
    document["runs"][0]["date"] = "2022-01-05"
    filtered = scope_snapshot(build_snapshot(**document), FilterCriteria())

    buckets = bucket_trailing(filtered, FixedClock(NOW), 12)

    assert sum(bucket.trips for bucket in buckets) == 2


def test_observed_mode_only_lists_months_with_data():
    document = scenario_a_document()
    document["reservations"] = [
        {"id": "res-1", "runId": "run-1", "status": "confirmed"},
        {"id": "res-2", "date": "2023-07-01", "status": "pending"},
    ]
    filtered = scope_snapshot(build_snapshot(**document), FilterCriteria())

    buckets = bucket_observed(filtered)

    assert [bucket.month for bucket in buckets] == ["2024-01", "2024-02"]
    assert buckets[0].reservations == 1
