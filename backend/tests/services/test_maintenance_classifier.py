from __future__ import annotations

from datetime import datetime, timezone

import pytest

from transit_insights.models.maintenance import ScheduleEntry
from transit_insights.services.maintenance import (
    classify,
    days_since,
    days_until,
    format_timestamp,
    parse_instant,
    prioritize,
)

from tests.factories import NOW, days_ago


@pytest.mark.parametrize(
    ("days", "expected"),
    [
        (None, ("up_to_date", "low")),
        (0, ("up_to_date", "low")),
        (30, ("up_to_date", "low")),
        (31, ("approaching", "medium")),
        (60, ("approaching", "medium")),
        (61, ("due_soon", "high")),
        (90, ("due_soon", "high")),
        (91, ("overdue", "critical")),
        (400, ("overdue", "critical")),
    ],
)
def test_classify_thresholds(days, expected):
    assert classify(days) == expected


def test_days_since_floors_partial_days():
    assert days_since(days_ago(91), NOW) == 91
    assert days_since("2024-03-14T13:00:00Z", NOW) == 0
    assert days_since(None, NOW) is None
    assert days_since("soon", NOW) is None


def test_days_until_can_be_negative():
    assert days_until("2024-03-25", NOW) == 9
    assert days_until("2024-03-01", NOW) == -15


def test_parse_instant_treats_naive_as_utc():
    assert parse_instant("2024-03-01") == datetime(2024, 3, 1, tzinfo=timezone.utc)


def test_format_timestamp_uses_millis_and_z_suffix():
    assert format_timestamp(NOW) == "2024-03-15T12:00:00.000Z"


def test_prioritize_orders_by_priority_then_status_stably():
    entries = [
        ScheduleEntry(vehicle_id="v-low", maintenance_status="up_to_date", maintenance_priority="low"),
        ScheduleEntry(vehicle_id="v-crit-1", maintenance_status="overdue", maintenance_priority="critical"),
        ScheduleEntry(vehicle_id="v-med", maintenance_status="approaching", maintenance_priority="medium"),
        ScheduleEntry(vehicle_id="v-crit-2", maintenance_status="overdue", maintenance_priority="critical"),
        ScheduleEntry(vehicle_id="v-high", maintenance_status="due_soon", maintenance_priority="high"),
    ]

    ordered = [entry.vehicle_id for entry in prioritize(entries)]

    assert ordered == ["v-crit-1", "v-crit-2", "v-high", "v-med", "v-low"]
