from __future__ import annotations

from prometheus_client import REGISTRY

from transit_insights.core.metrics import observe_report, observe_store_operation


def _sample(name: str, labels: dict[str, str]) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


def test_observe_report_increments_counter_and_histogram():
    labels = {"report": "financial", "result": "success"}
    before = _sample("transit_insights_report_requests_total", labels)
    count_before = _sample("transit_insights_report_seconds_count", {"report": "financial"})

    observe_report("financial", "success", 0.02)

    assert _sample("transit_insights_report_requests_total", labels) == before + 1
    assert (
        _sample("transit_insights_report_seconds_count", {"report": "financial"})
        == count_before + 1
    )


def test_observe_store_operation_records_result_label():
    labels = {"operation": "write", "result": "error"}
    before = _sample("transit_insights_store_operations_total", labels)

    observe_store_operation("write", "error", 0.001)

    assert _sample("transit_insights_store_operations_total", labels) == before + 1
