"""
Report endpoint.

Serves the fixed set of report variants over the scoped record snapshot.
"""

import logging
import time
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response

from transit_insights.api.v1.shared.dependencies import get_report_service
from transit_insights.api.v1.shared.validation import report_criteria
from transit_insights.models.reports import ReportResponse
from transit_insights.services.filters import FilterCriteria
from transit_insights.services.reports import ReportService

logger = logging.getLogger(__name__)

router = APIRouter()


def append_server_timing(
    response: Response, *, name: str, duration_ms: float, description: str | None = None
) -> None:
    existing = response.headers.get("Server-Timing")
    desc = f';desc="{description}"' if description else ""
    entry = f"{name};dur={duration_ms:.2f}{desc}"
    response.headers["Server-Timing"] = f"{existing}, {entry}" if existing else entry


@router.get(
    "",
    response_model=ReportResponse,
    summary="Generate a report",
    description=(
        "Builds one of the overview, financial, operational, performance, "
        "maintenance or user reports. Unknown or missing types fall back to "
        "the overview report."
    ),
)
async def get_report(
    response: Response,
    report_type: Annotated[
        str | None,
        Query(alias="type", description="Report variant; defaults to overview."),
    ] = None,
    criteria: FilterCriteria = Depends(report_criteria),
    service: ReportService = Depends(get_report_service),
):
    started = time.monotonic()
    report = await service.generate(report_type, criteria)
    append_server_timing(
        response,
        name="report",
        duration_ms=(time.monotonic() - started) * 1000,
        description=report.type,
    )
    return report
