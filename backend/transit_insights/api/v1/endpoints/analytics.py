"""
Analytics endpoints.

Administrative dashboard, fleet-manager and supervisor views and the
revenue dashboard.
"""

from fastapi import APIRouter, Depends

from transit_insights.api.v1.shared.dependencies import (
    get_analytics_service,
    get_report_service,
)
from transit_insights.api.v1.shared.validation import report_criteria
from transit_insights.models.reports import (
    FleetManagerAnalytics,
    OverviewReport,
    RevenueDashboard,
    SupervisorReport,
)
from transit_insights.services.analytics import AnalyticsService
from transit_insights.services.filters import FilterCriteria
from transit_insights.services.reports import ReportService

router = APIRouter()


@router.get("", response_model=OverviewReport, summary="Administrative analytics")
async def get_analytics(
    criteria: FilterCriteria = Depends(report_criteria),
    service: ReportService = Depends(get_report_service),
) -> OverviewReport:
    """Summary, monthly trends and performance tables for every dimension."""
    return await service.generate("overview", criteria)


@router.get(
    "/fleet-manager",
    response_model=FleetManagerAnalytics,
    summary="Fleet manager analytics",
)
async def get_fleet_manager_analytics(
    criteria: FilterCriteria = Depends(report_criteria),
    service: AnalyticsService = Depends(get_analytics_service),
) -> FleetManagerAnalytics:
    return await service.fleet_manager(criteria)


@router.get(
    "/supervisor",
    response_model=SupervisorReport,
    summary="Supervisor report",
    responses={400: {"description": "supervisorId is missing"}},
)
async def get_supervisor_report(
    criteria: FilterCriteria = Depends(report_criteria),
    service: AnalyticsService = Depends(get_analytics_service),
) -> SupervisorReport:
    return await service.supervisor(criteria)


@router.get("/revenue", response_model=RevenueDashboard, summary="Revenue dashboard")
async def get_revenue_dashboard(
    service: AnalyticsService = Depends(get_analytics_service),
) -> RevenueDashboard:
    return await service.revenue()
