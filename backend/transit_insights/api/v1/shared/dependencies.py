"""
Shared dependency injection functions for API endpoints.
"""

from fastapi import Depends

from transit_insights.core.clock import Clock, get_clock
from transit_insights.core.config import Settings, get_settings
from transit_insights.persistence.dependencies import get_record_store
from transit_insights.persistence.store import RecordStore
from transit_insights.services.analytics import AnalyticsService
from transit_insights.services.maintenance import MaintenanceScheduleService
from transit_insights.services.reports import ReportService


def get_report_service(
    store: RecordStore = Depends(get_record_store),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_settings),
) -> ReportService:
    """Create ReportService with dependencies."""
    return ReportService(store, clock, settings)


def get_analytics_service(
    reports: ReportService = Depends(get_report_service),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_settings),
) -> AnalyticsService:
    return AnalyticsService(reports, clock, settings)


def get_maintenance_service(
    store: RecordStore = Depends(get_record_store),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_settings),
) -> MaintenanceScheduleService:
    return MaintenanceScheduleService(store, clock, settings)
