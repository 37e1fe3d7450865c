from typing import Annotated

from fastapi import APIRouter, Depends, Query

from transit_insights.api.v1.shared.dependencies import get_analytics_service
from transit_insights.models.fleet import FleetView
from transit_insights.services.analytics import AnalyticsService

router = APIRouter()


@router.get("", response_model=FleetView, summary="Fleet overview")
async def get_fleet(
    status: Annotated[
        str | None, Query(description="Only vehicles with this status.")
    ] = None,
    vehicle_type: Annotated[
        str | None, Query(alias="vehicleType", description="Only vehicles of this type.")
    ] = None,
    service: AnalyticsService = Depends(get_analytics_service),
) -> FleetView:
    """Every vehicle with performance, service due state and recent runs."""
    return await service.fleet(status or None, vehicle_type or None)
