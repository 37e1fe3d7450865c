from fastapi import APIRouter

from transit_insights.api.v1.endpoints.analytics import router as analytics_router
from transit_insights.api.v1.endpoints.fleet import router as fleet_router
from transit_insights.api.v1.endpoints.health import router as health_router
from transit_insights.api.v1.endpoints.maintenance import router as maintenance_router
from transit_insights.api.v1.endpoints.reports import router as reports_router

router = APIRouter()
router.include_router(health_router, tags=["meta"])
router.include_router(reports_router, prefix="/reports", tags=["reports"])
router.include_router(analytics_router, prefix="/analytics", tags=["analytics"])
router.include_router(fleet_router, prefix="/fleet", tags=["fleet"])
router.include_router(maintenance_router, prefix="/maintenance", tags=["maintenance"])
