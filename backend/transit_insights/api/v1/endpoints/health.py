from fastapi import APIRouter, Depends, Response, status

from transit_insights.persistence.dependencies import get_record_store
from transit_insights.persistence.store import RecordStore

router = APIRouter()


@router.get("/health")
async def healthcheck() -> dict[str, str]:
    """Lightweight liveness probe."""
    return {"status": "ok"}


@router.get("/health/ready")
async def readiness(
    response: Response,
    store: RecordStore = Depends(get_record_store),
) -> dict[str, str]:
    """Readiness probe; fails while the record store cannot be read."""
    if await store.ping():
        return {"status": "ok", "store": "ok"}
    response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return {"status": "degraded", "store": "unavailable"}
