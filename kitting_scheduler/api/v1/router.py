"""API v1 router aggregating all sub-routers."""

from fastapi import APIRouter

from kitting_scheduler.api.v1.calendar import router as calendar_router
from kitting_scheduler.api.v1.delays import router as delays_router
from kitting_scheduler.api.v1.events import router as events_router
from kitting_scheduler.api.v1.jobs import router as jobs_router
from kitting_scheduler.api.v1.scenarios import router as scenarios_router
from kitting_scheduler.api.v1.shifts import router as shifts_router

api_v1_router = APIRouter()


@api_v1_router.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint returning 200 OK."""
    return {"status": "ok"}


api_v1_router.include_router(shifts_router)
api_v1_router.include_router(jobs_router)
api_v1_router.include_router(delays_router)
api_v1_router.include_router(scenarios_router)
api_v1_router.include_router(calendar_router)
api_v1_router.include_router(events_router)
