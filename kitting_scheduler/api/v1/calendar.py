"""Calendar API endpoints: production view, scenario overlays and segment moves."""

import uuid
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from kitting_scheduler.core.database import get_db
from kitting_scheduler.core.events import JOB_UPDATED, SCENARIO_CHANGED, EventBus, get_event_bus
from kitting_scheduler.schemas.calendar import CalendarResponse, SegmentMove, SegmentMoveResult
from kitting_scheduler.schemas.job import JobStatus
from kitting_scheduler.services.calendar_service import CalendarError, CalendarService
from kitting_scheduler.services.job_durations import JobDurationError
from kitting_scheduler.services.scenario_engine import ScenarioError
from kitting_scheduler.services.shift_calendar import ShiftConfigurationError

router = APIRouter(prefix="/calendar", tags=["calendar"])


@router.get("", response_model=CalendarResponse)
async def get_production_calendar(
    start: date | None = Query(None, description="First day of the visible range"),
    end: date | None = Query(None, description="Last day of the visible range"),
    status_filter: JobStatus | None = Query(None, alias="status"),
    search: str | None = Query(None, max_length=200),
    db: AsyncSession = Depends(get_db),
) -> CalendarResponse:
    """Production jobs overlapping ``[start, end]`` with their per-day segments.

    Jobs that cannot be placed (for example, restricted to shifts without
    productive time) are left out and reported in ``warnings``.
    """
    if start is not None and end is not None and end < start:
        raise HTTPException(status_code=422, detail="end must not be before start")
    try:
        entries, warnings = await CalendarService(db).production_calendar(start, end, status_filter, search)
    except ShiftConfigurationError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return CalendarResponse(entries=entries, warnings=warnings)


@router.get("/scenarios", response_model=CalendarResponse)
async def get_scenario_calendar(
    ids: list[uuid.UUID] = Query(..., description="Scenarios to overlay"),
    db: AsyncSession = Depends(get_db),
) -> CalendarResponse:
    """Entries for the jobs each listed scenario adds, modifies or deletes."""
    try:
        entries, warnings = await CalendarService(db).scenario_calendar(ids)
    except ScenarioError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except (ShiftConfigurationError, JobDurationError) as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return CalendarResponse(entries=entries, warnings=warnings)


@router.post("/segments/{segment_id}/move", response_model=SegmentMoveResult)
async def move_segment(
    segment_id: str,
    payload: SegmentMove,
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
) -> SegmentMoveResult:
    """Move the whole job a dragged segment belongs to.

    In what-if mode the move is recorded on the active scenario instead of
    changing production.
    """
    try:
        job_id, scenario_id = await CalendarService(db).move_segment(
            segment_id, payload.scheduled_date, payload.scheduled_start_time
        )
    except (CalendarError, ScenarioError) as exc:
        raise HTTPException(status_code=404, detail=str(exc))

    if scenario_id is None:
        await events.publish_committed(db, JOB_UPDATED, {"job_id": job_id, "action": "moved"})
    else:
        await events.publish_committed(
            db,
            SCENARIO_CHANGED,
            {"scenario_id": str(scenario_id), "job_id": job_id, "operation": "MODIFY"},
        )
    return SegmentMoveResult(
        job_id=job_id,
        scenario_id=scenario_id,
        scheduled_date=payload.scheduled_date,
        scheduled_start_time=payload.scheduled_start_time,
    )
