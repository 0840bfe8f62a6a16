"""Kitting job CRUD and per-job schedule endpoints."""

import uuid
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from kitting_scheduler.core.database import get_db
from kitting_scheduler.core.events import JOB_UPDATED, EventBus, get_event_bus
from kitting_scheduler.models.delay import JobDelay
from kitting_scheduler.models.job import KittingJob
from kitting_scheduler.schemas.calendar import JobScheduleResponse
from kitting_scheduler.schemas.job import (
    JobCreate,
    JobResponse,
    JobStationsResponse,
    JobStatus,
    JobUpdate,
    StaffingEstimate,
    StationCountUpdate,
)
from kitting_scheduler.services.calendar_service import CalendarService
from kitting_scheduler.services.job_durations import (
    JobDurationError,
    estimate_staffing,
    format_duration,
    recalculate_durations,
)
from kitting_scheduler.services.job_records import apply_job_update, build_job
from kitting_scheduler.services.shift_calendar import ShiftConfigurationError

router = APIRouter(prefix="/jobs", tags=["jobs"])


async def _get_job(db: AsyncSession, job_id: uuid.UUID) -> KittingJob:
    result = await db.execute(select(KittingJob).where(KittingJob.id == job_id))
    job = result.scalar_one_or_none()
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


@router.get("", response_model=list[JobResponse])
async def list_jobs(
    status_filter: JobStatus | None = Query(None, alias="status"),
    search: str | None = Query(None, max_length=200),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
) -> list[KittingJob]:
    """List jobs, optionally filtered by status and a free-text search."""
    query = select(KittingJob)
    if status_filter is not None:
        query = query.where(KittingJob.status == status_filter)
    if search:
        pattern = f"%{search}%"
        query = query.where(
            or_(
                KittingJob.job_number.ilike(pattern),
                KittingJob.customer_name.ilike(pattern),
                KittingJob.description.ilike(pattern),
            )
        )
    query = query.order_by(KittingJob.scheduled_date, KittingJob.job_number).offset(skip).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


@router.post("", response_model=JobResponse, status_code=status.HTTP_201_CREATED)
async def create_job(
    payload: JobCreate,
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
) -> KittingJob:
    """Create a job. Expected kit and job durations are computed here."""
    try:
        job = build_job(payload)
    except JobDurationError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    db.add(job)
    await db.flush()
    await db.refresh(job)
    await events.publish_committed(db, JOB_UPDATED, {"job_id": str(job.id), "action": "created"})
    return job


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> KittingJob:
    return await _get_job(db, job_id)


@router.put("/{job_id}", response_model=JobResponse)
async def update_job(
    job_id: uuid.UUID,
    payload: JobUpdate,
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
) -> KittingJob:
    """Update a job in production and recompute its durations."""
    job = await _get_job(db, job_id)
    try:
        apply_job_update(job, payload)
    except JobDurationError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    await db.flush()
    await db.refresh(job)
    await events.publish_committed(db, JOB_UPDATED, {"job_id": str(job.id), "action": "updated"})
    return job


@router.patch("/{job_id}/stations", response_model=JobStationsResponse)
async def update_station_count(
    job_id: uuid.UUID,
    payload: StationCountUpdate,
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
) -> JobStationsResponse:
    """Change how many stations a job runs on; the job duration scales accordingly."""
    job = await _get_job(db, job_id)
    job.station_count = payload.station_count
    recalculate_durations(job)
    await db.flush()
    await db.refresh(job)
    await events.publish_committed(
        db,
        JOB_UPDATED,
        {"job_id": str(job.id), "action": "stations", "station_count": job.station_count},
    )
    return JobStationsResponse(
        job=JobResponse.model_validate(job),
        staffing=StaffingEstimate(**estimate_staffing(job.station_count)),
    )


@router.delete("/{job_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_job(
    job_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
) -> None:
    """Delete a job together with its delays."""
    job = await _get_job(db, job_id)
    await db.execute(delete(JobDelay).where(JobDelay.job_id == job.id))
    await db.delete(job)
    await db.flush()
    await events.publish_committed(db, JOB_UPDATED, {"job_id": str(job_id), "action": "deleted"})


@router.get("/{job_id}/schedule", response_model=JobScheduleResponse)
async def get_job_schedule(
    job_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> JobScheduleResponse:
    """Derived start, completion and per-day segments of a job, production delays included."""
    job = await _get_job(db, job_id)
    try:
        schedule = await CalendarService(db).job_schedule(job)
    except ShiftConfigurationError as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    if schedule is None:
        return JobScheduleResponse(
            job_id=str(job.id), start=None, end=None, duration=format_duration(job.expected_job_duration)
        )
    return JobScheduleResponse(
        job_id=str(job.id),
        start=schedule.start,
        end=schedule.end,
        segments=[asdict(segment) for segment in schedule.segments],
        duration=format_duration(schedule.job.expected_job_duration),
    )
