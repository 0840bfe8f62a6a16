"""Job delay API endpoints."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from kitting_scheduler.core.database import get_db
from kitting_scheduler.core.events import JOB_UPDATED, SCENARIO_CHANGED, EventBus, get_event_bus
from kitting_scheduler.models.delay import JobDelay
from kitting_scheduler.models.job import KittingJob
from kitting_scheduler.models.scenario import Scenario, ScenarioChange
from kitting_scheduler.schemas.delay import DelayCreate, DelayResponse

router = APIRouter(tags=["delays"])


async def _publish_delay_event(db: AsyncSession, events: EventBus, delay: JobDelay, action: str) -> None:
    data = {"delay_id": str(delay.id), "job_id": str(delay.job_id), "action": action}
    if delay.scenario_id is None:
        await events.publish_committed(db, JOB_UPDATED, data)
    else:
        await events.publish_committed(db, SCENARIO_CHANGED, {**data, "scenario_id": str(delay.scenario_id)})


@router.get("/jobs/{job_id}/delays", response_model=list[DelayResponse])
async def list_job_delays(
    job_id: uuid.UUID,
    scenario_id: uuid.UUID | None = Query(None, description="Omit for production delays"),
    db: AsyncSession = Depends(get_db),
) -> list[JobDelay]:
    """Delays of a job, in insertion order, for production or for one scenario."""
    query = select(JobDelay).where(JobDelay.job_id == job_id)
    if scenario_id is None:
        query = query.where(JobDelay.scenario_id.is_(None))
    else:
        query = query.where(JobDelay.scenario_id == scenario_id)
    result = await db.execute(query.order_by(JobDelay.insert_after, JobDelay.created_at))
    return list(result.scalars().all())


@router.get("/scenarios/{scenario_id}/delays", response_model=list[DelayResponse])
async def list_scenario_delays(
    scenario_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> list[JobDelay]:
    result = await db.execute(
        select(JobDelay).where(JobDelay.scenario_id == scenario_id).order_by(JobDelay.created_at)
    )
    return list(result.scalars().all())


@router.post("/delays", response_model=DelayResponse, status_code=status.HTTP_201_CREATED)
async def create_delay(
    payload: DelayCreate,
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
) -> JobDelay:
    """Insert a delay into a job's route.

    Scenario delays may target jobs the scenario itself adds; production
    delays must target an existing job.
    """
    job = await db.get(KittingJob, payload.job_id)
    if payload.scenario_id is None:
        if job is None:
            raise HTTPException(status_code=404, detail="Job not found")
    else:
        scenario = await db.get(Scenario, payload.scenario_id)
        if scenario is None:
            raise HTTPException(status_code=404, detail="Scenario not found")
        if job is None:
            added = await db.execute(
                select(ScenarioChange).where(
                    ScenarioChange.id == payload.job_id,
                    ScenarioChange.scenario_id == scenario.id,
                    ScenarioChange.operation == "ADD",
                )
            )
            if added.scalar_one_or_none() is None:
                raise HTTPException(status_code=404, detail="Job not found")

    delay = JobDelay(**payload.model_dump())
    db.add(delay)
    await db.flush()
    await db.refresh(delay)
    await _publish_delay_event(db, events, delay, "delay-added")
    return delay


@router.delete("/delays/{delay_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_delay(
    delay_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
) -> None:
    result = await db.execute(select(JobDelay).where(JobDelay.id == delay_id))
    delay = result.scalar_one_or_none()
    if delay is None:
        raise HTTPException(status_code=404, detail="Delay not found")
    await db.delete(delay)
    await db.flush()
    await _publish_delay_event(db, events, delay, "delay-removed")
