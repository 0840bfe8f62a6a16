"""Shift CRUD API endpoints."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from kitting_scheduler.core.database import get_db
from kitting_scheduler.core.events import SHIFT_UPDATED, EventBus, get_event_bus
from kitting_scheduler.models.job import KittingJob
from kitting_scheduler.models.shift import Shift
from kitting_scheduler.schemas.shift import ShiftCreate, ShiftResponse, ShiftToggle, ShiftUpdate
from kitting_scheduler.services.shift_calendar import ShiftConfigurationError, ShiftSpec

router = APIRouter(prefix="/shifts", tags=["shifts"])


def _validated(shift: Shift) -> ShiftSpec:
    try:
        return ShiftSpec.from_model(shift)
    except ShiftConfigurationError as exc:
        raise HTTPException(status_code=422, detail=str(exc))


async def _get_shift(db: AsyncSession, shift_id: uuid.UUID) -> Shift:
    result = await db.execute(select(Shift).where(Shift.id == shift_id))
    shift = result.scalar_one_or_none()
    if shift is None:
        raise HTTPException(status_code=404, detail="Shift not found")
    return shift


async def _affected_job_ids(db: AsyncSession, shift_id: uuid.UUID) -> list[str]:
    """Jobs whose schedule depends on ``shift_id``: those restricted to it and those using all shifts."""
    result = await db.execute(
        select(KittingJob.id, KittingJob.allowed_shift_ids).where(KittingJob.scheduled_date.is_not(None))
    )
    return [
        str(job_id)
        for job_id, allowed in result.all()
        if not allowed or shift_id in allowed
    ]


@router.get("", response_model=list[ShiftResponse])
async def list_shifts(
    active_only: bool = Query(False),
    db: AsyncSession = Depends(get_db),
) -> list[Shift]:
    """List shifts in display order."""
    query = select(Shift)
    if active_only:
        query = query.where(Shift.is_active.is_(True))
    result = await db.execute(query.order_by(Shift.order))
    return list(result.scalars().all())


@router.post("", response_model=ShiftResponse, status_code=status.HTTP_201_CREATED)
async def create_shift(
    payload: ShiftCreate,
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
) -> Shift:
    """Create a shift. A break longer than the shift is rejected."""
    shift = Shift(**payload.model_dump())
    _validated(shift)
    db.add(shift)
    await db.flush()
    await db.refresh(shift)
    await events.publish_committed(db, SHIFT_UPDATED, {"shift_id": str(shift.id), "affected_job_ids": []})
    return shift


@router.get("/{shift_id}", response_model=ShiftResponse)
async def get_shift(
    shift_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> Shift:
    return await _get_shift(db, shift_id)


@router.put("/{shift_id}", response_model=ShiftResponse)
async def update_shift(
    shift_id: uuid.UUID,
    payload: ShiftUpdate,
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
) -> Shift:
    """Update a shift. Schedules of dependent jobs are re-derived on their next read."""
    shift = await _get_shift(db, shift_id)
    for field_name, value in payload.model_dump(exclude_unset=True).items():
        setattr(shift, field_name, value)
    _validated(shift)

    await db.flush()
    await db.refresh(shift)
    affected = await _affected_job_ids(db, shift.id)
    await events.publish_committed(db, SHIFT_UPDATED, {"shift_id": str(shift.id), "affected_job_ids": affected})
    return shift


@router.patch("/{shift_id}", response_model=ShiftResponse)
async def toggle_shift(
    shift_id: uuid.UUID,
    payload: ShiftToggle,
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
) -> Shift:
    """Activate or deactivate a shift."""
    shift = await _get_shift(db, shift_id)
    shift.is_active = payload.is_active
    await db.flush()
    await db.refresh(shift)

    affected = await _affected_job_ids(db, shift.id)
    await events.publish_committed(
        db,
        SHIFT_UPDATED,
        {"shift_id": str(shift.id), "is_active": shift.is_active, "affected_job_ids": affected},
    )
    return shift


@router.delete("/{shift_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_shift(
    shift_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
) -> None:
    shift = await _get_shift(db, shift_id)
    affected = await _affected_job_ids(db, shift.id)
    await db.delete(shift)
    await db.flush()
    await events.publish_committed(
        db, SHIFT_UPDATED, {"shift_id": str(shift_id), "deleted": True, "affected_job_ids": affected}
    )
