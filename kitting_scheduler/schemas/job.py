"""KittingJob and RouteStep Pydantic schemas."""

import uuid
from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field

from kitting_scheduler.core.config import settings

JobStatus = Literal["scheduled", "in_progress", "paused", "completed"]

CLOCK_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class RouteStepIn(BaseModel):
    """One step of a job's route as submitted by clients."""

    name: str = Field(..., min_length=1, max_length=200)
    expected_seconds: int = Field(..., gt=0)
    order: int | None = Field(None, ge=0)


class RouteStepResponse(BaseModel):
    id: uuid.UUID
    name: str
    expected_seconds: int
    order: int

    model_config = {"from_attributes": True}


class JobCreate(BaseModel):
    """Schema for creating a kitting job.

    Expected kit and job durations are derived server-side and are rejected
    if supplied.
    """

    job_number: str = Field(..., min_length=1, max_length=50)
    customer_name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    due_date: date | None = None
    customer_spec: str | None = None
    run_length: str | None = Field(None, max_length=50)
    status: JobStatus = "scheduled"
    ordered_quantity: int = Field(..., ge=1)
    route_steps: list[RouteStepIn] = Field(..., min_length=1)
    setup: int = Field(default=0, ge=0)
    make_ready: int = Field(default=0, ge=0)
    take_down: int = Field(default=0, ge=0)
    station_count: int = Field(default=1, ge=1, le=settings.MAX_STATION_COUNT)
    scheduled_date: date | None = None
    scheduled_start_time: str | None = Field(None, pattern=CLOCK_PATTERN)
    allowed_shift_ids: list[uuid.UUID] = Field(default_factory=list)
    include_weekends: bool = False

    model_config = {"extra": "forbid"}


class JobUpdate(BaseModel):
    """Partial update of a kitting job; also the shape of a scenario MODIFY patch."""

    job_number: str | None = Field(None, min_length=1, max_length=50)
    customer_name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    due_date: date | None = None
    customer_spec: str | None = None
    run_length: str | None = Field(None, max_length=50)
    status: JobStatus | None = None
    ordered_quantity: int | None = Field(None, ge=1)
    route_steps: list[RouteStepIn] | None = Field(None, min_length=1)
    setup: int | None = Field(None, ge=0)
    make_ready: int | None = Field(None, ge=0)
    take_down: int | None = Field(None, ge=0)
    station_count: int | None = Field(None, ge=1, le=settings.MAX_STATION_COUNT)
    scheduled_date: date | None = None
    scheduled_start_time: str | None = Field(None, pattern=CLOCK_PATTERN)
    allowed_shift_ids: list[uuid.UUID] | None = None
    include_weekends: bool | None = None

    model_config = {"extra": "forbid"}


class StationCountUpdate(BaseModel):
    station_count: int = Field(..., ge=1, le=settings.MAX_STATION_COUNT)


class StaffingEstimate(BaseModel):
    kitters: int
    runners: int
    total: int


class JobResponse(BaseModel):
    """Schema for kitting job responses."""

    id: uuid.UUID
    job_number: str
    customer_name: str
    description: str | None
    due_date: date | None
    customer_spec: str | None
    run_length: str | None
    status: str
    ordered_quantity: int
    route_steps: list[RouteStepResponse] = Field(default_factory=list)
    setup: int
    make_ready: int
    take_down: int
    station_count: int
    scheduled_date: date | None
    scheduled_start_time: str | None
    allowed_shift_ids: list[uuid.UUID] = Field(default_factory=list)
    include_weekends: bool
    expected_kit_duration: int
    expected_job_duration: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class JobStationsResponse(BaseModel):
    job: JobResponse
    staffing: StaffingEstimate
