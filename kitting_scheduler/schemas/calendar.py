"""Calendar Pydantic schemas."""

import uuid
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field

from kitting_scheduler.schemas.job import CLOCK_PATTERN


class DaySegmentResponse(BaseModel):
    segment_id: str
    job_id: str
    day_index: int
    date: date
    display_start: str
    display_end: str
    work_seconds: float
    is_first_day: bool
    is_last_day: bool

    model_config = {"from_attributes": True}


class CalendarEntry(BaseModel):
    """One job placed on the calendar, with its per-day segments."""

    job_id: str
    job_number: str
    customer_name: str
    status: str
    start: datetime
    end: datetime
    expected_job_duration: int
    segments: list[DaySegmentResponse] = Field(default_factory=list)
    scenario: dict[str, Any] | None = None


class CalendarResponse(BaseModel):
    entries: list[CalendarEntry] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class JobScheduleResponse(BaseModel):
    job_id: str
    start: datetime | None
    end: datetime | None
    segments: list[DaySegmentResponse] = Field(default_factory=list)
    duration: str


class SegmentMove(BaseModel):
    """Drop target of a dragged segment. The whole job moves."""

    scheduled_date: date
    scheduled_start_time: str = Field(..., pattern=CLOCK_PATTERN)


class SegmentMoveResult(BaseModel):
    job_id: str
    scenario_id: uuid.UUID | None = None
    scheduled_date: date
    scheduled_start_time: str
