"""Shift Pydantic schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field, computed_field, model_validator

from kitting_scheduler.schemas.job import CLOCK_PATTERN
from kitting_scheduler.services.shift_calendar import ShiftSpec, productive_hours as shift_productive_hours


class ShiftCreate(BaseModel):
    """Schema for creating a shift. An end time at or before the start runs overnight."""

    name: str = Field(..., min_length=1, max_length=100)
    start_time: str = Field(..., pattern=CLOCK_PATTERN)
    end_time: str = Field(..., pattern=CLOCK_PATTERN)
    break_start: str | None = Field(None, pattern=CLOCK_PATTERN)
    break_duration: int | None = Field(None, ge=0, le=24 * 60)
    is_active: bool = True
    order: int = Field(default=0, ge=0)
    color: str | None = Field(None, max_length=20)

    @model_validator(mode="after")
    def check_break(self) -> "ShiftCreate":
        if self.break_duration and not self.break_start:
            raise ValueError("break_duration requires break_start")
        return self


class ShiftUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    start_time: str | None = Field(None, pattern=CLOCK_PATTERN)
    end_time: str | None = Field(None, pattern=CLOCK_PATTERN)
    break_start: str | None = Field(None, pattern=CLOCK_PATTERN)
    break_duration: int | None = Field(None, ge=0, le=24 * 60)
    is_active: bool | None = None
    order: int | None = Field(None, ge=0)
    color: str | None = Field(None, max_length=20)


class ShiftToggle(BaseModel):
    is_active: bool


class ShiftResponse(BaseModel):
    """Schema for shift responses."""

    id: uuid.UUID
    name: str
    start_time: str
    end_time: str
    break_start: str | None
    break_duration: int | None
    is_active: bool
    order: int
    color: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def productive_hours(self) -> float:
        """Shift span minus break, in hours."""
        spec = ShiftSpec.build(
            self.id, self.name, self.start_time, self.end_time, self.break_start, self.break_duration
        )
        return shift_productive_hours(spec)
