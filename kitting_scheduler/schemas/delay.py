"""JobDelay Pydantic schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class DelayCreate(BaseModel):
    """Schema for creating a delay. ``scenario_id`` None makes it a production delay."""

    job_id: uuid.UUID
    scenario_id: uuid.UUID | None = None
    name: str = Field(..., min_length=1, max_length=200)
    duration: int = Field(..., gt=0, description="Delay length in seconds")
    insert_after: int = Field(
        default=0, ge=0, description="Route step position the delay follows; 0 = before the first step"
    )


class DelayResponse(BaseModel):
    id: uuid.UUID
    job_id: uuid.UUID
    scenario_id: uuid.UUID | None
    name: str
    duration: int
    insert_after: int
    created_at: datetime

    model_config = {"from_attributes": True}
