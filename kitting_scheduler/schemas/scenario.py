"""Scenario Pydantic schemas."""

import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

ChangeOperationName = Literal["ADD", "MODIFY", "DELETE"]


class ScenarioCreate(BaseModel):
    """Schema for creating a what-if scenario."""

    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    seed_job_id: uuid.UUID | None = Field(
        None, description="Job whose current values are recorded as an initial MODIFY"
    )


class ScenarioChangeCreate(BaseModel):
    """A single ADD / MODIFY / DELETE against a scenario."""

    operation: ChangeOperationName
    job_id: uuid.UUID | None = None
    change_data: dict[str, Any] = Field(default_factory=dict)
    original_data: dict[str, Any] | None = None

    @model_validator(mode="after")
    def check_job_reference(self) -> "ScenarioChangeCreate":
        if self.operation == "ADD" and self.job_id is not None:
            raise ValueError("ADD changes must not reference an existing job")
        if self.operation != "ADD" and self.job_id is None:
            raise ValueError(f"{self.operation} changes require job_id")
        return self


class ScenarioChangeResponse(BaseModel):
    id: uuid.UUID
    scenario_id: uuid.UUID
    job_id: uuid.UUID | None
    operation: str
    change_data: dict[str, Any]
    original_data: dict[str, Any] | None
    created_at: datetime

    model_config = {"from_attributes": True}


class ScenarioResponse(BaseModel):
    """Schema for scenario responses."""

    id: uuid.UUID
    name: str
    description: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime
    changes: list[ScenarioChangeResponse] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class OverlayResponse(BaseModel):
    """A scenario's view of the job set."""

    scenario_id: uuid.UUID
    scenario_name: str
    jobs: list[dict[str, Any]] = Field(default_factory=list)
    changed_jobs: int = 0


class CommitResult(BaseModel):
    scenario_id: uuid.UUID
    added: int = 0
    modified: int = 0
    deleted: int = 0
