"""Shared helpers for writing KittingJob rows.

Every write path (the jobs API, scenario commit, segment moves) goes
through these so the derived durations are always recomputed server-side.
"""

import uuid
from typing import Any

from kitting_scheduler.models.job import KittingJob, RouteStep
from kitting_scheduler.schemas.job import JobCreate, JobUpdate, RouteStepIn
from kitting_scheduler.services.job_durations import recalculate_durations

SNAPSHOT_FIELDS = (
    "job_number",
    "customer_name",
    "description",
    "status",
    "ordered_quantity",
    "setup",
    "make_ready",
    "take_down",
    "station_count",
    "scheduled_start_time",
    "include_weekends",
)

NON_NULLABLE_FIELDS = frozenset(
    {
        "job_number",
        "customer_name",
        "status",
        "ordered_quantity",
        "setup",
        "make_ready",
        "take_down",
        "station_count",
        "include_weekends",
    }
)


def build_route_steps(steps: list[RouteStepIn]) -> list[RouteStep]:
    """Route steps in submitted order, renumbered 1..n when orders are missing."""
    ordered = sorted(
        enumerate(steps), key=lambda pair: (pair[1].order if pair[1].order is not None else pair[0], pair[0])
    )
    return [
        RouteStep(name=step.name, expected_seconds=step.expected_seconds, order=position)
        for position, (_, step) in enumerate(ordered, start=1)
    ]


def build_job(payload: JobCreate, job_id: uuid.UUID | None = None) -> KittingJob:
    data = payload.model_dump(exclude={"route_steps"})
    job = KittingJob(**data)
    if job_id is not None:
        job.id = job_id
    job.route_steps = build_route_steps(payload.route_steps)
    return recalculate_durations(job)


def apply_job_update(job: KittingJob, payload: JobUpdate) -> KittingJob:
    """Apply the fields set on ``payload`` and recompute durations."""
    data = payload.model_dump(exclude_unset=True, exclude={"route_steps"})
    for field_name, value in data.items():
        if value is None and field_name in NON_NULLABLE_FIELDS:
            continue
        setattr(job, field_name, value)
    if payload.route_steps is not None:
        job.route_steps = build_route_steps(payload.route_steps)
    return recalculate_durations(job)


def job_original_data(job: KittingJob) -> dict[str, Any]:
    """JSON-safe copy of a job's editable values, recorded alongside scenario changes."""
    data: dict[str, Any] = {name: getattr(job, name) for name in SNAPSHOT_FIELDS}
    data["due_date"] = job.due_date.isoformat() if job.due_date else None
    data["scheduled_date"] = job.scheduled_date.isoformat() if job.scheduled_date else None
    data["allowed_shift_ids"] = [str(shift_id) for shift_id in job.allowed_shift_ids or []]
    data["route_steps"] = [
        {"name": step.name, "expected_seconds": step.expected_seconds, "order": step.order}
        for step in job.route_steps
    ]
    return data
