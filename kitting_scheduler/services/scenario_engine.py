"""Scenario overlay and commit planning.

A scenario is an ordered list of ADD / MODIFY / DELETE changes over the
production job set. The overlay replays those changes on snapshots of the
production jobs and annotates every job a scenario touched; nothing here
persists anything, so computing an overlay twice on the same inputs gives
the same result.
"""

import enum
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from kitting_scheduler.schemas.job import JobCreate, JobUpdate
from kitting_scheduler.services.delay_injection import DelaySpec, apply_delays
from kitting_scheduler.services.job_snapshot import JobSnapshot

logger = logging.getLogger(__name__)


class ScenarioError(Exception):
    """Base error for scenario operations."""


class ScenarioNotFoundError(ScenarioError):
    pass


class ScenarioCommitError(ScenarioError):
    """Raised when a scenario's changes cannot be applied to production."""


class ChangeOperation(str, enum.Enum):
    ADD = "ADD"
    MODIFY = "MODIFY"
    DELETE = "DELETE"


@dataclass(frozen=True)
class ScenarioChangeSpec:
    id: str
    operation: ChangeOperation
    job_id: str | None = None
    change_data: dict[str, Any] = field(default_factory=dict)
    original_data: dict[str, Any] | None = None

    @classmethod
    def from_model(cls, change: Any) -> "ScenarioChangeSpec":
        return cls(
            id=str(change.id),
            operation=ChangeOperation(change.operation),
            job_id=str(change.job_id) if change.job_id is not None else None,
            change_data=dict(change.change_data or {}),
            original_data=dict(change.original_data) if change.original_data else None,
        )


@dataclass(frozen=True)
class ScenarioSnapshot:
    id: str
    name: str
    changes: tuple[ScenarioChangeSpec, ...] = ()
    description: str | None = None
    is_active: bool = False

    @classmethod
    def from_model(cls, scenario: Any) -> "ScenarioSnapshot":
        return cls(
            id=str(scenario.id),
            name=scenario.name,
            description=scenario.description,
            is_active=scenario.is_active,
            changes=tuple(ScenarioChangeSpec.from_model(change) for change in scenario.changes),
        )


@dataclass(frozen=True)
class OverlayAnnotation:
    scenario_id: str
    scenario_name: str
    operation: ChangeOperation
    deleted: bool = False


@dataclass(frozen=True)
class OverlayJob:
    """A job as seen through a scenario; ``annotation`` is None for untouched jobs."""

    base: JobSnapshot
    annotation: OverlayAnnotation | None = None

    @property
    def id(self) -> str:
        return self.base.id

    @property
    def is_deleted(self) -> bool:
        return self.annotation is not None and self.annotation.deleted

    def to_dict(self) -> dict[str, Any]:
        data = self.base.to_dict()
        if self.annotation is None:
            data["scenario"] = None
        else:
            data["scenario"] = {
                "scenario_id": self.annotation.scenario_id,
                "scenario_name": self.annotation.scenario_name,
                "operation": self.annotation.operation.value,
                "deleted": self.annotation.deleted,
            }
        return data


def merge_change_data(existing: dict[str, Any] | None, incoming: dict[str, Any] | None) -> dict[str, Any]:
    """Shallow merge of two MODIFY patches; keys in ``incoming`` win."""
    merged = dict(existing or {})
    merged.update(incoming or {})
    return merged


def compute_overlay(
    jobs: Iterable[JobSnapshot],
    scenario: ScenarioSnapshot,
    delays: Iterable[DelaySpec] = (),
) -> list[OverlayJob]:
    """Replay ``scenario``'s changes over ``jobs`` and inject delays.

    ADD appends a synthetic job whose id is the change id, MODIFY patches a
    job (recomputing its durations) and DELETE only marks a job deleted, so
    the calendar can still show what would disappear. Production delays and
    delays of this scenario are injected after the replay.
    """
    overlay: list[OverlayJob] = [OverlayJob(base=job) for job in jobs]
    positions = {item.id: index for index, item in enumerate(overlay)}

    for change in scenario.changes:
        if change.operation is ChangeOperation.ADD:
            try:
                job = JobSnapshot.from_payload(change.id, change.change_data)
            except (ValueError, TypeError) as exc:
                logger.warning("Scenario %s change %s has an invalid ADD payload, skipping: %s", scenario.id, change.id, exc)
                continue
            annotation = OverlayAnnotation(scenario.id, scenario.name, ChangeOperation.ADD)
            positions[job.id] = len(overlay)
            overlay.append(OverlayJob(base=job, annotation=annotation))
            continue

        index = positions.get(change.job_id) if change.job_id else None
        if index is None:
            logger.warning(
                "Scenario %s change %s references unknown job %s, skipping",
                scenario.id,
                change.id,
                change.job_id,
            )
            continue

        current = overlay[index]
        if current.is_deleted:
            logger.warning("Scenario %s change %s targets deleted job %s, skipping", scenario.id, change.id, change.job_id)
            continue
        if change.operation is ChangeOperation.MODIFY:
            # A MODIFY on an ADDed job keeps the ADD tag.
            operation = current.annotation.operation if current.annotation else ChangeOperation.MODIFY
            try:
                patched = current.base.with_patch(change.change_data)
            except (ValueError, TypeError) as exc:
                logger.warning("Scenario %s change %s has an invalid patch, skipping: %s", scenario.id, change.id, exc)
                continue
            overlay[index] = OverlayJob(
                base=patched,
                annotation=OverlayAnnotation(scenario.id, scenario.name, operation),
            )
        else:
            overlay[index] = OverlayJob(
                base=current.base,
                annotation=OverlayAnnotation(scenario.id, scenario.name, ChangeOperation.DELETE, deleted=True),
            )

    relevant = [
        delay for delay in delays if delay.scenario_id is None or delay.scenario_id == scenario.id
    ]
    if relevant:
        overlay = [OverlayJob(base=apply_delays(item.base, relevant), annotation=item.annotation) for item in overlay]
    return overlay


def scenario_only(overlay: Iterable[OverlayJob]) -> list[OverlayJob]:
    """Jobs a scenario added, modified or deleted."""
    return [item for item in overlay if item.annotation is not None]


@dataclass(frozen=True)
class PlannedChange:
    change_id: str
    operation: ChangeOperation
    job_id: str
    payload: JobCreate | JobUpdate | None = None


def _validation_summary(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    )


def plan_commit(changes: Iterable[ScenarioChangeSpec], existing_job_ids: Iterable[str]) -> list[PlannedChange]:
    """Validate a scenario's changes against production before anything is written.

    Replays the changes in order against the set of job ids: ADDed jobs take
    the change id and may be referenced by later changes, DELETEd jobs may not.
    """
    known = {str(job_id) for job_id in existing_job_ids}
    plan: list[PlannedChange] = []

    for change in changes:
        if change.operation is ChangeOperation.ADD:
            try:
                payload = JobCreate.model_validate(change.change_data)
            except ValidationError as exc:
                raise ScenarioCommitError(
                    f"ADD change {change.id} has an invalid job payload: {_validation_summary(exc)}"
                ) from exc
            job_id = change.id
            known.add(job_id)
            plan.append(PlannedChange(change.id, change.operation, job_id, payload))
            continue

        if change.job_id is None or change.job_id not in known:
            raise ScenarioCommitError(
                f"{change.operation.value} change {change.id} references missing job {change.job_id}"
            )

        if change.operation is ChangeOperation.MODIFY:
            try:
                payload = JobUpdate.model_validate(change.change_data)
            except ValidationError as exc:
                raise ScenarioCommitError(
                    f"MODIFY change {change.id} has an invalid patch: {_validation_summary(exc)}"
                ) from exc
            plan.append(PlannedChange(change.id, change.operation, change.job_id, payload))
        else:
            known.discard(change.job_id)
            plan.append(PlannedChange(change.id, change.operation, change.job_id))

    return plan
