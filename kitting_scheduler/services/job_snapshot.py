"""Immutable in-memory view of a kitting job used by the scheduling core.

Overlay and delay computations never touch ORM rows: they work on
``JobSnapshot`` values and produce new ones.
"""

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time
from typing import Any

from kitting_scheduler.services.job_durations import (
    calculate_expected_job_duration,
    calculate_expected_kit_duration,
)
from kitting_scheduler.services.shift_calendar import parse_time

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RealStep:
    """A route step that performs real kitting work."""

    name: str
    expected_seconds: int
    order: int


@dataclass(frozen=True)
class DelayStep:
    """A synthetic step charging a delay's time without performing work."""

    name: str
    expected_seconds: int
    order: int
    delay_id: str


Step = RealStep | DelayStep

PATCHABLE_FIELDS = frozenset(
    {
        "job_number",
        "customer_name",
        "description",
        "customer_spec",
        "run_length",
        "status",
        "due_date",
        "ordered_quantity",
        "route_steps",
        "setup",
        "make_ready",
        "take_down",
        "station_count",
        "scheduled_date",
        "scheduled_start_time",
        "allowed_shift_ids",
        "include_weekends",
    }
)


def _as_date(value: Any) -> date | None:
    if value is None or isinstance(value, date) and not isinstance(value, datetime):
        return value
    if isinstance(value, datetime):
        return value.date()
    return date.fromisoformat(str(value)[:10])


def _as_steps(raw_steps: Any) -> tuple[RealStep, ...]:
    steps = []
    for index, raw in enumerate(raw_steps or []):
        if isinstance(raw, (RealStep, DelayStep)):
            steps.append(raw)
            continue
        if isinstance(raw, dict):
            name, seconds, order = raw.get("name", ""), raw.get("expected_seconds", 0), raw.get("order")
        else:
            name, seconds, order = raw.name, raw.expected_seconds, getattr(raw, "order", None)
        steps.append(RealStep(name=name, expected_seconds=int(seconds), order=index if order is None else int(order)))
    return tuple(sorted(steps, key=lambda s: s.order))


def _coerce(field_name: str, value: Any) -> Any:
    if field_name in ("due_date", "scheduled_date"):
        return _as_date(value)
    if field_name == "route_steps":
        return _as_steps(value)
    if field_name == "allowed_shift_ids":
        return tuple(str(shift_id) for shift_id in value or ())
    if field_name == "scheduled_start_time" and value is not None:
        parse_time(value)
    return value


@dataclass(frozen=True)
class JobSnapshot:
    id: str
    job_number: str = ""
    customer_name: str = ""
    description: str = ""
    customer_spec: str | None = None
    run_length: str | None = None
    status: str = "scheduled"
    due_date: date | None = None
    ordered_quantity: int = 1
    route_steps: tuple[Step, ...] = field(default_factory=tuple)
    setup: int = 0
    make_ready: int = 0
    take_down: int = 0
    station_count: int = 1
    scheduled_date: date | None = None
    scheduled_start_time: str | None = None
    allowed_shift_ids: tuple[str, ...] = field(default_factory=tuple)
    include_weekends: bool = False
    expected_kit_duration: int = 0
    expected_job_duration: int = 0

    @classmethod
    def from_model(cls, job: Any) -> "JobSnapshot":
        """Snapshot a KittingJob row; durations are taken as stored."""
        return cls(
            id=str(job.id),
            job_number=job.job_number,
            customer_name=job.customer_name,
            description=job.description or "",
            customer_spec=job.customer_spec,
            run_length=job.run_length,
            status=job.status,
            due_date=_as_date(job.due_date),
            ordered_quantity=job.ordered_quantity,
            route_steps=_as_steps(job.route_steps),
            setup=job.setup,
            make_ready=job.make_ready,
            take_down=job.take_down,
            station_count=job.station_count,
            scheduled_date=_as_date(job.scheduled_date),
            scheduled_start_time=job.scheduled_start_time,
            allowed_shift_ids=_coerce("allowed_shift_ids", job.allowed_shift_ids),
            include_weekends=job.include_weekends,
            expected_kit_duration=job.expected_kit_duration,
            expected_job_duration=job.expected_job_duration,
        )

    @classmethod
    def from_payload(cls, job_id: uuid.UUID | str, payload: dict[str, Any]) -> "JobSnapshot":
        """Build a new job from a free-form payload; durations are derived."""
        return cls(id=str(job_id)).with_patch(payload)

    def with_patch(self, patch: dict[str, Any]) -> "JobSnapshot":
        """Return a copy with ``patch`` applied and durations recomputed.

        Keys outside the job's patchable fields are ignored here; they are
        rejected when a scenario is committed.
        """
        updates = {}
        for key, value in patch.items():
            if key not in PATCHABLE_FIELDS:
                logger.debug("Ignoring non-job field %r in patch for job %s", key, self.id)
                continue
            updates[key] = _coerce(key, value)
        return replace(self, **updates).recalculated()

    def recalculated(self) -> "JobSnapshot":
        kit_duration = calculate_expected_kit_duration(self.real_steps)
        return replace(
            self,
            expected_kit_duration=kit_duration,
            expected_job_duration=calculate_expected_job_duration(
                kit_duration,
                self.ordered_quantity,
                self.setup,
                self.make_ready,
                self.take_down,
                self.station_count,
            ),
        )

    @property
    def real_steps(self) -> tuple[RealStep, ...]:
        return tuple(step for step in self.route_steps if isinstance(step, RealStep))

    def start_instant(self, default_time: str | None = None) -> datetime | None:
        """Combine scheduled date and start time; None when the job is unscheduled."""
        if self.scheduled_date is None:
            return None
        clock = self.scheduled_start_time or default_time or "00:00"
        minutes = parse_time(clock)
        return datetime.combine(self.scheduled_date, time(minutes // 60, minutes % 60))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "job_number": self.job_number,
            "customer_name": self.customer_name,
            "description": self.description,
            "customer_spec": self.customer_spec,
            "run_length": self.run_length,
            "status": self.status,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "ordered_quantity": self.ordered_quantity,
            "route_steps": [
                {
                    "name": step.name,
                    "expected_seconds": step.expected_seconds,
                    "order": step.order,
                    "is_delay": isinstance(step, DelayStep),
                    "delay_id": step.delay_id if isinstance(step, DelayStep) else None,
                }
                for step in self.route_steps
            ],
            "setup": self.setup,
            "make_ready": self.make_ready,
            "take_down": self.take_down,
            "station_count": self.station_count,
            "scheduled_date": self.scheduled_date.isoformat() if self.scheduled_date else None,
            "scheduled_start_time": self.scheduled_start_time,
            "allowed_shift_ids": list(self.allowed_shift_ids),
            "include_weekends": self.include_weekends,
            "expected_kit_duration": self.expected_kit_duration,
            "expected_job_duration": self.expected_job_duration,
        }
