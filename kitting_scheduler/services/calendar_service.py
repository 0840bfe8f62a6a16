"""Calendar pipeline: job snapshots -> forward schedule -> day segments.

Schedules are never stored. Every read derives start, end and segments
from the current shifts, so a shift change is reflected on the next read.
"""

import logging
import uuid
from dataclasses import asdict, dataclass
from datetime import date, datetime, time, timedelta
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from kitting_scheduler.core.config import settings
from kitting_scheduler.models.job import KittingJob
from kitting_scheduler.models.scenario import ScenarioChange
from kitting_scheduler.models.shift import Shift
from kitting_scheduler.services.day_segments import DaySegment, parse_segment_id, segment_job_span
from kitting_scheduler.services.delay_injection import apply_production_delays
from kitting_scheduler.services.forward_scheduler import (
    next_productive_instant,
    resolve_effective_shifts,
    schedule_forward,
)
from kitting_scheduler.services.job_snapshot import JobSnapshot
from kitting_scheduler.services.scenario_engine import (
    ChangeOperation,
    OverlayJob,
    merge_change_data,
    scenario_only,
)
from kitting_scheduler.services.scenario_service import ScenarioService
from kitting_scheduler.services.shift_calendar import ShiftConfigurationError, ShiftSpec

logger = logging.getLogger(__name__)


class CalendarError(Exception):
    """Raised when a calendar operation targets something that does not exist."""


@dataclass(frozen=True)
class JobSchedule:
    job: JobSnapshot
    start: datetime
    end: datetime
    segments: list[DaySegment]


def build_job_schedule(
    job: JobSnapshot,
    shifts: list[ShiftSpec],
    default_start_time: str = settings.DEFAULT_START_TIME,
) -> JobSchedule | None:
    """Place ``job`` on the calendar; None when it has no scheduled date."""
    raw_start = job.start_instant(default_start_time)
    if raw_start is None:
        return None

    options = {
        "allowed_shift_ids": job.allowed_shift_ids,
        "include_weekends": job.include_weekends,
    }
    effective = resolve_effective_shifts(shifts, job.allowed_shift_ids)
    start = next_productive_instant(raw_start, effective, job.include_weekends) if effective else raw_start
    end = schedule_forward(raw_start, job.expected_job_duration, shifts, **options)
    segments = segment_job_span(job.id, start, end, shifts, **options)
    logger.debug("Job %s scheduled %s -> %s over %d days", job.id, start, end, len(segments))
    return JobSchedule(job=job, start=start, end=end, segments=segments)


def calendar_entry(schedule: JobSchedule, overlay: OverlayJob | None = None) -> dict[str, Any]:
    job = schedule.job
    scenario = overlay.to_dict()["scenario"] if overlay is not None else None
    return {
        "job_id": job.id,
        "job_number": job.job_number,
        "customer_name": job.customer_name,
        "status": job.status,
        "start": schedule.start,
        "end": schedule.end,
        "expected_job_duration": job.expected_job_duration,
        "segments": [asdict(segment) for segment in schedule.segments],
        "scenario": scenario,
    }


def in_range(schedule: JobSchedule, range_start: date | None, range_end: date | None) -> bool:
    """True when the schedule overlaps the inclusive date range."""
    if range_start is not None and schedule.end < datetime.combine(range_start, time()):
        return False
    if range_end is not None and schedule.start >= datetime.combine(range_end + timedelta(days=1), time()):
        return False
    return True


async def load_shift_specs(db: AsyncSession) -> list[ShiftSpec]:
    result = await db.execute(select(Shift).order_by(Shift.order))
    return [ShiftSpec.from_model(shift) for shift in result.scalars().all()]


class CalendarService:
    """Builds calendar views of production and of scenario overlays."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.scenarios = ScenarioService(db)

    def _schedule_all(
        self,
        items: list[tuple[JobSnapshot, OverlayJob | None]],
        shifts: list[ShiftSpec],
        range_start: date | None = None,
        range_end: date | None = None,
    ) -> tuple[list[dict[str, Any]], list[str]]:
        entries: list[dict[str, Any]] = []
        warnings: list[str] = []
        for job, overlay in items:
            try:
                schedule = build_job_schedule(job, shifts)
            except ShiftConfigurationError as exc:
                logger.warning("Cannot schedule job %s: %s", job.id, exc)
                warnings.append(f"Job {job.job_number or job.id}: {exc}")
                continue
            if schedule is None or not in_range(schedule, range_start, range_end):
                continue
            entries.append(calendar_entry(schedule, overlay))
        return entries, warnings

    async def production_calendar(
        self,
        range_start: date | None = None,
        range_end: date | None = None,
        status: str | None = None,
        search: str | None = None,
    ) -> tuple[list[dict[str, Any]], list[str]]:
        """Production jobs with production delays injected, optionally filtered."""
        query = select(KittingJob).order_by(KittingJob.scheduled_date, KittingJob.job_number)
        if status:
            query = query.where(KittingJob.status == status)
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(
                    KittingJob.job_number.ilike(pattern),
                    KittingJob.customer_name.ilike(pattern),
                    KittingJob.description.ilike(pattern),
                )
            )
        result = await self.db.execute(query)
        jobs = [JobSnapshot.from_model(job) for job in result.scalars().all()]
        delays = await self.scenarios.load_delays()
        shifts = await load_shift_specs(self.db)
        delayed = apply_production_delays(jobs, delays)
        return self._schedule_all([(job, None) for job in delayed], shifts, range_start, range_end)

    async def scenario_calendar(
        self, scenario_ids: list[uuid.UUID | str]
    ) -> tuple[list[dict[str, Any]], list[str]]:
        """Entries for the jobs each visible scenario adds, modifies or deletes."""
        shifts = await load_shift_specs(self.db)
        entries: list[dict[str, Any]] = []
        warnings: list[str] = []
        for _, overlay in await self.scenarios.get_overlays(scenario_ids):
            items = [(item.base, item) for item in scenario_only(overlay)]
            scenario_entries, scenario_warnings = self._schedule_all(items, shifts)
            entries.extend(scenario_entries)
            warnings.extend(scenario_warnings)
        return entries, warnings

    async def job_schedule(self, job: KittingJob) -> JobSchedule | None:
        delays = await self.scenarios.load_delays()
        shifts = await load_shift_specs(self.db)
        snapshot = apply_production_delays([JobSnapshot.from_model(job)], delays)[0]
        return build_job_schedule(snapshot, shifts)

    async def move_segment(
        self, segment_id: str, scheduled_date: date, scheduled_start_time: str
    ) -> tuple[str, uuid.UUID | None]:
        """Move the job owning ``segment_id`` to a new start.

        With an active scenario the move is recorded as a scenario change and
        production is untouched; otherwise the job itself is updated.
        Returns the job id and the scenario the move was recorded in, if any.
        """
        try:
            job_id = uuid.UUID(parse_segment_id(segment_id))
        except ValueError as exc:
            raise CalendarError(f"Invalid segment id {segment_id!r}") from exc

        patch = {"scheduled_date": scheduled_date.isoformat(), "scheduled_start_time": scheduled_start_time}
        job = await self.db.get(KittingJob, job_id)
        active = await self.scenarios.get_active()

        if active is None:
            if job is None:
                raise CalendarError(f"Job {job_id} not found")
            job.scheduled_date = scheduled_date
            job.scheduled_start_time = scheduled_start_time
            await self.db.flush()
            logger.info("Moved job %s to %s %s", job_id, scheduled_date, scheduled_start_time)
            return str(job_id), None

        if job is not None:
            original = {
                "scheduled_date": job.scheduled_date.isoformat() if job.scheduled_date else None,
                "scheduled_start_time": job.scheduled_start_time,
            }
            await self.scenarios.add_change(active.id, ChangeOperation.MODIFY, job_id, patch, original)
            return str(job_id), active.id

        # Jobs added by the scenario only exist as their ADD change.
        added: ScenarioChange | None = next(
            (
                change
                for change in active.changes
                if change.id == job_id and change.operation == ChangeOperation.ADD.value
            ),
            None,
        )
        if added is None:
            raise CalendarError(f"Job {job_id} not found")
        added.change_data = merge_change_data(added.change_data, patch)
        await self.db.flush()
        return str(job_id), active.id
