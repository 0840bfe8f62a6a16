"""Storage-backed scenario lifecycle: create, activate, record changes, commit, discard."""

import logging
import uuid
from typing import Any

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from kitting_scheduler.core.database import atomic
from kitting_scheduler.models.delay import JobDelay
from kitting_scheduler.models.job import KittingJob
from kitting_scheduler.models.scenario import Scenario, ScenarioChange
from kitting_scheduler.services.delay_injection import DelaySpec
from kitting_scheduler.services.job_records import apply_job_update, build_job, job_original_data
from kitting_scheduler.services.job_snapshot import JobSnapshot
from kitting_scheduler.services.scenario_engine import (
    ChangeOperation,
    OverlayJob,
    ScenarioCommitError,
    ScenarioError,
    ScenarioNotFoundError,
    ScenarioSnapshot,
    compute_overlay,
    merge_change_data,
    plan_commit,
)

logger = logging.getLogger(__name__)


def _as_uuid(value: uuid.UUID | str) -> uuid.UUID:
    return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))


class ScenarioService:
    """What-if scenarios over the production job set."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_scenarios(self) -> list[Scenario]:
        result = await self.db.execute(select(Scenario).order_by(Scenario.created_at))
        return list(result.scalars().all())

    async def get_scenario(self, scenario_id: uuid.UUID | str) -> Scenario:
        result = await self.db.execute(select(Scenario).where(Scenario.id == _as_uuid(scenario_id)))
        scenario = result.scalar_one_or_none()
        if scenario is None:
            raise ScenarioNotFoundError(f"Scenario {scenario_id} not found")
        return scenario

    async def get_active(self) -> Scenario | None:
        result = await self.db.execute(select(Scenario).where(Scenario.is_active.is_(True)))
        return result.scalars().first()

    async def create_scenario(
        self,
        name: str,
        description: str | None = None,
        seed_job_id: uuid.UUID | str | None = None,
    ) -> Scenario:
        """Create an empty scenario, optionally seeded with an empty MODIFY of one job."""
        seed_job = None
        if seed_job_id is not None:
            seed_job = await self.db.get(KittingJob, _as_uuid(seed_job_id))
            if seed_job is None:
                raise ScenarioError(f"Seed job {seed_job_id} not found")

        scenario = Scenario(name=name, description=description, is_active=False)
        self.db.add(scenario)
        await self.db.flush()
        if seed_job is not None:
            self.db.add(
                ScenarioChange(
                    scenario_id=scenario.id,
                    job_id=seed_job.id,
                    operation=ChangeOperation.MODIFY.value,
                    change_data={},
                    original_data=job_original_data(seed_job),
                )
            )
            await self.db.flush()
        await self.db.refresh(scenario)
        logger.info("Created scenario %s (%s)", scenario.id, name)
        return scenario

    async def activate_scenario(self, scenario_id: uuid.UUID | str) -> Scenario:
        """Make ``scenario_id`` the only active scenario."""
        scenario = await self.get_scenario(scenario_id)
        await self.db.execute(update(Scenario).values(is_active=False))
        await self.db.execute(update(Scenario).where(Scenario.id == scenario.id).values(is_active=True))
        await self.db.flush()
        await self.db.refresh(scenario)
        logger.info("Activated scenario %s", scenario.id)
        return scenario

    async def deactivate_all(self) -> None:
        await self.db.execute(update(Scenario).values(is_active=False))
        await self.db.flush()
        logger.info("Deactivated all scenarios")

    async def add_change(
        self,
        scenario_id: uuid.UUID | str,
        operation: ChangeOperation | str,
        job_id: uuid.UUID | str | None = None,
        change_data: dict[str, Any] | None = None,
        original_data: dict[str, Any] | None = None,
    ) -> ScenarioChange:
        """Record a change. A MODIFY of a job already modified in this scenario merges into it."""
        operation = ChangeOperation(operation)
        scenario = await self.get_scenario(scenario_id)
        job_uuid = _as_uuid(job_id) if job_id is not None else None

        if operation is ChangeOperation.MODIFY:
            for existing in scenario.changes:
                if existing.operation == ChangeOperation.MODIFY.value and existing.job_id == job_uuid:
                    existing.change_data = merge_change_data(existing.change_data, change_data)
                    # The first recorded pre-change value of each field is kept.
                    existing.original_data = merge_change_data(original_data, existing.original_data) or None
                    await self.db.flush()
                    logger.debug("Merged MODIFY of job %s into scenario %s", job_uuid, scenario.id)
                    return existing

        change = ScenarioChange(
            scenario_id=scenario.id,
            job_id=job_uuid,
            operation=operation.value,
            change_data=dict(change_data or {}),
            original_data=original_data,
        )
        self.db.add(change)
        await self.db.flush()
        await self.db.refresh(change)
        return change

    async def load_job_snapshots(self) -> list[JobSnapshot]:
        result = await self.db.execute(
            select(KittingJob).order_by(KittingJob.scheduled_date, KittingJob.job_number)
        )
        return [JobSnapshot.from_model(job) for job in result.scalars().all()]

    async def load_delays(self, scenario_ids: list[uuid.UUID] | None = None) -> list[DelaySpec]:
        """Production delays plus the delays of ``scenario_ids``."""
        condition = JobDelay.scenario_id.is_(None)
        if scenario_ids:
            condition = or_(condition, JobDelay.scenario_id.in_(scenario_ids))
        result = await self.db.execute(select(JobDelay).where(condition).order_by(JobDelay.created_at))
        return [DelaySpec.from_model(delay) for delay in result.scalars().all()]

    async def get_overlay(self, scenario_id: uuid.UUID | str) -> tuple[Scenario, list[OverlayJob]]:
        scenario = await self.get_scenario(scenario_id)
        jobs = await self.load_job_snapshots()
        delays = await self.load_delays([scenario.id])
        return scenario, compute_overlay(jobs, ScenarioSnapshot.from_model(scenario), delays)

    async def get_overlays(
        self, scenario_ids: list[uuid.UUID | str]
    ) -> list[tuple[Scenario, list[OverlayJob]]]:
        """Overlays of several scenarios, each computed independently over the same production jobs."""
        scenarios = [await self.get_scenario(scenario_id) for scenario_id in scenario_ids]
        jobs = await self.load_job_snapshots()
        delays = await self.load_delays([scenario.id for scenario in scenarios])
        return [
            (scenario, compute_overlay(jobs, ScenarioSnapshot.from_model(scenario), delays))
            for scenario in scenarios
        ]

    async def commit_scenario(self, scenario_id: uuid.UUID | str) -> dict[str, int]:
        """Apply every change of a scenario to production, then delete the scenario.

        All writes happen in one savepoint; if any change fails nothing is applied.
        Delays recorded in the scenario become production delays.
        """
        scenario = await self.get_scenario(scenario_id)
        snapshot = ScenarioSnapshot.from_model(scenario)
        existing_ids = (await self.db.execute(select(KittingJob.id))).scalars().all()
        plan = plan_commit(snapshot.changes, [str(job_id) for job_id in existing_ids])

        counts = {"added": 0, "modified": 0, "deleted": 0}
        deleted_jobs: list[uuid.UUID] = []
        async with atomic(self.db):
            for planned in plan:
                job_uuid = _as_uuid(planned.job_id)
                if planned.operation is ChangeOperation.ADD:
                    self.db.add(build_job(planned.payload, job_id=job_uuid))
                    counts["added"] += 1
                    await self.db.flush()
                    continue

                job = await self.db.get(KittingJob, job_uuid)
                if job is None:
                    raise ScenarioCommitError(f"Job {planned.job_id} disappeared during commit")
                if planned.operation is ChangeOperation.MODIFY:
                    apply_job_update(job, planned.payload)
                    counts["modified"] += 1
                else:
                    await self.db.delete(job)
                    deleted_jobs.append(job_uuid)
                    counts["deleted"] += 1
                await self.db.flush()

            if deleted_jobs:
                await self.db.execute(delete(JobDelay).where(JobDelay.job_id.in_(deleted_jobs)))
            await self.db.execute(
                update(JobDelay).where(JobDelay.scenario_id == scenario.id).values(scenario_id=None)
            )
            await self.db.delete(scenario)
            await self.db.flush()

        logger.info(
            "Committed scenario %s: %d added, %d modified, %d deleted",
            scenario.id,
            counts["added"],
            counts["modified"],
            counts["deleted"],
        )
        return counts

    async def discard_scenario(self, scenario_id: uuid.UUID | str) -> None:
        """Delete a scenario with its changes and delays; production is untouched."""
        scenario = await self.get_scenario(scenario_id)
        await self.db.execute(delete(JobDelay).where(JobDelay.scenario_id == scenario.id))
        await self.db.delete(scenario)
        await self.db.flush()
        logger.info("Discarded scenario %s", scenario.id)
