"""Delay injection.

A delay is a named block of time spliced into a job's route as a
``DelayStep``. Injection is pure: it returns a new snapshot with the delay
steps in place and the delay time added to the expected job duration, and
never modifies the stored job.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, replace
from typing import Any

from kitting_scheduler.services.job_snapshot import DelayStep, JobSnapshot, RealStep, Step

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DelaySpec:
    id: str
    job_id: str
    name: str
    duration: int
    insert_after: int
    scenario_id: str | None = None

    @classmethod
    def from_model(cls, delay: Any) -> "DelaySpec":
        return cls(
            id=str(delay.id),
            job_id=str(delay.job_id),
            name=delay.name,
            duration=int(delay.duration),
            insert_after=int(delay.insert_after),
            scenario_id=str(delay.scenario_id) if delay.scenario_id is not None else None,
        )

    @property
    def is_production(self) -> bool:
        return self.scenario_id is None


def _delay_step(delay: DelaySpec) -> DelayStep:
    return DelayStep(name=delay.name, expected_seconds=delay.duration, order=0, delay_id=delay.id)


def apply_delays(job: JobSnapshot, delays: Iterable[DelaySpec]) -> JobSnapshot:
    """Return ``job`` with ``delays`` spliced into its route.

    ``insert_after`` is a 1-based position among the job's real steps sorted
    by order: 0 places a delay before the first step, k after the k-th.
    Positions past the last step append to the end. Delays sharing a position
    keep their given order. Step orders of the result are renumbered 1..n.
    """
    job_delays = [delay for delay in delays if delay.job_id == job.id]
    if not job_delays:
        return job

    real_steps = sorted(job.real_steps, key=lambda step: step.order)
    by_position: dict[int, list[DelaySpec]] = defaultdict(list)
    for delay in job_delays:
        by_position[min(max(delay.insert_after, 0), len(real_steps))].append(delay)

    spliced: list[Step] = [_delay_step(delay) for delay in by_position[0]]
    for position, step in enumerate(real_steps, start=1):
        spliced.append(step)
        spliced.extend(_delay_step(delay) for delay in by_position[position])

    renumbered: list[Step] = [replace(step, order=index) for index, step in enumerate(spliced, start=1)]
    added = sum(delay.duration for delay in job_delays)
    logger.debug("Injected %d delays (%ss) into job %s", len(job_delays), added, job.id)
    return replace(
        job,
        route_steps=tuple(renumbered),
        expected_job_duration=job.expected_job_duration + added,
    )


def apply_production_delays(
    jobs: Iterable[JobSnapshot], delays: Iterable[DelaySpec]
) -> list[JobSnapshot]:
    """Inject only production delays (those not attached to a scenario)."""
    production = [delay for delay in delays if delay.is_production]
    return [apply_delays(job, production) for job in jobs]


def delay_seconds(job: JobSnapshot) -> int:
    """Total delay time already injected into ``job``."""
    return sum(step.expected_seconds for step in job.route_steps if not isinstance(step, RealStep))
