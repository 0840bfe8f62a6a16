"""Job duration calculations.

Expected Kit Duration (EKD) is the per-unit work time: the sum of the
route steps. Expected Job Duration (EJD) is the total work time of the job
with kit production parallelised across stations:

    EJD = setup + make_ready + ceil(EKD * quantity / station_count) + take_down

EJD must be recomputed whenever any of its inputs change; a stale EJD
silently desynchronises the calendar from the shop floor.
"""

import math
from collections.abc import Iterable
from typing import Any

DURATION_FIELDS = frozenset(
    {"route_steps", "ordered_quantity", "setup", "make_ready", "take_down", "station_count"}
)

# Staffing per station, from the floor layout: two kitters per station,
# one runner shared between two stations.
KITTERS_PER_STATION = 2
RUNNERS_PER_STATION = 0.5


class JobDurationError(ValueError):
    """Raised when duration inputs are out of range."""


def _step_seconds(step: Any) -> float:
    if isinstance(step, dict):
        return step.get("expected_seconds", 0)
    return step.expected_seconds


def calculate_expected_kit_duration(steps: Iterable[Any]) -> int:
    """Sum of the route steps' expected seconds (the per-unit duration)."""
    total = 0
    for step in steps:
        seconds = _step_seconds(step)
        if seconds < 0:
            raise JobDurationError(f"Route step has negative duration: {seconds}")
        total += seconds
    return total


def calculate_expected_job_duration(
    expected_kit_duration: float,
    ordered_quantity: int,
    setup: float = 0,
    make_ready: float = 0,
    take_down: float = 0,
    station_count: int = 1,
) -> int:
    """Total work seconds of a job, with kit time split across ``station_count`` stations."""
    if station_count < 1:
        raise JobDurationError(f"Station count must be at least 1, got {station_count}")
    if ordered_quantity < 0:
        raise JobDurationError(f"Ordered quantity must be non-negative, got {ordered_quantity}")
    for label, value in (("setup", setup), ("make_ready", make_ready), ("take_down", take_down)):
        if value < 0:
            raise JobDurationError(f"{label} must be non-negative, got {value}")

    parallel_kit_time = math.ceil(expected_kit_duration * ordered_quantity / station_count)
    return int(setup + make_ready + parallel_kit_time + take_down)


def recalculate_durations(job: Any) -> Any:
    """Recompute EKD and EJD on a KittingJob row in place and return it.

    Frozen snapshots cannot be mutated; a recomputed copy is returned instead.
    """
    if callable(getattr(type(job), "recalculated", None)):
        return job.recalculated()
    job.expected_kit_duration = calculate_expected_kit_duration(job.route_steps)
    job.expected_job_duration = calculate_expected_job_duration(
        job.expected_kit_duration,
        job.ordered_quantity,
        job.setup,
        job.make_ready,
        job.take_down,
        job.station_count,
    )
    return job


def estimate_staffing(station_count: int) -> dict[str, int]:
    """People needed to run ``station_count`` stations."""
    if station_count < 1:
        raise JobDurationError(f"Station count must be at least 1, got {station_count}")
    kitters = station_count * KITTERS_PER_STATION
    runners = math.ceil(station_count * RUNNERS_PER_STATION)
    return {"kitters": kitters, "runners": runners, "total": kitters + runners}


def format_duration(seconds: float) -> str:
    """Render seconds as ``1h 2m 3s`` / ``2m 3s`` / ``3s``."""
    seconds = int(seconds)
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"
