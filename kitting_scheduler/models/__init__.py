"""SQLAlchemy ORM models."""

from kitting_scheduler.models.delay import JobDelay
from kitting_scheduler.models.job import KittingJob, RouteStep
from kitting_scheduler.models.scenario import Scenario, ScenarioChange
from kitting_scheduler.models.shift import Shift

__all__ = [
    "JobDelay",
    "KittingJob",
    "RouteStep",
    "Scenario",
    "ScenarioChange",
    "Shift",
]
