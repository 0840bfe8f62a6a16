"""Pydantic v2 schemas for request/response validation."""

from kitting_scheduler.schemas.calendar import (
    CalendarEntry,
    CalendarResponse,
    DaySegmentResponse,
    JobScheduleResponse,
    SegmentMove,
    SegmentMoveResult,
)
from kitting_scheduler.schemas.delay import DelayCreate, DelayResponse
from kitting_scheduler.schemas.job import (
    JobCreate,
    JobResponse,
    JobStationsResponse,
    JobUpdate,
    RouteStepIn,
    RouteStepResponse,
    StaffingEstimate,
    StationCountUpdate,
)
from kitting_scheduler.schemas.scenario import (
    CommitResult,
    OverlayResponse,
    ScenarioChangeCreate,
    ScenarioChangeResponse,
    ScenarioCreate,
    ScenarioResponse,
)
from kitting_scheduler.schemas.shift import ShiftCreate, ShiftResponse, ShiftToggle, ShiftUpdate

__all__ = [
    "CalendarEntry",
    "CalendarResponse",
    "CommitResult",
    "DaySegmentResponse",
    "DelayCreate",
    "DelayResponse",
    "JobCreate",
    "JobResponse",
    "JobScheduleResponse",
    "JobStationsResponse",
    "JobUpdate",
    "OverlayResponse",
    "RouteStepIn",
    "RouteStepResponse",
    "ScenarioChangeCreate",
    "ScenarioChangeResponse",
    "ScenarioCreate",
    "ScenarioResponse",
    "SegmentMove",
    "SegmentMoveResult",
    "ShiftCreate",
    "ShiftResponse",
    "ShiftToggle",
    "ShiftUpdate",
    "StaffingEstimate",
    "StationCountUpdate",
]
