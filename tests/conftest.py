"""Pytest configuration with fixtures for async testing."""

import uuid
from datetime import date, datetime, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from kitting_scheduler.core.events import EventBus
from kitting_scheduler.services.shift_calendar import ShiftSpec

# Monday
MONDAY = date(2026, 2, 23)


# ---------------------------------------------------------------------------
# Test Data Factories (using MagicMock for SQLAlchemy 2.0 compatibility)
# ---------------------------------------------------------------------------


def _make_mock(defaults: dict[str, Any], overrides: dict[str, Any]) -> MagicMock:
    """Create a MagicMock with given attributes."""
    merged = {**defaults, **overrides}
    mock = MagicMock()
    for k, v in merged.items():
        setattr(mock, k, v)
    return mock


class ShiftFactory:
    """Factory for creating Shift instances for testing."""

    _counter = 0

    @classmethod
    def create(cls, **overrides: Any) -> MagicMock:
        cls._counter += 1
        defaults = {
            "id": uuid.uuid4(),
            "name": f"Shift {cls._counter}",
            "start_time": "07:00",
            "end_time": "15:00",
            "break_start": "11:00",
            "break_duration": 30,
            "is_active": True,
            "order": cls._counter,
            "color": None,
            "created_at": datetime.now(timezone.utc),
            "updated_at": datetime.now(timezone.utc),
        }
        return _make_mock(defaults, overrides)


class RouteStepFactory:
    """Factory for creating RouteStep instances for testing."""

    @classmethod
    def create(cls, order: int, **overrides: Any) -> MagicMock:
        defaults = {
            "id": uuid.uuid4(),
            "name": f"Step {order}",
            "expected_seconds": 60,
            "order": order,
        }
        return _make_mock(defaults, overrides)


class JobFactory:
    """Factory for creating KittingJob instances for testing."""

    _counter = 0

    @classmethod
    def create(cls, step_seconds: list[int] | None = None, **overrides: Any) -> MagicMock:
        cls._counter += 1
        seconds = step_seconds if step_seconds is not None else [60, 120]
        steps = [
            RouteStepFactory.create(order=position, expected_seconds=value)
            for position, value in enumerate(seconds, start=1)
        ]
        defaults = {
            "id": uuid.uuid4(),
            "job_number": f"KJ-{cls._counter:04d}",
            "customer_name": "Acme Assembly",
            "description": f"Test kit {cls._counter}",
            "due_date": None,
            "customer_spec": None,
            "run_length": None,
            "status": "scheduled",
            "ordered_quantity": 10,
            "route_steps": steps,
            "setup": 0,
            "make_ready": 0,
            "take_down": 0,
            "station_count": 1,
            "scheduled_date": MONDAY,
            "scheduled_start_time": "07:00",
            "allowed_shift_ids": [],
            "include_weekends": False,
            "expected_kit_duration": sum(seconds),
            "expected_job_duration": sum(seconds) * 10,
            "created_at": datetime.now(timezone.utc),
            "updated_at": datetime.now(timezone.utc),
        }
        return _make_mock(defaults, overrides)


class ScenarioFactory:
    """Factory for creating Scenario instances for testing."""

    _counter = 0

    @classmethod
    def create(cls, changes: list | None = None, **overrides: Any) -> MagicMock:
        cls._counter += 1
        defaults = {
            "id": uuid.uuid4(),
            "name": f"What-if {cls._counter}",
            "description": None,
            "is_active": False,
            "changes": changes if changes is not None else [],
            "created_at": datetime.now(timezone.utc),
            "updated_at": datetime.now(timezone.utc),
        }
        return _make_mock(defaults, overrides)


class ScenarioChangeFactory:
    """Factory for creating ScenarioChange instances for testing."""

    @classmethod
    def create(cls, operation: str, job_id: uuid.UUID | None = None, **overrides: Any) -> MagicMock:
        defaults = {
            "id": uuid.uuid4(),
            "scenario_id": uuid.uuid4(),
            "job_id": job_id,
            "operation": operation,
            "change_data": {},
            "original_data": None,
            "created_at": datetime.now(timezone.utc),
        }
        return _make_mock(defaults, overrides)


class DelayFactory:
    """Factory for creating JobDelay instances for testing."""

    @classmethod
    def create(cls, job_id: uuid.UUID, **overrides: Any) -> MagicMock:
        defaults = {
            "id": uuid.uuid4(),
            "scenario_id": None,
            "job_id": job_id,
            "name": "Material shortage",
            "duration": 600,
            "insert_after": 0,
            "created_at": datetime.now(timezone.utc),
        }
        return _make_mock(defaults, overrides)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def shift_factory():
    return ShiftFactory


@pytest.fixture
def job_factory():
    return JobFactory


@pytest.fixture
def scenario_factory():
    return ScenarioFactory


@pytest.fixture
def change_factory():
    return ScenarioChangeFactory


@pytest.fixture
def delay_factory():
    return DelayFactory


@pytest.fixture
def mock_db():
    """Provide a mock AsyncSession for unit tests."""
    session = AsyncMock(spec=AsyncSession)
    session.add = MagicMock()
    session.add_all = MagicMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.refresh = AsyncMock()
    session.delete = AsyncMock()

    savepoint = MagicMock()
    savepoint.__aenter__ = AsyncMock(return_value=None)
    savepoint.__aexit__ = AsyncMock(return_value=False)
    session.begin_nested = MagicMock(return_value=savepoint)
    return session


@pytest.fixture
def mock_events():
    """An event bus without Redis whose publish calls are recorded."""
    bus = EventBus(redis=None)
    bus.publish = AsyncMock()
    return bus


@pytest.fixture
def day_shift():
    """07:00-15:00 with a 30 minute break at 11:00."""
    return ShiftSpec.build("day", "Day", "07:00", "15:00", "11:00", 30, order=1)


@pytest.fixture
def default_shifts():
    """The three seeded shifts, covering the whole day."""
    return [
        ShiftSpec.build("first", "First Shift", "07:00", "15:00", "11:00", 30, order=1),
        ShiftSpec.build("second", "Second Shift", "15:00", "23:00", "19:00", 30, order=2),
        ShiftSpec.build("third", "Third Shift", "23:00", "07:00", "03:00", 30, order=3),
    ]
