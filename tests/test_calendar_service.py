"""Tests for the calendar pipeline and segment moves."""

import uuid
from datetime import date, datetime
from unittest.mock import MagicMock

import pytest

from kitting_scheduler.services.calendar_service import (
    CalendarError,
    CalendarService,
    build_job_schedule,
    in_range,
)
from kitting_scheduler.services.job_snapshot import JobSnapshot
from kitting_scheduler.services.shift_calendar import ShiftSpec


def _result(items=None, one=None) -> MagicMock:
    items = list(items or [])
    result = MagicMock()
    result.scalars.return_value.all.return_value = items
    result.scalars.return_value.first.return_value = items[0] if items else None
    result.scalar_one_or_none.return_value = one
    return result


def _snapshot(**overrides) -> JobSnapshot:
    payload = {
        "job_number": "KJ-0001",
        "customer_name": "Acme Assembly",
        "ordered_quantity": 10,
        "route_steps": [{"name": "Pick", "expected_seconds": 180, "order": 1}],
        "scheduled_date": "2026-02-23",
        "scheduled_start_time": "07:00",
    }
    payload.update(overrides)
    return JobSnapshot.from_payload("job-1", payload)


class TestBuildJobSchedule:
    def test_start_and_end(self, day_shift):
        schedule = build_job_schedule(_snapshot(), [day_shift])
        assert schedule.start == datetime(2026, 2, 23, 7, 0)
        assert schedule.end == datetime(2026, 2, 23, 7, 30)
        assert len(schedule.segments) == 1

    def test_start_outside_shift_is_advanced(self, day_shift):
        schedule = build_job_schedule(_snapshot(scheduled_start_time="05:00"), [day_shift])
        assert schedule.start == datetime(2026, 2, 23, 7, 0)
        assert schedule.end == datetime(2026, 2, 23, 7, 30)

    def test_default_start_time(self, day_shift):
        schedule = build_job_schedule(_snapshot(scheduled_start_time=None), [day_shift], "09:00")
        assert schedule.start == datetime(2026, 2, 23, 9, 0)

    def test_unscheduled_job(self, day_shift):
        assert build_job_schedule(_snapshot(scheduled_date=None), [day_shift]) is None

    def test_more_stations_finish_earlier(self, day_shift):
        serial = build_job_schedule(_snapshot(ordered_quantity=500), [day_shift])
        parallel = build_job_schedule(_snapshot(ordered_quantity=500, station_count=4), [day_shift])
        assert parallel.end < serial.end

    def test_shift_change_reflected_on_next_read(self, day_shift):
        before = build_job_schedule(_snapshot(ordered_quantity=200), [day_shift])
        longer = ShiftSpec.build("day", "Day", "07:00", "19:00", "11:00", 30, order=1)
        after = build_job_schedule(_snapshot(ordered_quantity=200), [longer])
        assert after.end < before.end


class TestInRange:
    def test_overlap_rules(self, day_shift):
        schedule = build_job_schedule(_snapshot(), [day_shift])
        assert in_range(schedule, None, None)
        assert in_range(schedule, date(2026, 2, 23), date(2026, 2, 23))
        assert not in_range(schedule, date(2026, 2, 24), None)
        assert not in_range(schedule, None, date(2026, 2, 22))


class TestProductionCalendar:
    @pytest.mark.asyncio
    async def test_entries_include_production_delays(self, mock_db, job_factory, shift_factory, delay_factory):
        job = job_factory.create()
        delay = delay_factory.create(job_id=job.id, duration=600, insert_after=1)
        mock_db.execute.side_effect = [_result([job]), _result([delay]), _result([shift_factory.create()])]

        entries, warnings = await CalendarService(mock_db).production_calendar()

        assert warnings == []
        assert len(entries) == 1
        entry = entries[0]
        assert entry["job_id"] == str(job.id)
        assert entry["expected_job_duration"] == 2400
        assert entry["start"] == datetime(2026, 2, 23, 7, 0)
        assert entry["end"] == datetime(2026, 2, 23, 7, 40)
        assert entry["segments"][0]["segment_id"] == f"kj-{job.id}-day-0"
        assert entry["scenario"] is None

    @pytest.mark.asyncio
    async def test_unscheduled_and_out_of_range_jobs_left_out(self, mock_db, job_factory, shift_factory):
        unscheduled = job_factory.create(scheduled_date=None)
        later = job_factory.create(scheduled_date=date(2026, 3, 9))
        mock_db.execute.side_effect = [
            _result([unscheduled, later]),
            _result([]),
            _result([shift_factory.create()]),
        ]

        entries, _ = await CalendarService(mock_db).production_calendar(date(2026, 2, 23), date(2026, 2, 28))
        assert entries == []

    @pytest.mark.asyncio
    async def test_unschedulable_job_becomes_warning(self, mock_db, job_factory, shift_factory):
        no_time = shift_factory.create(start_time="07:00", end_time="07:30", break_start="07:00", break_duration=30)
        stuck = job_factory.create(job_number="KJ-STUCK", allowed_shift_ids=[no_time.id])
        fine = job_factory.create()
        mock_db.execute.side_effect = [
            _result([stuck, fine]),
            _result([]),
            _result([shift_factory.create(), no_time]),
        ]

        entries, warnings = await CalendarService(mock_db).production_calendar()

        assert [entry["job_id"] for entry in entries] == [str(fine.id)]
        assert len(warnings) == 1
        assert "KJ-STUCK" in warnings[0]


class TestScenarioCalendar:
    @pytest.mark.asyncio
    async def test_only_changed_jobs_are_returned(
        self, mock_db, job_factory, shift_factory, scenario_factory, change_factory
    ):
        untouched = job_factory.create()
        add = change_factory.create(
            "ADD",
            change_data={
                "job_number": "KJ-RUSH",
                "customer_name": "Acme Assembly",
                "ordered_quantity": 10,
                "route_steps": [{"name": "Pick", "expected_seconds": 60}],
                "scheduled_date": "2026-02-24",
                "scheduled_start_time": "07:00",
            },
        )
        scenario = scenario_factory.create(changes=[add])
        mock_db.execute.side_effect = [
            _result([shift_factory.create()]),
            _result(one=scenario),
            _result([untouched]),
            _result([]),
        ]

        entries, warnings = await CalendarService(mock_db).scenario_calendar([scenario.id])

        assert warnings == []
        assert len(entries) == 1
        entry = entries[0]
        assert entry["job_id"] == str(add.id)
        assert entry["scenario"]["operation"] == "ADD"
        assert entry["scenario"]["scenario_id"] == str(scenario.id)
        assert entry["end"] == datetime(2026, 2, 24, 7, 10)


class TestMoveSegment:
    @pytest.mark.asyncio
    async def test_moves_production_job_without_active_scenario(self, mock_db, job_factory):
        job = job_factory.create()
        mock_db.get.return_value = job
        mock_db.execute.return_value = _result([])

        job_id, scenario_id = await CalendarService(mock_db).move_segment(
            f"kj-{job.id}-day-2", date(2026, 2, 25), "09:30"
        )

        assert (job_id, scenario_id) == (str(job.id), None)
        assert job.scheduled_date == date(2026, 2, 25)
        assert job.scheduled_start_time == "09:30"

    @pytest.mark.asyncio
    async def test_active_scenario_records_change(self, mock_db, job_factory, scenario_factory):
        job = job_factory.create()
        scenario = scenario_factory.create(is_active=True)
        mock_db.get.return_value = job
        mock_db.execute.side_effect = [_result([scenario]), _result(one=scenario)]

        job_id, scenario_id = await CalendarService(mock_db).move_segment(
            f"kj-{job.id}-day-0", date(2026, 2, 25), "09:30"
        )

        assert scenario_id == scenario.id
        assert job.scheduled_date == date(2026, 2, 23)
        change = mock_db.add.call_args.args[0]
        assert change.operation == "MODIFY"
        assert change.change_data == {"scheduled_date": "2026-02-25", "scheduled_start_time": "09:30"}
        assert change.original_data == {"scheduled_date": "2026-02-23", "scheduled_start_time": "07:00"}

    @pytest.mark.asyncio
    async def test_added_job_move_updates_add_change(self, mock_db, scenario_factory, change_factory):
        add = change_factory.create("ADD", change_data={"job_number": "KJ-RUSH", "scheduled_date": "2026-02-24"})
        scenario = scenario_factory.create(is_active=True, changes=[add])
        mock_db.get.return_value = None
        mock_db.execute.return_value = _result([scenario])

        job_id, scenario_id = await CalendarService(mock_db).move_segment(f"kj-{add.id}", date(2026, 2, 26), "10:00")

        assert (job_id, scenario_id) == (str(add.id), scenario.id)
        assert add.change_data == {
            "job_number": "KJ-RUSH",
            "scheduled_date": "2026-02-26",
            "scheduled_start_time": "10:00",
        }
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_segment_id(self, mock_db):
        with pytest.raises(CalendarError):
            await CalendarService(mock_db).move_segment("kj-not-a-uuid-day-0", date(2026, 2, 26), "10:00")

    @pytest.mark.asyncio
    async def test_unknown_job(self, mock_db):
        mock_db.get.return_value = None
        mock_db.execute.return_value = _result([])
        with pytest.raises(CalendarError):
            await CalendarService(mock_db).move_segment(f"kj-{uuid.uuid4()}", date(2026, 2, 26), "10:00")
