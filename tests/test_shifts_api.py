"""Tests for shift CRUD API endpoints."""

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from kitting_scheduler.api.v1.shifts import (
    create_shift,
    delete_shift,
    get_shift,
    list_shifts,
    toggle_shift,
    update_shift,
)
from kitting_scheduler.core.events import SHIFT_UPDATED
from kitting_scheduler.models.shift import Shift
from kitting_scheduler.schemas.shift import ShiftCreate, ShiftResponse, ShiftToggle, ShiftUpdate


def _found(shift) -> MagicMock:
    mock_result = MagicMock()
    mock_result.scalar_one_or_none.return_value = shift
    return mock_result


def _job_rows(*rows) -> MagicMock:
    mock_result = MagicMock()
    mock_result.all.return_value = list(rows)
    return mock_result


async def _fake_refresh(obj):
    obj.id = obj.id or uuid.uuid4()
    obj.created_at = datetime.now(timezone.utc)
    obj.updated_at = datetime.now(timezone.utc)


class TestListShifts:
    @pytest.mark.asyncio
    async def test_list_returns_shifts(self, mock_db, shift_factory):
        mock_result = MagicMock()
        mock_result.scalars.return_value.all.return_value = [shift_factory.create(), shift_factory.create()]
        mock_db.execute = AsyncMock(return_value=mock_result)

        result = await list_shifts(active_only=False, db=mock_db)
        assert len(result) == 2

    @pytest.mark.asyncio
    async def test_active_only_filters(self, mock_db):
        mock_result = MagicMock()
        mock_result.scalars.return_value.all.return_value = []
        mock_db.execute = AsyncMock(return_value=mock_result)

        await list_shifts(active_only=True, db=mock_db)
        assert "shifts.is_active" in str(mock_db.execute.await_args.args[0])


class TestShiftResponse:
    def test_productive_hours_computed(self, shift_factory):
        response = ShiftResponse.model_validate(shift_factory.create())
        assert response.productive_hours == 7.5
        assert response.model_dump()["productive_hours"] == 7.5

    def test_overnight_productive_hours(self, shift_factory):
        shift = shift_factory.create(start_time="23:00", end_time="07:00", break_start="03:00")
        assert ShiftResponse.model_validate(shift).productive_hours == 7.5


class TestCreateShift:
    @pytest.mark.asyncio
    async def test_create_success(self, mock_db, mock_events):
        mock_db.refresh = AsyncMock(side_effect=_fake_refresh)
        payload = ShiftCreate(name="Day", start_time="07:00", end_time="15:00", break_start="11:00", break_duration=30)

        result = await create_shift(payload=payload, db=mock_db, events=mock_events)

        assert isinstance(result, Shift)
        assert ShiftResponse.model_validate(result).productive_hours == 7.5
        mock_db.add.assert_called_once_with(result)
        mock_events.publish.assert_awaited_once()
        assert mock_events.publish.await_args.args[0] == SHIFT_UPDATED

    @pytest.mark.asyncio
    async def test_break_longer_than_shift_rejected(self, mock_db, mock_events):
        payload = ShiftCreate(name="Short", start_time="07:00", end_time="08:00", break_start="07:10", break_duration=90)

        with pytest.raises(Exception) as exc_info:
            await create_shift(payload=payload, db=mock_db, events=mock_events)
        assert exc_info.value.status_code == 422
        mock_db.add.assert_not_called()

    def test_malformed_time_rejected(self):
        with pytest.raises(ValueError):
            ShiftCreate(name="Bad", start_time="7am", end_time="15:00")

    def test_break_duration_requires_break_start(self):
        with pytest.raises(ValueError, match="break_start"):
            ShiftCreate(name="Day", start_time="07:00", end_time="15:00", break_duration=30)


class TestGetShift:
    @pytest.mark.asyncio
    async def test_get_not_found(self, mock_db):
        mock_db.execute = AsyncMock(return_value=_found(None))
        with pytest.raises(Exception) as exc_info:
            await get_shift(shift_id=uuid.uuid4(), db=mock_db)
        assert exc_info.value.status_code == 404


class TestUpdateShift:
    @pytest.mark.asyncio
    async def test_update_publishes_affected_jobs(self, mock_db, mock_events, shift_factory):
        shift = shift_factory.create()
        unrestricted, restricted = uuid.uuid4(), uuid.uuid4()
        mock_db.execute = AsyncMock(
            side_effect=[_found(shift), _job_rows((unrestricted, []), (restricted, [uuid.uuid4()]))]
        )

        result = await update_shift(
            shift_id=shift.id, payload=ShiftUpdate(end_time="16:00"), db=mock_db, events=mock_events
        )

        assert result.end_time == "16:00"
        event_type, data = mock_events.publish.await_args.args
        assert event_type == SHIFT_UPDATED
        assert data["affected_job_ids"] == [str(unrestricted)]

    @pytest.mark.asyncio
    async def test_invalid_update_rejected(self, mock_db, mock_events, shift_factory):
        shift = shift_factory.create()
        mock_db.execute = AsyncMock(return_value=_found(shift))

        with pytest.raises(Exception) as exc_info:
            await update_shift(
                shift_id=shift.id, payload=ShiftUpdate(break_duration=600), db=mock_db, events=mock_events
            )
        assert exc_info.value.status_code == 422
        mock_events.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_clearing_break_start_alone_rejected(self, mock_db, mock_events, shift_factory):
        shift = shift_factory.create()
        mock_db.execute = AsyncMock(return_value=_found(shift))

        with pytest.raises(Exception) as exc_info:
            await update_shift(
                shift_id=shift.id, payload=ShiftUpdate(break_start=None), db=mock_db, events=mock_events
            )
        assert exc_info.value.status_code == 422
        mock_events.publish.assert_not_awaited()


class TestToggleShift:
    @pytest.mark.asyncio
    async def test_toggle_off(self, mock_db, mock_events, shift_factory):
        shift = shift_factory.create()
        dependent = uuid.uuid4()
        mock_db.execute = AsyncMock(side_effect=[_found(shift), _job_rows((dependent, [shift.id]))])

        result = await toggle_shift(shift_id=shift.id, payload=ShiftToggle(is_active=False), db=mock_db, events=mock_events)

        assert result.is_active is False
        data = mock_events.publish.await_args.args[1]
        assert data["is_active"] is False
        assert data["affected_job_ids"] == [str(dependent)]


class TestDeleteShift:
    @pytest.mark.asyncio
    async def test_delete_success(self, mock_db, mock_events, shift_factory):
        shift = shift_factory.create()
        mock_db.execute = AsyncMock(side_effect=[_found(shift), _job_rows()])

        await delete_shift(shift_id=shift.id, db=mock_db, events=mock_events)

        mock_db.delete.assert_awaited_once_with(shift)
        assert mock_events.publish.await_args.args[1]["deleted"] is True
