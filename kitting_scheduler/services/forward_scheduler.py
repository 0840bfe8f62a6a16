"""Shift-aware forward scheduling.

Given a start instant and a required amount of productive work, walks
forward across the productive windows of the effective shift set
(skipping breaks, gaps between shifts and, unless included, weekends) and
returns the instant at which the work completes. This is a deterministic
forward simulation: no search, no backtracking.

All instants are naive local wall-clock datetimes.
"""

import logging
import uuid
from collections.abc import Iterable, Iterator
from datetime import date, datetime, time, timedelta

from kitting_scheduler.services.shift_calendar import (
    ShiftConfigurationError,
    ShiftSpec,
    is_weekend,
    shift_windows,
)

logger = logging.getLogger(__name__)

Window = tuple[datetime, datetime]


class SchedulingError(Exception):
    """Raised when a scheduling request itself is invalid."""


def resolve_effective_shifts(
    shifts: Iterable[ShiftSpec],
    allowed_shift_ids: Iterable[uuid.UUID | str] = (),
    ignore_active_status: bool = False,
) -> list[ShiftSpec]:
    """Select the shifts a job may run on, sorted by ``order``.

    A non-empty ``allowed_shift_ids`` restricts the set (and, unless
    ``ignore_active_status``, further to active shifts); an empty one means
    every globally active shift.
    """
    allowed = {str(shift_id) for shift_id in allowed_shift_ids}
    if allowed:
        selected = [
            shift
            for shift in shifts
            if str(shift.id) in allowed and (ignore_active_status or shift.is_active)
        ]
    else:
        selected = [shift for shift in shifts if shift.is_active]
    return sorted(selected, key=lambda s: s.order)


def _weekday_pieces(start: datetime, end: datetime) -> Iterator[Window]:
    """Split a window at midnight and drop the parts that fall on a weekend."""
    while start < end:
        midnight = datetime.combine(start.date() + timedelta(days=1), time.min)
        piece_end = min(end, midnight)
        if not is_weekend(start.date()):
            yield start, piece_end
        start = piece_end


def _day_windows(shifts: list[ShiftSpec], day: date, include_weekends: bool) -> list[Window]:
    """Productive windows of the shift occurrences starting on ``day``.

    Weekend exclusion applies per calendar day, so a Friday overnight shift
    stops at midnight and a Sunday one only contributes its Monday hours.
    """
    windows: list[Window] = []
    for shift in shifts:
        for start, end in shift_windows(shift, day):
            if include_weekends:
                windows.append((start, end))
            else:
                windows.extend(_weekday_pieces(start, end))
    windows.sort()
    return windows


def iter_productive_windows(
    shifts: list[ShiftSpec],
    since: datetime,
    include_weekends: bool = False,
) -> Iterator[Window]:
    """Yield merged productive windows ending after ``since``, chronologically.

    Overlapping or touching windows from different shifts are merged, so
    the windows yielded are disjoint. The generator is unbounded.
    """
    if sum(shift.productive_minutes for shift in shifts) <= 0:
        raise ShiftConfigurationError("Effective shifts have no productive time")

    day = since.date() - timedelta(days=1)
    pending: Window | None = None
    while True:
        for start, end in _day_windows(shifts, day, include_weekends):
            if pending is not None and start <= pending[1]:
                pending = (pending[0], max(pending[1], end))
                continue
            if pending is not None and pending[1] > since:
                yield pending
            pending = (start, end)
        day += timedelta(days=1)
        # Occurrences starting on ``day`` or later cannot merge into a window
        # that ended before midnight of ``day``.
        if pending is not None and pending[1] < datetime.combine(day, datetime.min.time()):
            if pending[1] > since:
                yield pending
            pending = None


def next_productive_instant(
    instant: datetime,
    shifts: list[ShiftSpec],
    include_weekends: bool = False,
) -> datetime:
    """Advance ``instant`` to the nearest point at which productive work can happen."""
    for start, _ in iter_productive_windows(shifts, instant, include_weekends):
        return max(instant, start)
    raise ShiftConfigurationError("No productive window found")  # pragma: no cover


def schedule_forward(
    start: datetime,
    duration_seconds: float,
    shifts: Iterable[ShiftSpec],
    *,
    allowed_shift_ids: Iterable[uuid.UUID | str] = (),
    include_weekends: bool = False,
    ignore_active_status: bool = False,
) -> datetime:
    """Return the instant at which ``duration_seconds`` of work started at ``start`` completes."""
    if duration_seconds < 0:
        raise SchedulingError(f"Duration must be non-negative, got {duration_seconds}")

    effective = resolve_effective_shifts(shifts, allowed_shift_ids, ignore_active_status)
    if not effective:
        logger.warning("No effective shifts available, using 24/7 scheduling")
        return start + timedelta(seconds=duration_seconds)

    remaining = float(duration_seconds)
    current = start
    for window_start, window_end in iter_productive_windows(effective, start, include_weekends):
        current = max(current, window_start)
        available = (window_end - current).total_seconds()
        if remaining <= available:
            end = current + timedelta(seconds=remaining)
            logger.debug("Scheduled %ss from %s to %s", duration_seconds, start, end)
            return end
        remaining -= available
        current = window_end
    raise SchedulingError("Productive window stream ended unexpectedly")  # pragma: no cover


def productive_seconds_between(
    start: datetime,
    end: datetime,
    shifts: Iterable[ShiftSpec],
    *,
    allowed_shift_ids: Iterable[uuid.UUID | str] = (),
    include_weekends: bool = False,
    ignore_active_status: bool = False,
) -> float:
    """Productive seconds of the effective shift set that fall inside ``[start, end)``."""
    if end <= start:
        return 0.0
    effective = resolve_effective_shifts(shifts, allowed_shift_ids, ignore_active_status)
    if not effective:
        return (end - start).total_seconds()

    total = 0.0
    for window_start, window_end in iter_productive_windows(effective, start, include_weekends):
        if window_start >= end:
            break
        overlap = min(window_end, end) - max(window_start, start)
        total += max(overlap.total_seconds(), 0.0)
    return total


def calendar_span(duration_seconds: float, shifts: list[ShiftSpec]) -> tuple[int, float]:
    """Express a duration as (whole productive days, remaining hours) for display."""
    hours = duration_seconds / 3600
    per_day = sum(shift.productive_minutes for shift in shifts if shift.is_active) / 60
    if per_day <= 0:
        return int(hours // 24), hours % 24
    return int(hours // per_day), hours % per_day
