"""Day segmentation of scheduled job spans.

Calendar views render one cell per day, so a job's ``[start, end]`` span is
split into one segment per calendar date on which it performs work. Each
segment id encodes the parent job and the day offset; dragging any segment
moves the whole job, after which every segment is derived again.
"""

import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from kitting_scheduler.core.config import settings
from kitting_scheduler.services.forward_scheduler import (
    iter_productive_windows,
    resolve_effective_shifts,
)
from kitting_scheduler.services.shift_calendar import ShiftSpec, format_clock

logger = logging.getLogger(__name__)

SEGMENT_PREFIX = "kj-"
DAY_MARKER = "-day-"
END_OF_DAY_DISPLAY = "23:59"


@dataclass(frozen=True)
class DaySegment:
    """One calendar day's visible slice of a scheduled job."""

    segment_id: str
    job_id: str
    day_index: int
    date: date
    display_start: str
    display_end: str
    work_seconds: float
    is_first_day: bool
    is_last_day: bool


def make_segment_id(job_id: uuid.UUID | str, day_index: int) -> str:
    return f"{SEGMENT_PREFIX}{job_id}{DAY_MARKER}{day_index}"


def parse_segment_id(segment_id: str) -> str:
    """Return the job id encoded in a segment id.

    Accepts both ``kj-<job>-day-<n>`` and the single-entry form ``kj-<job>``.
    """
    if not segment_id.startswith(SEGMENT_PREFIX):
        raise ValueError(f"Not a job segment id: {segment_id!r}")
    body = segment_id[len(SEGMENT_PREFIX):]
    job_id, marker, index = body.rpartition(DAY_MARKER)
    if marker and index.isdigit():
        return job_id
    return body


def _clip(windows: Iterable[tuple[datetime, datetime]], start: datetime, end: datetime):
    for window_start, window_end in windows:
        if window_start >= end:
            break
        clipped_start, clipped_end = max(window_start, start), min(window_end, end)
        if clipped_end > clipped_start:
            yield clipped_start, clipped_end


def _split_by_day(start: datetime, end: datetime) -> list[tuple[datetime, datetime]]:
    pieces = []
    cursor = start
    while cursor < end:
        midnight = datetime.combine(cursor.date() + timedelta(days=1), time())
        pieces.append((cursor, min(end, midnight)))
        cursor = midnight
    return pieces


def segment_job_span(
    job_id: uuid.UUID | str,
    start: datetime,
    end: datetime,
    shifts: Iterable[ShiftSpec],
    *,
    allowed_shift_ids: Iterable[uuid.UUID | str] = (),
    include_weekends: bool = False,
    ignore_active_status: bool = False,
    max_days: int = settings.MAX_SEGMENT_DAYS,
) -> list[DaySegment]:
    """Split a job span into per-day display segments.

    Only dates that carry productive work appear. Intermediate days whose
    work runs up to midnight display ``23:59`` as their end; the last day
    always shows the real completion time.
    """
    effective = resolve_effective_shifts(shifts, allowed_shift_ids, ignore_active_status)
    if effective:
        worked = list(_clip(iter_productive_windows(effective, start, include_weekends), start, end))
    else:
        worked = [(start, end)] if end > start else []

    by_day: dict[date, list[tuple[datetime, datetime]]] = {}
    for piece_start, piece_end in worked:
        for day_start, day_end in _split_by_day(piece_start, piece_end):
            by_day.setdefault(day_start.date(), []).append((day_start, day_end))

    if not by_day:
        # Zero-length work still occupies its start slot.
        by_day[start.date()] = [(start, start)]

    days = sorted(by_day)
    truncated = len(days) > max_days
    if truncated:
        logger.warning("Job %s spans %d days, truncating display to %d", job_id, len(days), max_days)
        days = days[:max_days]

    segments: list[DaySegment] = []
    for position, day in enumerate(days):
        pieces = by_day[day]
        first_instant, last_instant = pieces[0][0], pieces[-1][1]
        is_final_kept = position == len(days) - 1
        # A truncated span continues past its last displayed day.
        if last_instant.date() != day or (truncated and is_final_kept):
            display_end = END_OF_DAY_DISPLAY
        else:
            display_end = format_clock(last_instant)
        segments.append(
            DaySegment(
                segment_id=make_segment_id(job_id, (day - start.date()).days),
                job_id=str(job_id),
                day_index=(day - start.date()).days,
                date=day,
                display_start=format_clock(first_instant),
                display_end=display_end,
                work_seconds=sum((b - a).total_seconds() for a, b in pieces),
                is_first_day=position == 0,
                is_last_day=is_final_kept and not truncated,
            )
        )
    return segments
