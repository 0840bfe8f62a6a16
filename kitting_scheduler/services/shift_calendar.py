"""Shift calendar model.

Shifts are recurring daily windows ("HH:MM" start/end, minute precision)
with an optional single break. A shift whose end is at or before its start
runs overnight and ends on the following calendar day; that wraparound is
applied in arithmetic only, the stored times are never rewritten.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


class ShiftConfigurationError(ValueError):
    """Raised for malformed shift definitions (bad time strings, oversized breaks)."""


def parse_time(value: str) -> int:
    """Convert an "HH:MM" string to minutes since midnight."""
    try:
        hours_text, minutes_text = value.strip().split(":")
        hours, minutes = int(hours_text), int(minutes_text)
    except (AttributeError, ValueError) as exc:
        raise ShiftConfigurationError(f"Malformed time string: {value!r}") from exc
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        raise ShiftConfigurationError(f"Time out of range: {value!r}")
    return hours * 60 + minutes


def format_minutes(minutes: int) -> str:
    """Convert minutes since midnight to "HH:MM" (wrapping past midnight)."""
    minutes = int(minutes) % MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def format_clock(instant: datetime) -> str:
    return f"{instant.hour:02d}:{instant.minute:02d}"


def is_weekend(day: date) -> bool:
    """Saturday or Sunday."""
    return day.weekday() >= 5


@dataclass(frozen=True)
class ShiftSpec:
    """Read-only view of a shift record used by the scheduling core."""

    id: uuid.UUID | str
    name: str
    start_minutes: int
    end_minutes: int
    break_start_minutes: int | None = None
    break_minutes: int = 0
    is_active: bool = True
    order: int = 0
    color: str | None = None

    @classmethod
    def build(
        cls,
        id: uuid.UUID | str,
        name: str,
        start_time: str,
        end_time: str,
        break_start: str | None = None,
        break_duration: int | None = None,
        is_active: bool = True,
        order: int = 0,
        color: str | None = None,
    ) -> "ShiftSpec":
        """Parse and validate a shift definition."""
        break_minutes = int(break_duration or 0)
        if break_minutes < 0:
            raise ShiftConfigurationError(f"Shift {name!r} has a negative break duration")
        if break_minutes and not break_start:
            raise ShiftConfigurationError(f"Shift {name!r} has a break duration but no break start")
        spec = cls(
            id=id,
            name=name,
            start_minutes=parse_time(start_time),
            end_minutes=parse_time(end_time),
            break_start_minutes=parse_time(break_start) if break_start and break_minutes else None,
            break_minutes=break_minutes,
            is_active=is_active,
            order=order,
            color=color,
        )
        if spec.productive_minutes < 0:
            raise ShiftConfigurationError(
                f"Shift {name!r} break ({break_minutes} min) is longer than the shift"
            )
        if spec.break_start_minutes is not None:
            offset = spec.break_offset
            if offset + spec.break_minutes > spec.span_minutes:
                raise ShiftConfigurationError(f"Shift {name!r} break falls outside the shift window")
        return spec

    @classmethod
    def from_model(cls, shift: Any) -> "ShiftSpec":
        """Build from a Shift ORM row (or any object with the same attributes)."""
        return cls.build(
            id=shift.id,
            name=shift.name,
            start_time=shift.start_time,
            end_time=shift.end_time,
            break_start=shift.break_start,
            break_duration=shift.break_duration,
            is_active=shift.is_active,
            order=shift.order,
            color=shift.color,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ShiftSpec":
        return cls.build(
            id=data["id"],
            name=data.get("name", ""),
            start_time=data["start_time"],
            end_time=data["end_time"],
            break_start=data.get("break_start"),
            break_duration=data.get("break_duration"),
            is_active=data.get("is_active", True),
            order=data.get("order", 0),
            color=data.get("color"),
        )

    @property
    def is_overnight(self) -> bool:
        return self.end_minutes <= self.start_minutes

    @property
    def wrapped_end_minutes(self) -> int:
        if self.is_overnight:
            return self.end_minutes + MINUTES_PER_DAY
        return self.end_minutes

    @property
    def span_minutes(self) -> int:
        return self.wrapped_end_minutes - self.start_minutes

    @property
    def productive_minutes(self) -> int:
        return self.span_minutes - self.break_minutes

    @property
    def break_offset(self) -> int:
        """Minutes from shift start to break start (0 when there is no break)."""
        if self.break_start_minutes is None:
            return 0
        return (self.break_start_minutes - self.start_minutes) % MINUTES_PER_DAY


def productive_hours(shift: ShiftSpec) -> float:
    """Shift span minus break, in hours."""
    return shift.productive_minutes / 60


def total_productive_hours_per_day(shifts: list[ShiftSpec]) -> float:
    return sum(productive_hours(shift) for shift in shifts)


def shift_windows(shift: ShiftSpec, day: date) -> list[tuple[datetime, datetime]]:
    """Productive sub-windows of the occurrence of ``shift`` that starts on ``day``."""
    start = datetime.combine(day, time()) + timedelta(minutes=shift.start_minutes)
    end = start + timedelta(minutes=shift.span_minutes)
    if shift.break_start_minutes is None:
        return [(start, end)] if end > start else []

    break_start = start + timedelta(minutes=shift.break_offset)
    break_end = break_start + timedelta(minutes=shift.break_minutes)
    windows = []
    if break_start > start:
        windows.append((start, break_start))
    if end > break_end:
        windows.append((break_end, end))
    return windows


def _contains(shift: ShiftSpec, minute_of_span: float) -> bool:
    if not 0 <= minute_of_span < shift.span_minutes:
        return False
    if shift.break_start_minutes is None:
        return True
    offset = shift.break_offset
    return not offset <= minute_of_span < offset + shift.break_minutes


def shift_containing(instant: datetime, shifts: list[ShiftSpec]) -> ShiftSpec | None:
    """First shift, in iteration order, whose productive window contains ``instant``.

    Instants after midnight also match the previous day's occurrence of an
    overnight shift.
    """
    minute = instant.hour * 60 + instant.minute + instant.second / 60
    for shift in shifts:
        elapsed = minute - shift.start_minutes
        if _contains(shift, elapsed) or (shift.is_overnight and _contains(shift, elapsed + MINUTES_PER_DAY)):
            return shift
    return None
