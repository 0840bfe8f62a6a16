"""Seed data: the default three-shift work calendar."""

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from kitting_scheduler.models.shift import Shift

# Fixed UUIDs for deterministic seeding
SHIFT_IDS = {
    "First Shift": uuid.UUID("d0000000-0000-0000-0000-000000000001"),
    "Second Shift": uuid.UUID("d0000000-0000-0000-0000-000000000002"),
    "Third Shift": uuid.UUID("d0000000-0000-0000-0000-000000000003"),
}

DEFAULT_SHIFTS = [
    {"name": "First Shift", "start_time": "07:00", "end_time": "15:00", "break_start": "11:00", "color": "#e3f2fd"},
    {"name": "Second Shift", "start_time": "15:00", "end_time": "23:00", "break_start": "19:00", "color": "#fff3e0"},
    # Runs overnight into the next calendar day.
    {"name": "Third Shift", "start_time": "23:00", "end_time": "07:00", "break_start": "03:00", "color": "#f3e5f5"},
]


def _create_default_shifts() -> list[Shift]:
    return [
        Shift(
            id=SHIFT_IDS[spec["name"]],
            break_duration=30,
            is_active=True,
            order=position,
            **spec,
        )
        for position, spec in enumerate(DEFAULT_SHIFTS, start=1)
    ]


async def seed_default_shifts(session: AsyncSession) -> dict[str, int]:
    shifts = _create_default_shifts()
    session.add_all(shifts)
    await session.flush()
    return {"shifts": len(shifts)}


async def seed_if_empty(session: AsyncSession) -> dict[str, int] | None:
    """Seed the default shifts only if no shift exists yet.

    Returns:
        Seed counts if data was seeded, None if shifts are already configured.
    """
    result = await session.execute(select(func.count()).select_from(Shift))
    count = result.scalar() or 0

    if count > 0:
        return None

    return await seed_default_shifts(session)
