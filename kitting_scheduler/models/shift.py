"""Shift SQLAlchemy model."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from kitting_scheduler.core.database import Base


class Shift(Base):
    """Recurring daily work window with an optional single break."""

    __tablename__ = "shifts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False, comment="HH:MM")
    end_time: Mapped[str] = mapped_column(
        String(5), nullable=False, comment="HH:MM; at or before start_time means overnight"
    )
    break_start: Mapped[str | None] = mapped_column(String(5), nullable=True)
    break_duration: Mapped[int | None] = mapped_column(
        Integer, nullable=True, comment="Break length in minutes"
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="true")
    order: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    color: Mapped[str | None] = mapped_column(String(20), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
