"""KittingJob and RouteStep SQLAlchemy models."""

import uuid
from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import ARRAY, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from kitting_scheduler.core.database import Base


class KittingJob(Base):
    """Production kitting job."""

    __tablename__ = "kitting_jobs"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    job_number: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    customer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    customer_spec: Mapped[str | None] = mapped_column(Text, nullable=True)
    run_length: Mapped[str | None] = mapped_column(String(50), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        server_default="scheduled",
        comment="scheduled | in_progress | paused | completed",
    )
    ordered_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    setup: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0", comment="seconds")
    make_ready: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0", comment="seconds")
    take_down: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0", comment="seconds")
    station_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1")
    scheduled_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    scheduled_start_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    allowed_shift_ids: Mapped[list[uuid.UUID]] = mapped_column(
        ARRAY(UUID(as_uuid=True)),
        nullable=False,
        server_default="{}",
        comment="Empty means every active shift",
    )
    include_weekends: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")
    expected_kit_duration: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default="0", comment="Derived: sum of route step seconds"
    )
    expected_job_duration: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default="0", comment="Derived: total work seconds"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    route_steps: Mapped[list["RouteStep"]] = relationship(
        back_populates="job",
        cascade="all, delete-orphan",
        order_by="RouteStep.order",
        lazy="selectin",
    )


class RouteStep(Base):
    """One ordered step of a job's route."""

    __tablename__ = "route_steps"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    job_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("kitting_jobs.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    expected_seconds: Mapped[int] = mapped_column(Integer, nullable=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False)

    job: Mapped["KittingJob"] = relationship(back_populates="route_steps")
