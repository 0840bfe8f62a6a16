"""Scenario and ScenarioChange SQLAlchemy models."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text, func, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from kitting_scheduler.core.database import Base


class Scenario(Base):
    """Named what-if layer of changes over the production jobs."""

    __tablename__ = "scenarios"
    __table_args__ = (
        Index(
            "uq_scenarios_single_active",
            "is_active",
            unique=True,
            postgresql_where=text("is_active"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default="false", comment="At most one active scenario"
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

    changes: Mapped[list["ScenarioChange"]] = relationship(
        back_populates="scenario",
        cascade="all, delete-orphan",
        order_by="ScenarioChange.created_at",
        lazy="selectin",
    )


class ScenarioChange(Base):
    """One ADD, MODIFY or DELETE recorded against a scenario."""

    __tablename__ = "scenario_changes"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    scenario_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("scenarios.id", ondelete="CASCADE"),
        nullable=False,
    )
    job_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True, comment="None for ADD"
    )
    operation: Mapped[str] = mapped_column(String(10), nullable=False, comment="ADD | MODIFY | DELETE")
    change_data: Mapped[dict] = mapped_column(JSONB, nullable=False, server_default="{}")
    original_data: Mapped[dict | None] = mapped_column(
        JSONB, nullable=True, comment="Pre-change values, informational only"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    scenario: Mapped["Scenario"] = relationship(back_populates="changes")
