"""Initial schema: shifts, kitting jobs, scenarios and delays.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18

"""

import uuid
from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all initial tables and seed the default shifts."""
    # --- shifts ---
    shifts = op.create_table(
        "shifts",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("start_time", sa.String(5), nullable=False, comment="HH:MM"),
        sa.Column("end_time", sa.String(5), nullable=False, comment="HH:MM; at or before start_time means overnight"),
        sa.Column("break_start", sa.String(5), nullable=True),
        sa.Column("break_duration", sa.Integer(), nullable=True, comment="Break length in minutes"),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("order", sa.Integer(), server_default="0", nullable=False),
        sa.Column("color", sa.String(20), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_shifts_order", "shifts", ["order"])
    op.create_index("ix_shifts_is_active", "shifts", ["is_active"])

    # --- kitting_jobs ---
    op.create_table(
        "kitting_jobs",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("job_number", sa.String(50), nullable=False),
        sa.Column("customer_name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("customer_spec", sa.Text(), nullable=True),
        sa.Column("run_length", sa.String(50), nullable=True),
        sa.Column("status", sa.String(20), server_default="scheduled", nullable=False, comment="scheduled | in_progress | paused | completed"),
        sa.Column("ordered_quantity", sa.Integer(), nullable=False),
        sa.Column("setup", sa.Integer(), server_default="0", nullable=False, comment="seconds"),
        sa.Column("make_ready", sa.Integer(), server_default="0", nullable=False, comment="seconds"),
        sa.Column("take_down", sa.Integer(), server_default="0", nullable=False, comment="seconds"),
        sa.Column("station_count", sa.Integer(), server_default="1", nullable=False),
        sa.Column("scheduled_date", sa.Date(), nullable=True),
        sa.Column("scheduled_start_time", sa.String(5), nullable=True),
        sa.Column(
            "allowed_shift_ids",
            postgresql.ARRAY(postgresql.UUID(as_uuid=True)),
            server_default="{}",
            nullable=False,
            comment="Empty means every active shift",
        ),
        sa.Column("include_weekends", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("expected_kit_duration", sa.Integer(), server_default="0", nullable=False, comment="Derived: sum of route step seconds"),
        sa.Column("expected_job_duration", sa.Integer(), server_default="0", nullable=False, comment="Derived: total work seconds"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("station_count BETWEEN 1 AND 20", name="ck_kitting_jobs_station_count"),
    )
    op.create_index("ix_kitting_jobs_job_number", "kitting_jobs", ["job_number"])
    op.create_index("ix_kitting_jobs_scheduled_date", "kitting_jobs", ["scheduled_date"])

    # --- route_steps ---
    op.create_table(
        "route_steps",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("job_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("expected_seconds", sa.Integer(), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["job_id"], ["kitting_jobs.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_route_steps_job_id", "route_steps", ["job_id"])

    # --- scenarios ---
    op.create_table(
        "scenarios",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default="false", nullable=False, comment="At most one active scenario"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "uq_scenarios_single_active",
        "scenarios",
        ["is_active"],
        unique=True,
        postgresql_where=sa.text("is_active"),
    )

    # --- scenario_changes ---
    op.create_table(
        "scenario_changes",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("scenario_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("job_id", postgresql.UUID(as_uuid=True), nullable=True, comment="None for ADD"),
        sa.Column("operation", sa.String(10), nullable=False, comment="ADD | MODIFY | DELETE"),
        sa.Column("change_data", postgresql.JSONB(), server_default="{}", nullable=False),
        sa.Column("original_data", postgresql.JSONB(), nullable=True, comment="Pre-change values, informational only"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["scenario_id"], ["scenarios.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_scenario_changes_scenario_id", "scenario_changes", ["scenario_id"])

    # --- job_delays ---
    op.create_table(
        "job_delays",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("scenario_id", postgresql.UUID(as_uuid=True), nullable=True, comment="None for production delays"),
        sa.Column("job_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False, comment="seconds"),
        sa.Column("insert_after", sa.Integer(), server_default="0", nullable=False, comment="Route step position; 0 = before the first"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["scenario_id"], ["scenarios.id"], ondelete="CASCADE"),
        sa.CheckConstraint("duration > 0", name="ck_job_delays_duration_positive"),
        sa.CheckConstraint("insert_after >= 0", name="ck_job_delays_insert_after"),
    )
    op.create_index("ix_job_delays_job_id", "job_delays", ["job_id"])
    op.create_index("ix_job_delays_scenario_id", "job_delays", ["scenario_id"])

    # --- default shifts ---
    op.bulk_insert(
        shifts,
        [
            {"id": uuid.UUID("d0000000-0000-0000-0000-000000000001"), "name": "First Shift", "start_time": "07:00", "end_time": "15:00", "break_start": "11:00", "break_duration": 30, "is_active": True, "order": 1, "color": "#e3f2fd"},
            {"id": uuid.UUID("d0000000-0000-0000-0000-000000000002"), "name": "Second Shift", "start_time": "15:00", "end_time": "23:00", "break_start": "19:00", "break_duration": 30, "is_active": True, "order": 2, "color": "#fff3e0"},
            {"id": uuid.UUID("d0000000-0000-0000-0000-000000000003"), "name": "Third Shift", "start_time": "23:00", "end_time": "07:00", "break_start": "03:00", "break_duration": 30, "is_active": True, "order": 3, "color": "#f3e5f5"},
        ],
    )


def downgrade() -> None:
    """Drop all tables in reverse order."""
    op.drop_table("job_delays")
    op.drop_table("scenario_changes")
    op.drop_table("scenarios")
    op.drop_table("route_steps")
    op.drop_table("kitting_jobs")
    op.drop_table("shifts")
