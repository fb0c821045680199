"""baseline schema: users, machines, workout sessions

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-19
"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_baseline"
down_revision = None
branch_labels = None
depends_on = None


def _enum(name: str, *values: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False, length=20)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column(
            "role",
            _enum("user_role", "MEMBER", "INSTRUCTOR", "ADMIN"),
            nullable=False,
        ),
        sa.Column(
            "status",
            _enum("user_status", "ACTIVE", "INACTIVE", "SUSPENDED"),
            nullable=False,
        ),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "machines",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column(
            "status",
            _enum("machine_status", "ACTIVE", "MAINTENANCE", "INACTIVE"),
            nullable=False,
        ),
        sa.Column("location", sa.String(100), nullable=True),
        sa.Column("model", sa.String(100), nullable=True),
        sa.Column("manufacturer", sa.String(100), nullable=True),
        sa.Column("serial_number", sa.String(100), nullable=True),
        sa.Column("performance_score", sa.Float(), nullable=True),
        sa.Column(
            "health_status",
            _enum("health_status", "EXCELLENT", "GOOD", "FAIR", "POOR"),
            nullable=False,
        ),
        sa.Column("maintenance_frequency", sa.Integer(), nullable=True),
        sa.Column("max_usage_hours", sa.Integer(), nullable=True),
        sa.Column("daily_usage_limit", sa.Integer(), nullable=True),
        sa.Column("purchase_cost", sa.Numeric(10, 2), nullable=True),
        sa.Column("purchase_date", sa.Date(), nullable=True),
        sa.Column("last_maintenance", sa.DateTime(timezone=True), nullable=True),
        sa.Column("next_maintenance", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_machines_name"),
    )

    op.create_table(
        "workout_sessions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("machine_id", sa.Integer(), nullable=True),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration", sa.Interval(), nullable=True),
        sa.Column("calories_burned", sa.Integer(), nullable=True),
        sa.Column("avg_heart_rate", sa.Integer(), nullable=True),
        sa.Column("distance", sa.Float(), nullable=True),
        sa.Column("avg_speed", sa.Float(), nullable=True),
        sa.Column("resistance_level", sa.Integer(), nullable=True),
        sa.Column("incline_level", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("data_quality_flag", sa.Boolean(), nullable=True),
        sa.Column("quality_issues", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["machine_id"], ["machines.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_workout_sessions_start_time", "workout_sessions", ["start_time"]
    )
    op.create_index(
        "ix_workout_sessions_user_start",
        "workout_sessions",
        ["user_id", "start_time"],
    )
    op.create_index(
        "ix_workout_sessions_machine_id", "workout_sessions", ["machine_id"]
    )


def downgrade() -> None:
    op.drop_index("ix_workout_sessions_machine_id", table_name="workout_sessions")
    op.drop_index("ix_workout_sessions_user_start", table_name="workout_sessions")
    op.drop_index("ix_workout_sessions_start_time", table_name="workout_sessions")
    op.drop_table("workout_sessions")
    op.drop_table("machines")
    op.drop_table("users")
