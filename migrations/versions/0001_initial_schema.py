"""Initial schema for activities, attempts and grades

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19

"""

import typing as t

from alembic import op
from sqlalchemy.schema import Column, ForeignKey, Index, UniqueConstraint
from sqlalchemy.types import BigInteger, Boolean, Float, String

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: str | None = None
branch_labels: str | t.Sequence[str] | None = None
depends_on: str | t.Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "activities",
        Column("activity_id", String(22), primary_key=True),
        Column("name", String, nullable=False, server_default=""),
        Column("open_time", BigInteger, nullable=False, server_default="0"),
        Column("close_time", BigInteger, nullable=False, server_default="0"),
        Column("time_limit_seconds", BigInteger, nullable=False, server_default="0"),
        Column("grace_period_seconds", BigInteger, nullable=False, server_default="0"),
        Column("overdue_handling", String(32), nullable=False, server_default="autoabandon"),
        Column("max_attempts", BigInteger, nullable=False, server_default="0"),
        Column("password", String, nullable=False, server_default=""),
        Column("subnet", String, nullable=False, server_default=""),
        Column("delay1_seconds", BigInteger, nullable=False, server_default="0"),
        Column("delay2_seconds", BigInteger, nullable=False, server_default="0"),
        Column("grading_strategy", String(32), nullable=False, server_default="highest"),
        Column("max_grade", Float, nullable=False, server_default="10"),
        Column("sum_of_part_marks", Float, nullable=False, server_default="0"),
        Column("time_modified", BigInteger, nullable=False, server_default="0"),
    )

    op.create_table(
        "feedback_bands",
        Column("activity_id", String(22), ForeignKey("activities.activity_id"), primary_key=True),
        Column("position", BigInteger, primary_key=True),
        Column("min_grade", Float, nullable=False),
        Column("max_grade", Float, nullable=False),
        Column("text", String, nullable=False, server_default=""),
    )

    op.create_table(
        "group_memberships",
        Column("group_id", String(22), primary_key=True),
        Column("user_id", String(22), primary_key=True),
    )
    op.create_index("ix_group_memberships_user_id", "group_memberships", ["user_id"])

    op.create_table(
        "overrides",
        Column("override_id", String(22), primary_key=True),
        Column("activity_id", String(22), ForeignKey("activities.activity_id"), nullable=False),
        Column("user_id", String(22), nullable=True),
        Column("group_id", String(22), nullable=True),
        Column("open_time", BigInteger, nullable=True),
        Column("close_time", BigInteger, nullable=True),
        Column("time_limit_seconds", BigInteger, nullable=True),
        Column("max_attempts", BigInteger, nullable=True),
        Column("password", String, nullable=True),
        UniqueConstraint("activity_id", "user_id"),
        UniqueConstraint("activity_id", "group_id"),
    )

    op.create_table(
        "attempts",
        Column("attempt_id", String(22), primary_key=True),
        Column("activity_id", String(22), ForeignKey("activities.activity_id"), nullable=False),
        Column("user_id", String(22), nullable=False),
        Column("attempt_number", BigInteger, nullable=False),
        Column("start_time", BigInteger, nullable=False),
        Column("state", String(32), nullable=False, server_default="inprogress"),
        Column("finish_time", BigInteger, nullable=False, server_default="0"),
        Column("check_time", BigInteger, nullable=True),
        Column("sum_of_marks", Float, nullable=True),
        Column("is_preview", Boolean, nullable=False, server_default="false"),
        Column("time_modified", BigInteger, nullable=False, server_default="0"),
        UniqueConstraint("activity_id", "user_id", "attempt_number"),
        Index("ix_attempts_state_check_time", "state", "check_time"),
    )

    op.create_table(
        "attempt_marks",
        Column("attempt_id", String(22), ForeignKey("attempts.attempt_id"), primary_key=True),
        Column("slot", BigInteger, primary_key=True),
        Column("mark", Float, nullable=True),
    )

    op.create_table(
        "grades",
        Column("activity_id", String(22), ForeignKey("activities.activity_id"), primary_key=True),
        Column("user_id", String(22), primary_key=True),
        Column("grade", Float, nullable=False),
        Column("time_modified", BigInteger, nullable=False, server_default="0"),
    )


def downgrade() -> None:
    op.drop_table("grades")
    op.drop_table("attempt_marks")
    op.drop_table("attempts")
    op.drop_table("overrides")
    op.drop_index("ix_group_memberships_user_id", table_name="group_memberships")
    op.drop_table("group_memberships")
    op.drop_table("feedback_bands")
    op.drop_table("activities")
