from sqlalchemy import BigInteger, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, MappedAsDataclass

from proctor.model import ActivityID, AttemptID, AttemptState, GradingStrategy, GroupID, OverdueHandling, \
    OverrideID, UserID

from .type import enum_values, ShortUUIDKeyType


class base(MappedAsDataclass, DeclarativeBase):
    type_annotation_map = {
        ActivityID: ShortUUIDKeyType(ActivityID),
        AttemptID: ShortUUIDKeyType(AttemptID),
        UserID: ShortUUIDKeyType(UserID),
        GroupID: ShortUUIDKeyType(GroupID),
        OverrideID: ShortUUIDKeyType(OverrideID),
        # unix seconds outgrow 32 bits
        int: BigInteger,
    }


metadata = base.metadata


# Activities


class activities(base):
    __tablename__ = "activities"

    activity_id: Mapped[ActivityID] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(default="")

    open_time: Mapped[int] = mapped_column(default=0)
    close_time: Mapped[int] = mapped_column(default=0)
    time_limit_seconds: Mapped[int] = mapped_column(default=0)
    grace_period_seconds: Mapped[int] = mapped_column(default=0)
    overdue_handling: Mapped[OverdueHandling] = mapped_column(
        enum_values(OverdueHandling), default=OverdueHandling.AutoAbandon
    )
    max_attempts: Mapped[int] = mapped_column(default=0)

    password: Mapped[str] = mapped_column(default="")
    subnet: Mapped[str] = mapped_column(default="")
    delay1_seconds: Mapped[int] = mapped_column(default=0)
    delay2_seconds: Mapped[int] = mapped_column(default=0)

    grading_strategy: Mapped[GradingStrategy] = mapped_column(
        enum_values(GradingStrategy), default=GradingStrategy.Highest
    )
    max_grade: Mapped[float] = mapped_column(default=10.0)
    sum_of_part_marks: Mapped[float] = mapped_column(default=0.0)

    time_modified: Mapped[int] = mapped_column(default=0)


class feedback_bands(base):
    __tablename__ = "feedback_bands"

    activity_id: Mapped[ActivityID] = mapped_column(ForeignKey("activities.activity_id"), primary_key=True)
    position: Mapped[int] = mapped_column(primary_key=True)
    min_grade: Mapped[float]
    max_grade: Mapped[float]
    text: Mapped[str] = mapped_column(default="")


# Overrides


class group_memberships(base):
    __tablename__ = "group_memberships"

    group_id: Mapped[GroupID] = mapped_column(primary_key=True)
    user_id: Mapped[UserID] = mapped_column(primary_key=True, index=True)


class overrides(base):
    __tablename__ = "overrides"
    __table_args__ = (
        UniqueConstraint("activity_id", "user_id"),
        UniqueConstraint("activity_id", "group_id"),
    )

    override_id: Mapped[OverrideID] = mapped_column(primary_key=True)
    activity_id: Mapped[ActivityID] = mapped_column(ForeignKey("activities.activity_id"))
    user_id: Mapped[UserID | None] = mapped_column(default=None)
    group_id: Mapped[GroupID | None] = mapped_column(default=None)

    # NULL leaves the activity's value in force
    open_time: Mapped[int | None] = mapped_column(default=None)
    close_time: Mapped[int | None] = mapped_column(default=None)
    time_limit_seconds: Mapped[int | None] = mapped_column(default=None)
    max_attempts: Mapped[int | None] = mapped_column(default=None)
    password: Mapped[str | None] = mapped_column(default=None)


# Attempts


class attempts(base):
    __tablename__ = "attempts"
    __table_args__ = (
        UniqueConstraint("activity_id", "user_id", "attempt_number"),
        Index("ix_attempts_state_check_time", "state", "check_time"),
    )

    attempt_id: Mapped[AttemptID] = mapped_column(primary_key=True)
    activity_id: Mapped[ActivityID] = mapped_column(ForeignKey("activities.activity_id"))
    user_id: Mapped[UserID]
    attempt_number: Mapped[int]
    start_time: Mapped[int]

    state: Mapped[AttemptState] = mapped_column(enum_values(AttemptState), default=AttemptState.InProgress)
    finish_time: Mapped[int] = mapped_column(default=0)
    check_time: Mapped[int | None] = mapped_column(default=None)
    sum_of_marks: Mapped[float | None] = mapped_column(default=None)
    is_preview: Mapped[bool] = mapped_column(default=False)

    time_modified: Mapped[int] = mapped_column(default=0)


class attempt_marks(base):
    """The mark awarded for each question slot of an attempt, as last saved."""

    __tablename__ = "attempt_marks"

    attempt_id: Mapped[AttemptID] = mapped_column(ForeignKey("attempts.attempt_id"), primary_key=True)
    slot: Mapped[int] = mapped_column(primary_key=True)
    mark: Mapped[float | None] = mapped_column(default=None)


# Grades


class grades(base):
    __tablename__ = "grades"

    activity_id: Mapped[ActivityID] = mapped_column(ForeignKey("activities.activity_id"), primary_key=True)
    user_id: Mapped[UserID] = mapped_column(primary_key=True)
    grade: Mapped[float]
    time_modified: Mapped[int] = mapped_column(default=0)
