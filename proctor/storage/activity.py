from __future__ import annotations

import typing as t

from sqlalchemy import delete, select

from proctor.core import di
from proctor.model import Activity, ActivityID, FeedbackBand, GradingStrategy, OverdueHandling

from . import Session
from .table import activities, feedback_bands


def get(key: ActivityID, session: Session = di.Provide["storage.persistent.session"]) -> Activity | None:
    stmt = select(activities.__table__).where(activities.activity_id == key)
    row = session.execute(stmt).mappings().one_or_none()
    if row is None:
        return None
    return Activity(**row, feedback_bands=find_bands(key, session=session))


def find(
    *, name: str | None = None, session: Session = di.Provide["storage.persistent.session"]
) -> tuple[Activity, ...]:
    stmt = select(activities.__table__).order_by(activities.name)
    if name is not None:
        stmt = stmt.where(activities.name == name)
    rows = session.execute(stmt).mappings().all()
    return tuple(Activity(**row, feedback_bands=find_bands(row["activity_id"], session=session)) for row in rows)


def find_bands(
    activity_id: ActivityID, session: Session = di.Provide["storage.persistent.session"]
) -> tuple[FeedbackBand, ...]:
    stmt = (
        select(feedback_bands.min_grade, feedback_bands.max_grade, feedback_bands.text)
        .where(feedback_bands.activity_id == activity_id)
        .order_by(feedback_bands.position)
    )
    rows = session.execute(stmt).mappings().all()
    return tuple(FeedbackBand(**row) for row in rows)


def create(params: ActivityCreateParams, session: Session = di.Provide["storage.persistent.session"]) -> Activity:
    params = t.cast(ActivityCreateParams, dict(params))
    bands = params.pop("feedback_bands", ())
    row = activities(activity_id=params.pop("activity_id", None) or ActivityID(), **params)
    session.add(row)
    session.flush()
    set_bands(row.activity_id, bands, session=session)
    return get(row.activity_id, session=session)  # type: ignore


def update(
    key: ActivityID,
    params: ActivityUpdateParams,
    session: Session = di.Provide["storage.persistent.session"],
) -> Activity | None:
    stmt = select(activities).where(activities.activity_id == key)
    row = session.execute(stmt).scalar_one_or_none()
    if row is None:
        return None
    params = t.cast(ActivityUpdateParams, dict(params))
    bands = params.pop("feedback_bands", None)
    for field, value in params.items():
        setattr(row, field, value)
    session.flush()
    if bands is not None:
        set_bands(key, bands, session=session)
    return get(key, session=session)


def set_bands(
    key: ActivityID, bands: t.Sequence[FeedbackBand], session: Session = di.Provide["storage.persistent.session"]
) -> None:
    session.execute(delete(feedback_bands.__table__).where(feedback_bands.activity_id == key))
    for position, band in enumerate(bands):
        session.add(
            feedback_bands(
                activity_id=key,
                position=position,
                min_grade=band.min_grade,
                max_grade=band.max_grade,
                text=band.text,
            )
        )
    session.flush()


class ActivityCreateParams(t.TypedDict, total=False):
    activity_id: ActivityID
    name: t.Required[str]
    open_time: int
    close_time: int
    time_limit_seconds: int
    grace_period_seconds: int
    overdue_handling: OverdueHandling
    max_attempts: int
    password: str
    subnet: str
    delay1_seconds: int
    delay2_seconds: int
    grading_strategy: GradingStrategy
    max_grade: float
    sum_of_part_marks: float
    feedback_bands: t.Sequence[FeedbackBand]
    time_modified: int


class ActivityUpdateParams(t.TypedDict, total=False):
    name: str
    open_time: int
    close_time: int
    time_limit_seconds: int
    grace_period_seconds: int
    overdue_handling: OverdueHandling
    max_attempts: int
    password: str
    subnet: str
    delay1_seconds: int
    delay2_seconds: int
    grading_strategy: GradingStrategy
    max_grade: float
    sum_of_part_marks: float
    feedback_bands: t.Sequence[FeedbackBand]
    time_modified: int
