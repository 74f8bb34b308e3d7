from __future__ import annotations

from sqlalchemy import delete as sql_delete, select

from proctor.core import di
from proctor.model import ActivityGrade, ActivityID, UserID

from . import Session
from .table import grades


def get(
    activity_id: ActivityID, user_id: UserID, session: Session = di.Provide["storage.persistent.session"]
) -> ActivityGrade | None:
    stmt = select(grades.__table__).where(grades.activity_id == activity_id).where(grades.user_id == user_id)
    row = session.execute(stmt).mappings().one_or_none()
    return ActivityGrade(**row) if row else None


def find(
    activity_id: ActivityID, session: Session = di.Provide["storage.persistent.session"]
) -> tuple[ActivityGrade, ...]:
    stmt = select(grades.__table__).where(grades.activity_id == activity_id).order_by(grades.user_id)
    rows = session.execute(stmt).mappings().all()
    return tuple(ActivityGrade(**row) for row in rows)


def upsert(
    activity_id: ActivityID,
    user_id: UserID,
    grade: float,
    now: int,
    session: Session = di.Provide["storage.persistent.session"],
) -> ActivityGrade:
    stmt = select(grades).where(grades.activity_id == activity_id).where(grades.user_id == user_id)
    row = session.execute(stmt).scalar_one_or_none()
    if row is None:
        session.add(grades(activity_id=activity_id, user_id=user_id, grade=grade, time_modified=now))
    else:
        row.grade = grade
        row.time_modified = now
    session.flush()
    return get(activity_id, user_id, session=session)  # type: ignore


def delete(
    activity_id: ActivityID, user_id: UserID, session: Session = di.Provide["storage.persistent.session"]
) -> bool:
    stmt = sql_delete(grades.__table__).where(grades.activity_id == activity_id).where(grades.user_id == user_id)
    return session.execute(stmt).rowcount > 0
