from __future__ import annotations

from sqlalchemy import select, update

from proctor.core import di
from proctor.model import ActivityID, Attempt, AttemptID, AttemptState, UserID

from . import Session
from .table import attempts

OpenStates = (AttemptState.InProgress, AttemptState.Overdue)


def get(key: AttemptID, session: Session = di.Provide["storage.persistent.session"]) -> Attempt | None:
    stmt = select(attempts.__table__).where(attempts.attempt_id == key)
    row = session.execute(stmt).mappings().one_or_none()
    return Attempt(**row) if row else None


def find(
    *,
    activity_id: ActivityID | None = None,
    user_id: UserID | None = None,
    state: AttemptState | None = None,
    include_previews: bool = True,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[Attempt, ...]:
    stmt = select(attempts.__table__).order_by(attempts.activity_id, attempts.user_id, attempts.attempt_number)
    if activity_id is not None:
        stmt = stmt.where(attempts.activity_id == activity_id)
    if user_id is not None:
        stmt = stmt.where(attempts.user_id == user_id)
    if state is not None:
        stmt = stmt.where(attempts.state == state)
    if not include_previews:
        stmt = stmt.where(attempts.is_preview.is_(False))
    rows = session.execute(stmt).mappings().all()
    return tuple(Attempt(**row) for row in rows)


def find_due(now: int, session: Session = di.Provide["storage.persistent.session"]) -> tuple[Attempt, ...]:
    """Open attempts whose check time has been reached."""
    stmt = (
        select(attempts.__table__)
        .where(attempts.state.in_(OpenStates))
        .where(attempts.check_time.is_not(None))
        .where(attempts.check_time <= now)
        .order_by(attempts.activity_id, attempts.user_id, attempts.attempt_number)
    )
    rows = session.execute(stmt).mappings().all()
    return tuple(Attempt(**row) for row in rows)


def find_user_ids(
    activity_id: ActivityID,
    state: AttemptState = AttemptState.Finished,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[UserID, ...]:
    stmt = (
        select(attempts.user_id)
        .distinct()
        .where(attempts.activity_id == activity_id)
        .where(attempts.state == state)
        .where(attempts.is_preview.is_(False))
    )
    return tuple(session.execute(stmt).scalars().all())


def create(attempt: Attempt, now: int, session: Session = di.Provide["storage.persistent.session"]) -> Attempt:
    row = attempts(**attempt.model_dump(), time_modified=now)
    session.add(row)
    session.flush()
    return get(attempt.attempt_id, session=session)  # type: ignore


def compare_and_set(
    attempt: Attempt,
    expected_state: AttemptState,
    now: int,
    session: Session = di.Provide["storage.persistent.session"],
) -> bool:
    """Overwrite the stored attempt, but only if it is still in `expected_state`."""
    stmt = (
        update(attempts.__table__)
        .where(attempts.attempt_id == attempt.attempt_id)
        .where(attempts.state == expected_state)
        .values(
            state=attempt.state,
            finish_time=attempt.finish_time,
            check_time=attempt.check_time,
            sum_of_marks=attempt.sum_of_marks,
            time_modified=now,
        )
    )
    result = session.execute(stmt)
    return result.rowcount == 1
