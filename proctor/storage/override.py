from __future__ import annotations

import typing as t

from sqlalchemy import delete as sql_delete, select

from proctor.core import di
from proctor.model import ActivityID, GroupID, Override, OverrideID, UserID

from . import Session
from .table import group_memberships, overrides


def get(key: OverrideID, session: Session = di.Provide["storage.persistent.session"]) -> Override | None:
    stmt = select(overrides.__table__).where(overrides.override_id == key)
    row = session.execute(stmt).mappings().one_or_none()
    return Override(**row) if row else None


def find(
    *,
    activity_id: ActivityID | None = None,
    user_id: UserID | None = None,
    group_ids: t.Collection[GroupID] | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[Override, ...]:
    stmt = select(overrides.__table__).order_by(overrides.override_id)
    if activity_id is not None:
        stmt = stmt.where(overrides.activity_id == activity_id)
    if user_id is not None:
        stmt = stmt.where(overrides.user_id == user_id)
    if group_ids is not None:
        stmt = stmt.where(overrides.group_id.in_(group_ids))
    rows = session.execute(stmt).mappings().all()
    return tuple(Override(**row) for row in rows)


def find_for_user(
    activity_id: ActivityID, user_id: UserID, session: Session = di.Provide["storage.persistent.session"]
) -> tuple[Override | None, tuple[Override, ...]]:
    """The user's own override on the activity, and those of every group they belong to."""
    own = find(activity_id=activity_id, user_id=user_id, session=session)

    groups = select(group_memberships.group_id).where(group_memberships.user_id == user_id)
    stmt = (
        select(overrides.__table__)
        .where(overrides.activity_id == activity_id)
        .where(overrides.group_id.in_(groups))
        .order_by(overrides.override_id)
    )
    rows = session.execute(stmt).mappings().all()
    return (own[0] if own else None), tuple(Override(**row) for row in rows)


def create(params: OverrideCreateParams, session: Session = di.Provide["storage.persistent.session"]) -> Override:
    # validate the scope before anything reaches the table
    override = Override(override_id=OverrideID(), **params)
    session.add(overrides(**override.model_dump()))
    session.flush()
    return get(override.override_id, session=session)  # type: ignore


def update(
    key: OverrideID,
    params: OverrideUpdateParams,
    session: Session = di.Provide["storage.persistent.session"],
) -> Override | None:
    """Set override fields; a field given as None goes back to the activity's value."""
    stmt = select(overrides).where(overrides.override_id == key)
    row = session.execute(stmt).scalar_one_or_none()
    if row is None:
        return None
    for field, value in params.items():
        setattr(row, field, value)
    session.flush()
    return get(key, session=session)


def delete(key: OverrideID, session: Session = di.Provide["storage.persistent.session"]) -> bool:
    result = session.execute(sql_delete(overrides.__table__).where(overrides.override_id == key))
    return result.rowcount > 0


class OverrideCreateParams(t.TypedDict, total=False):
    activity_id: t.Required[ActivityID]
    user_id: UserID | None
    group_id: GroupID | None
    open_time: int | None
    close_time: int | None
    time_limit_seconds: int | None
    max_attempts: int | None
    password: str | None


class OverrideUpdateParams(t.TypedDict, total=False):
    open_time: int | None
    close_time: int | None
    time_limit_seconds: int | None
    max_attempts: int | None
    password: str | None
