from __future__ import annotations

from sqlalchemy import delete, select

from proctor.core import di
from proctor.model import GroupID, UserID

from . import Session
from .table import group_memberships


def find_groups(user_id: UserID, session: Session = di.Provide["storage.persistent.session"]) -> tuple[GroupID, ...]:
    stmt = select(group_memberships.group_id).where(group_memberships.user_id == user_id)
    return tuple(session.execute(stmt).scalars().all())


def find_members(group_id: GroupID, session: Session = di.Provide["storage.persistent.session"]) -> tuple[UserID, ...]:
    stmt = select(group_memberships.user_id).where(group_memberships.group_id == group_id)
    return tuple(session.execute(stmt).scalars().all())


def add_member(group_id: GroupID, user_id: UserID, session: Session = di.Provide["storage.persistent.session"]) -> None:
    stmt = (
        select(group_memberships.group_id)
        .where(group_memberships.group_id == group_id)
        .where(group_memberships.user_id == user_id)
    )
    if session.execute(stmt).first() is None:
        session.add(group_memberships(group_id=group_id, user_id=user_id))
        session.flush()


def remove_member(
    group_id: GroupID, user_id: UserID, session: Session = di.Provide["storage.persistent.session"]
) -> bool:
    stmt = (
        delete(group_memberships.__table__)
        .where(group_memberships.group_id == group_id)
        .where(group_memberships.user_id == user_id)
    )
    return session.execute(stmt).rowcount > 0
