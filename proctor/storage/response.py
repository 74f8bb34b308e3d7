"""Per-slot marks saved while an attempt is in progress."""

from __future__ import annotations

import logging
import typing as t

from sqlalchemy import select

from proctor.core import di
from proctor.model import AttemptID

from . import Session
from .table import attempt_marks

logger = logging.getLogger(__name__)


def find_marks(
    attempt_id: AttemptID, session: Session = di.Provide["storage.persistent.session"]
) -> dict[int, float | None]:
    stmt = (
        select(attempt_marks.slot, attempt_marks.mark)
        .where(attempt_marks.attempt_id == attempt_id)
        .order_by(attempt_marks.slot)
    )
    return {slot: mark for slot, mark in session.execute(stmt).all()}


def save_mark(
    attempt_id: AttemptID, slot: int, mark: float | None, session: Session = di.Provide["storage.persistent.session"]
) -> None:
    stmt = select(attempt_marks).where(attempt_marks.attempt_id == attempt_id).where(attempt_marks.slot == slot)
    row = session.execute(stmt).scalar_one_or_none()
    if row is None:
        session.add(attempt_marks(attempt_id=attempt_id, slot=slot, mark=mark))
    else:
        row.mark = mark
    session.flush()


def sum_marks(attempt_id: AttemptID, session: Session = di.Provide["storage.persistent.session"]) -> float | None:
    """Total of the saved marks; None while any slot is still ungraded or nothing was saved."""
    marks = find_marks(attempt_id, session=session)
    if not marks or any(m is None for m in marks.values()):
        return None
    return sum(t.cast(float, m) for m in marks.values())


class SQLResponseEngine(object):
    """Totals the marks last saved for an attempt at the moment it finishes."""

    def __init__(self, session_factory: t.Callable[[], Session]):
        self.session_factory = session_factory

    def compute_sum_of_marks(self, attempt_id: AttemptID) -> float | None:
        with self.session_factory() as session, session.begin():
            total = sum_marks(attempt_id, session=session)
        logger.debug(
            "computed sum of marks",
            extra={
                "attempt_id": attempt_id,
                "sum_of_marks": total,
            },
        )
        return total
