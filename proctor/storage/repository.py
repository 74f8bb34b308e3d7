from __future__ import annotations

import contextlib
import logging
import time
import typing as t

from proctor.model import Activity, ActivityGrade, ActivityID, Attempt, AttemptID, AttemptState, Override, UserID

from . import activity as activity_store, attempt as attempt_store, grade as grade_store, \
    override as override_store, Session

logger = logging.getLogger(__name__)


class SQLRepository(object):
    """Attempt, activity and grade storage for the quiz core, one transaction per call."""

    def __init__(self, session_factory: t.Callable[[], Session], clock: t.Callable[[], int] | None = None):
        self.session_factory = session_factory
        self.clock = clock or (lambda: int(time.time()))

    @contextlib.contextmanager
    def _transaction(self) -> t.Iterator[Session]:
        with self.session_factory() as session:
            with session.begin():
                yield session

    def get_activity(self, activity_id: ActivityID) -> Activity | None:
        with self._transaction() as session:
            return activity_store.get(activity_id, session=session)

    def save_activity(self, activity: Activity) -> None:
        params = activity.model_dump(exclude={"activity_id"})
        params["feedback_bands"] = activity.feedback_bands
        params["time_modified"] = self.clock()
        with self._transaction() as session:
            if activity_store.get(activity.activity_id, session=session) is None:
                activity_store.create({"activity_id": activity.activity_id, **params}, session=session)
            else:
                activity_store.update(activity.activity_id, params, session=session)  # type: ignore[arg-type]

    def get_overrides(self, activity_id: ActivityID, user_id: UserID) -> tuple[Override | None, tuple[Override, ...]]:
        with self._transaction() as session:
            return override_store.find_for_user(activity_id, user_id, session=session)

    def get_attempt(self, attempt_id: AttemptID) -> Attempt | None:
        with self._transaction() as session:
            return attempt_store.get(attempt_id, session=session)

    def save_attempt(self, attempt: Attempt, *, expected_state: AttemptState | None) -> bool:
        now = self.clock()
        with self._transaction() as session:
            if expected_state is None:
                if attempt_store.get(attempt.attempt_id, session=session) is not None:
                    return False
                attempt_store.create(attempt, now, session=session)
                return True

            written = attempt_store.compare_and_set(attempt, expected_state, now, session=session)

        if not written:
            logger.debug(
                "conditional attempt write lost",
                extra={
                    "attempt_id": attempt.attempt_id,
                    "expected_state": expected_state.value,
                },
            )
        return written

    def list_due_attempts(self, now: int) -> tuple[Attempt, ...]:
        with self._transaction() as session:
            return attempt_store.find_due(now, session=session)

    def list_attempts(
        self, activity_id: ActivityID, user_id: UserID, *, include_previews: bool = False
    ) -> tuple[Attempt, ...]:
        with self._transaction() as session:
            return attempt_store.find(
                activity_id=activity_id, user_id=user_id, include_previews=include_previews, session=session
            )

    def get_finished_attempts(self, activity_id: ActivityID, user_id: UserID) -> tuple[Attempt, ...]:
        with self._transaction() as session:
            return attempt_store.find(
                activity_id=activity_id,
                user_id=user_id,
                state=AttemptState.Finished,
                include_previews=False,
                session=session,
            )

    def list_graded_users(self, activity_id: ActivityID) -> tuple[UserID, ...]:
        with self._transaction() as session:
            users = set(attempt_store.find_user_ids(activity_id, session=session))
            users.update(g.user_id for g in grade_store.find(activity_id, session=session))
        return tuple(sorted(users))

    def get_grades(self, activity_id: ActivityID) -> tuple[ActivityGrade, ...]:
        with self._transaction() as session:
            return grade_store.find(activity_id, session=session)

    def upsert_grade(self, activity_id: ActivityID, user_id: UserID, grade: float | None, *, now: int) -> None:
        with self._transaction() as session:
            if grade is None:
                grade_store.delete(activity_id, user_id, session=session)
            else:
                grade_store.upsert(activity_id, user_id, grade, now, session=session)
