"""Interfaces of the collaborators the attempt core relies on."""

from __future__ import annotations

import typing as t

from proctor.model import Activity, ActivityGrade, ActivityID, Attempt, AttemptEvent, AttemptID, AttemptState, \
    Override, UserID


class Repository(t.Protocol):
    def get_activity(self, activity_id: ActivityID) -> Activity | None: ...

    def save_activity(self, activity: Activity) -> None: ...

    def get_overrides(self, activity_id: ActivityID, user_id: UserID) -> tuple[Override | None, tuple[Override, ...]]:
        """Return the user's own override, if any, and the overrides of every group the user belongs to."""
        ...

    def get_attempt(self, attempt_id: AttemptID) -> Attempt | None: ...

    def save_attempt(self, attempt: Attempt, *, expected_state: AttemptState | None) -> bool:
        """Write the attempt only if its stored state still equals `expected_state`.

        `expected_state=None` inserts a new attempt. Returns False when the
        stored state differs (another writer won).
        """
        ...

    def list_due_attempts(self, now: int) -> t.Sequence[Attempt]:
        """Open attempts whose check time is at or before `now`."""
        ...

    def list_attempts(
        self, activity_id: ActivityID, user_id: UserID, *, include_previews: bool = False
    ) -> t.Sequence[Attempt]:
        """Every attempt by the user on the activity, ordered by attempt number."""
        ...

    def get_finished_attempts(self, activity_id: ActivityID, user_id: UserID) -> t.Sequence[Attempt]:
        """Finished, non-preview attempts ordered by attempt number."""
        ...

    def list_graded_users(self, activity_id: ActivityID) -> t.Sequence[UserID]:
        """Users holding a stored grade or at least one finished, non-preview attempt."""
        ...

    def get_grades(self, activity_id: ActivityID) -> t.Sequence[ActivityGrade]: ...

    def upsert_grade(self, activity_id: ActivityID, user_id: UserID, grade: float | None, *, now: int) -> None:
        """Store the user's grade; None removes it."""
        ...


class ItemResponseEngine(t.Protocol):
    def compute_sum_of_marks(self, attempt_id: AttemptID) -> float | None: ...


class NotificationPort(t.Protocol):
    def emit(self, event: AttemptEvent) -> None: ...
