from __future__ import annotations

import threading

import pytest

from proctor.model import Activity, ActivityGrade, ActivityID, Attempt, AttemptEvent, AttemptID, AttemptState, \
    Override, UserID
from proctor.quiz import AccessManager, AttemptStateMachine, GradeAggregator, OverdueAttemptSweeper, QuizService

from ..conftest import Clock


class InMemoryRepository(object):
    """The repository port backed by dicts, with the same conditional write semantics as the SQL one."""

    def __init__(self) -> None:
        self.activities: dict[ActivityID, Activity] = {}
        self.attempts: dict[AttemptID, Attempt] = {}
        self.user_overrides: dict[tuple[ActivityID, UserID], Override] = {}
        self.group_overrides: dict[tuple[ActivityID, UserID], list[Override]] = {}
        self.grades: dict[tuple[ActivityID, UserID], ActivityGrade] = {}
        self.writes = 0
        self._mutex = threading.Lock()

    def add_activity(self, activity: Activity) -> Activity:
        self.activities[activity.activity_id] = activity
        return activity

    def add_attempt(self, attempt: Attempt) -> Attempt:
        self.attempts[attempt.attempt_id] = attempt
        return attempt

    def add_override(self, override: Override, *, member: UserID | None = None) -> Override:
        if override.user_id is not None:
            self.user_overrides[(override.activity_id, override.user_id)] = override
        else:
            assert member is not None, "group overrides need a member to apply to"
            self.group_overrides.setdefault((override.activity_id, member), []).append(override)
        return override

    def get_activity(self, activity_id: ActivityID) -> Activity | None:
        return self.activities.get(activity_id)

    def save_activity(self, activity: Activity) -> None:
        self.activities[activity.activity_id] = activity

    def get_overrides(self, activity_id: ActivityID, user_id: UserID) -> tuple[Override | None, tuple[Override, ...]]:
        key = (activity_id, user_id)
        return self.user_overrides.get(key), tuple(self.group_overrides.get(key, ()))

    def get_attempt(self, attempt_id: AttemptID) -> Attempt | None:
        return self.attempts.get(attempt_id)

    def save_attempt(self, attempt: Attempt, *, expected_state: AttemptState | None) -> bool:
        with self._mutex:
            stored = self.attempts.get(attempt.attempt_id)
            if expected_state is None:
                if stored is not None:
                    return False
            elif stored is None or stored.state is not expected_state:
                return False
            self.attempts[attempt.attempt_id] = attempt
            self.writes += 1
            return True

    def list_due_attempts(self, now: int) -> list[Attempt]:
        return [
            a
            for a in self.attempts.values()
            if a.state.is_open and a.check_time is not None and a.check_time <= now
        ]

    def list_attempts(
        self, activity_id: ActivityID, user_id: UserID, *, include_previews: bool = False
    ) -> list[Attempt]:
        found = [
            a
            for a in self.attempts.values()
            if a.activity_id == activity_id and a.user_id == user_id and (include_previews or not a.is_preview)
        ]
        return sorted(found, key=lambda a: a.attempt_number)

    def get_finished_attempts(self, activity_id: ActivityID, user_id: UserID) -> list[Attempt]:
        return [a for a in self.list_attempts(activity_id, user_id) if a.state is AttemptState.Finished]

    def list_graded_users(self, activity_id: ActivityID) -> list[UserID]:
        users = {
            a.user_id
            for a in self.attempts.values()
            if a.activity_id == activity_id and a.state is AttemptState.Finished and not a.is_preview
        }
        users.update(u for (aid, u) in self.grades if aid == activity_id)
        return sorted(users)

    def get_grades(self, activity_id: ActivityID) -> list[ActivityGrade]:
        return [g for (aid, _), g in sorted(self.grades.items()) if aid == activity_id]

    def upsert_grade(self, activity_id: ActivityID, user_id: UserID, grade: float | None, *, now: int) -> None:
        if grade is None:
            self.grades.pop((activity_id, user_id), None)
        else:
            self.grades[(activity_id, user_id)] = ActivityGrade(
                activity_id=activity_id, user_id=user_id, grade=grade, time_modified=now
            )


class RacingRepository(InMemoryRepository):
    """Lets another writer change an attempt's state just before our conditional write lands."""

    def __init__(self) -> None:
        super().__init__()
        # attempt_id -> states forced into storage on successive writes
        self.interference: dict[AttemptID, list[AttemptState]] = {}

    def save_attempt(self, attempt: Attempt, *, expected_state: AttemptState | None) -> bool:
        pending = self.interference.get(attempt.attempt_id)
        if pending:
            stored = self.attempts[attempt.attempt_id]
            self.attempts[attempt.attempt_id] = stored.model_copy(update={"state": pending.pop(0)})
        return super().save_attempt(attempt, expected_state=expected_state)


class FailingRepository(InMemoryRepository):
    """Refuses to write the attempts listed in `failing`."""

    def __init__(self) -> None:
        super().__init__()
        self.failing: set[AttemptID] = set()

    def save_attempt(self, attempt: Attempt, *, expected_state: AttemptState | None) -> bool:
        if attempt.attempt_id in self.failing:
            raise RuntimeError(f"storage unavailable for {attempt.attempt_id}")
        return super().save_attempt(attempt, expected_state=expected_state)


class RecordingNotifier(object):
    def __init__(self) -> None:
        self.events: list[AttemptEvent] = []

    def emit(self, event: AttemptEvent) -> None:
        self.events.append(event)

    @property
    def types(self) -> list[str]:
        return [e.event_type for e in self.events]


class FakeResponseEngine(object):
    """Sums of marks keyed by attempt; attempts never given marks have none."""

    def __init__(self) -> None:
        self.marks: dict[AttemptID, float | None] = {}

    def compute_sum_of_marks(self, attempt_id: AttemptID) -> float | None:
        return self.marks.get(attempt_id)


@pytest.fixture
def repository() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def responses() -> FakeResponseEngine:
    return FakeResponseEngine()


@pytest.fixture
def grades(repository: InMemoryRepository) -> GradeAggregator:
    return GradeAggregator(repository)


@pytest.fixture
def machine(
    repository: InMemoryRepository,
    responses: FakeResponseEngine,
    notifier: RecordingNotifier,
    grades: GradeAggregator,
) -> AttemptStateMachine:
    return AttemptStateMachine(repository, responses, notifier, grades=grades)


@pytest.fixture
def sweeper(machine: AttemptStateMachine, repository: InMemoryRepository) -> OverdueAttemptSweeper:
    return OverdueAttemptSweeper(machine, repository)


@pytest.fixture
def access() -> AccessManager:
    return AccessManager()


@pytest.fixture
def service(
    repository: InMemoryRepository,
    machine: AttemptStateMachine,
    sweeper: OverdueAttemptSweeper,
    grades: GradeAggregator,
    access: AccessManager,
    clock: Clock,
) -> QuizService:
    return QuizService(repository, machine, sweeper, grades, access, clock=clock)
