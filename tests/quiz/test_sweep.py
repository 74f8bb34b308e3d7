from __future__ import annotations

import typing as t

import pytest

from proctor.model import Activity, Attempt, AttemptState, OverdueHandling, UserID
from proctor.quiz import AttemptStateMachine, GradeAggregator, OverdueAttemptSweeper

from .conftest import FailingRepository, FakeResponseEngine, InMemoryRepository, RecordingNotifier

T = 1_700_000_000


def open_attempt(
    repository: InMemoryRepository,
    attempt_factory: t.Callable[..., Attempt],
    activity: Activity,
    user_id: UserID,
    *,
    check_time: int | None,
    **kwargs: t.Any,
) -> Attempt:
    return repository.add_attempt(
        attempt_factory(activity, user_id, start_time=T, check_time=check_time, attempt_number=1, **kwargs)
    )


@pytest.fixture
def activities(activity_factory: t.Callable[..., Activity], repository: InMemoryRepository) -> list[Activity]:
    return [
        repository.add_activity(activity_factory(time_limit_seconds=600, overdue_handling=OverdueHandling.AutoSubmit)),
        repository.add_activity(
            activity_factory(
                time_limit_seconds=600, grace_period_seconds=300, overdue_handling=OverdueHandling.GracePeriod
            )
        ),
        repository.add_activity(
            activity_factory(time_limit_seconds=600, overdue_handling=OverdueHandling.AutoAbandon)
        ),
    ]


class TestSweep(object):
    def test_due_attempts_are_moved_on(
        self,
        sweeper: OverdueAttemptSweeper,
        repository: InMemoryRepository,
        activities: list[Activity],
        attempt_factory: t.Callable[..., Attempt],
    ) -> None:
        submitted, graced, abandoned = (
            open_attempt(repository, attempt_factory, a, UserID(), check_time=T + 600) for a in activities
        )
        not_due = open_attempt(repository, attempt_factory, activities[0], UserID(), check_time=T + 5000)

        result = sweeper.sweep(T + 700)

        assert result.processed == 3
        assert result.transitioned == 3
        assert result.failed == 0
        assert result.activities == 3
        assert repository.attempts[submitted.attempt_id].state is AttemptState.Finished
        assert repository.attempts[graced.attempt_id].state is AttemptState.Overdue
        assert repository.attempts[graced.attempt_id].check_time == T + 900
        assert repository.attempts[abandoned.attempt_id].state is AttemptState.Abandoned
        assert repository.attempts[not_due.attempt_id].state is AttemptState.InProgress

    def test_second_sweep_at_the_same_time_does_nothing(
        self,
        sweeper: OverdueAttemptSweeper,
        repository: InMemoryRepository,
        activities: list[Activity],
        attempt_factory: t.Callable[..., Attempt],
        notifier: RecordingNotifier,
    ) -> None:
        for a in activities:
            open_attempt(repository, attempt_factory, a, UserID(), check_time=T + 600)
        sweeper.sweep(T + 700)
        events = len(notifier.events)

        result = sweeper.sweep(T + 700)

        assert result.transitioned == 0
        assert len(notifier.events) == events

    def test_grace_runs_out_on_a_later_sweep(
        self,
        sweeper: OverdueAttemptSweeper,
        repository: InMemoryRepository,
        activities: list[Activity],
        attempt_factory: t.Callable[..., Attempt],
    ) -> None:
        attempt = open_attempt(repository, attempt_factory, activities[1], UserID(), check_time=T + 600)

        sweeper.sweep(T + 700)
        sweeper.sweep(T + 901)

        assert repository.attempts[attempt.attempt_id].state is AttemptState.Finished

    def test_previews_are_skipped(
        self,
        sweeper: OverdueAttemptSweeper,
        repository: InMemoryRepository,
        activities: list[Activity],
        attempt_factory: t.Callable[..., Attempt],
    ) -> None:
        preview = open_attempt(repository, attempt_factory, activities[0], UserID(), check_time=None, is_preview=True)

        result = sweeper.sweep(T + 10_000)

        assert result.processed == 0
        assert repository.attempts[preview.attempt_id].state is AttemptState.InProgress

    def test_parallel_sweep_matches_serial(
        self,
        machine: AttemptStateMachine,
        repository: InMemoryRepository,
        activities: list[Activity],
        attempt_factory: t.Callable[..., Attempt],
    ) -> None:
        users = [UserID() for _ in range(4)]
        for a in activities:
            for u in users:
                open_attempt(repository, attempt_factory, a, u, check_time=T + 600)

        result = OverdueAttemptSweeper(machine, repository, max_workers=3).sweep(T + 700)

        assert result.processed == 12
        assert result.transitioned == 12
        assert result.activities == 3
        assert all(not a.state.is_open or a.state is AttemptState.Overdue for a in repository.attempts.values())


class TestSweepFailures(object):
    """One attempt failing must not stop the others."""

    @pytest.fixture
    def failing(self) -> FailingRepository:
        return FailingRepository()

    @pytest.fixture
    def failing_sweeper(
        self, failing: FailingRepository, responses: FakeResponseEngine, notifier: RecordingNotifier
    ) -> OverdueAttemptSweeper:
        machine = AttemptStateMachine(failing, responses, notifier, grades=GradeAggregator(failing))
        return OverdueAttemptSweeper(machine, failing)

    def test_failure_is_isolated(
        self,
        failing: FailingRepository,
        failing_sweeper: OverdueAttemptSweeper,
        activity_factory: t.Callable[..., Activity],
        attempt_factory: t.Callable[..., Attempt],
    ) -> None:
        activity = failing.add_activity(
            activity_factory(time_limit_seconds=600, overdue_handling=OverdueHandling.AutoSubmit)
        )
        broken, fine = (
            open_attempt(failing, attempt_factory, activity, UserID(), check_time=T + 600) for _ in range(2)
        )
        failing.failing.add(broken.attempt_id)

        result = failing_sweeper.sweep(T + 700)

        assert result.processed == 2
        assert result.failed == 1
        assert result.failed_attempts == [broken.attempt_id]
        assert failing.attempts[fine.attempt_id].state is AttemptState.Finished
        assert failing.attempts[broken.attempt_id].state is AttemptState.InProgress

    def test_missing_activity(
        self,
        failing: FailingRepository,
        failing_sweeper: OverdueAttemptSweeper,
        activity_factory: t.Callable[..., Activity],
        attempt_factory: t.Callable[..., Attempt],
    ) -> None:
        orphan = activity_factory(time_limit_seconds=600)
        open_attempt(failing, attempt_factory, orphan, UserID(), check_time=T + 600)

        result = failing_sweeper.sweep(T + 700)

        assert result.processed == 1
        assert result.failed == 1
