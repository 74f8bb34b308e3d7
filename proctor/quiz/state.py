"""The lifecycle of an attempt: start, time out, finish and abandon."""

from __future__ import annotations

import logging
import typing as t
from dataclasses import dataclass, field

from proctor.lib.lock import KeyedLock
from proctor.model import Activity, Attempt, AttemptAbandoned, AttemptBecameOverdue, AttemptEvent, AttemptFinished, \
    AttemptID, AttemptStarted, AttemptState, EffectiveRules, OverdueHandling, UserID

from . import override
from .deadline import compute_check_time, end_time
from .errors import ActivityNotFoundError, AttemptAlreadyOpenError, AttemptNotFoundError, \
    ConcurrentModificationError, ConfigurationError
from .grading import GradeAggregator, MarkEpsilon
from .ports import ItemResponseEngine, NotificationPort, Repository

logger = logging.getLogger(__name__)

Decision = t.Callable[[Attempt], tuple[Attempt, list[AttemptEvent]] | None]


@dataclass
class TransitionOutcome:
    """The attempt as stored after an operation, and the events it raised."""

    attempt: Attempt
    previous_state: AttemptState
    events: list[AttemptEvent] = field(default_factory=list)
    # the stored attempt was rewritten, with or without a change of state
    written: bool = False

    @property
    def changed(self) -> bool:
        return self.attempt.state is not self.previous_state


class AttemptStateMachine(object):
    """Drives attempts through InProgress, Overdue, Finished and Abandoned.

    Every operation reads the attempt, decides on a copy, and writes it back
    on the condition that the stored state has not moved in the meantime.
    The attempt held by a caller is never modified, so a failed write leaves
    nothing to undo.
    """

    def __init__(
        self,
        repository: Repository,
        responses: ItemResponseEngine,
        notifications: NotificationPort,
        grades: GradeAggregator | None = None,
        locks: KeyedLock[AttemptID] | None = None,
    ):
        self.repository = repository
        self.responses = responses
        self.notifications = notifications
        self.grades = grades
        self.locks = locks if locks is not None else KeyedLock()

    def start_attempt(
        self,
        activity: Activity,
        rules: EffectiveRules,
        user_id: UserID,
        now: int,
        is_preview: bool = False,
    ) -> Attempt:
        if activity.sum_of_part_marks < MarkEpsilon and activity.max_grade > MarkEpsilon:
            raise ConfigurationError(
                f"activity {activity.activity_id} has a maximum grade of {activity.max_grade} but no marks to earn"
            )

        previous = self.repository.list_attempts(activity.activity_id, user_id, include_previews=True)
        if any(a.state.is_open for a in previous):
            raise AttemptAlreadyOpenError(f"user {user_id} already has an open attempt on {activity.activity_id}")

        attempt = Attempt(
            attempt_id=AttemptID(),
            activity_id=activity.activity_id,
            user_id=user_id,
            attempt_number=len(previous) + 1,
            start_time=now,
            is_preview=is_preview,
        )
        attempt = attempt.model_copy(update={"check_time": compute_check_time(rules, attempt)})

        if not self.repository.save_attempt(attempt, expected_state=None):
            raise ConcurrentModificationError(f"attempt {attempt.attempt_id} already exists")

        logger.info(
            "started attempt",
            extra={
                "attempt_id": attempt.attempt_id,
                "activity_id": attempt.activity_id,
                "user_id": user_id,
                "attempt_number": attempt.attempt_number,
                "check_time": attempt.check_time,
                "is_preview": is_preview,
            },
        )
        self.notifications.emit(
            AttemptStarted(
                attempt_id=attempt.attempt_id,
                activity_id=attempt.activity_id,
                user_id=user_id,
                timestamp=now,
            )
        )
        return attempt

    def check_time_limits(
        self,
        attempt_id: AttemptID,
        now: int,
        *,
        rules: EffectiveRules | None = None,
        activity: Activity | None = None,
    ) -> TransitionOutcome:
        """Move the attempt on if its deadline has passed.

        `rules` and `activity` may be passed in by callers that already hold
        them; otherwise they are loaded. Calling this again with the same
        `now` changes nothing.
        """
        attempt = self._load(attempt_id)
        if activity is None:
            activity = self._load_activity(attempt)
        if rules is None:
            user_override, group_overrides = self.repository.get_overrides(attempt.activity_id, attempt.user_id)
            rules = override.resolve(activity, user_override, group_overrides, user_id=attempt.user_id)

        def decide(a: Attempt) -> tuple[Attempt, list[AttemptEvent]] | None:
            return self._decide_timeout(a, t.cast(EffectiveRules, rules), now)

        return self._apply(attempt, activity, decide, now)

    def finish(self, attempt_id: AttemptID, now: int) -> TransitionOutcome:
        """Submit the attempt on the user's behalf; finishing a closed attempt does nothing."""
        attempt = self._load(attempt_id)
        activity = self._load_activity(attempt)

        def decide(a: Attempt) -> tuple[Attempt, list[AttemptEvent]] | None:
            if not a.state.is_open:
                return None
            return self._finished(a, now, is_graded=True)

        return self._apply(attempt, activity, decide, now)

    def abandon(self, attempt_id: AttemptID, now: int) -> TransitionOutcome:
        """Close the attempt without grading it; abandoning a closed attempt does nothing."""
        attempt = self._load(attempt_id)
        activity = self._load_activity(attempt)

        def decide(a: Attempt) -> tuple[Attempt, list[AttemptEvent]] | None:
            if not a.state.is_open:
                return None
            return self._abandoned(a, now)

        return self._apply(attempt, activity, decide, now)

    def _decide_timeout(
        self, attempt: Attempt, rules: EffectiveRules, now: int
    ) -> tuple[Attempt, list[AttemptEvent]] | None:
        if not attempt.state.is_open or attempt.is_preview:
            return None

        deadline = end_time(rules, attempt)
        if deadline is not None:
            if attempt.state is AttemptState.InProgress and now > deadline:
                match rules.overdue_handling:
                    case OverdueHandling.GracePeriod:
                        return self._overdue(attempt, rules, now)
                    case OverdueHandling.AutoSubmit:
                        return self._finished(attempt, now, is_graded=False)
                    case OverdueHandling.AutoAbandon:
                        return self._abandoned(attempt, now)

            if attempt.state is AttemptState.Overdue and now > deadline + rules.grace_period_seconds:
                return self._finished(attempt, now, is_graded=False)

        # not yet due, but the deadline may have moved since check_time was stored
        check_time = compute_check_time(rules, attempt)
        if check_time != attempt.check_time:
            return attempt.model_copy(update={"check_time": check_time}), []
        return None

    def _overdue(self, attempt: Attempt, rules: EffectiveRules, now: int) -> tuple[Attempt, list[AttemptEvent]]:
        updated = attempt.model_copy(update={"state": AttemptState.Overdue})
        updated = updated.model_copy(update={"check_time": compute_check_time(rules, updated)})
        event = AttemptBecameOverdue(
            attempt_id=attempt.attempt_id,
            activity_id=attempt.activity_id,
            user_id=attempt.user_id,
            timestamp=now,
        )
        return updated, [event]

    def _finished(self, attempt: Attempt, now: int, *, is_graded: bool) -> tuple[Attempt, list[AttemptEvent]]:
        updated = attempt.model_copy(
            update={
                "state": AttemptState.Finished,
                "finish_time": now,
                "check_time": None,
                "sum_of_marks": self.responses.compute_sum_of_marks(attempt.attempt_id),
            }
        )
        event = AttemptFinished(
            attempt_id=attempt.attempt_id,
            activity_id=attempt.activity_id,
            user_id=attempt.user_id,
            timestamp=now,
            is_graded=is_graded,
        )
        return updated, [event]

    def _abandoned(self, attempt: Attempt, now: int) -> tuple[Attempt, list[AttemptEvent]]:
        updated = attempt.model_copy(update={"state": AttemptState.Abandoned, "check_time": None})
        event = AttemptAbandoned(
            attempt_id=attempt.attempt_id,
            activity_id=attempt.activity_id,
            user_id=attempt.user_id,
            timestamp=now,
        )
        return updated, [event]

    def _apply(self, attempt: Attempt, activity: Activity, decide: Decision, now: int) -> TransitionOutcome:
        with self.locks.hold(attempt.attempt_id):
            for tries in range(2):
                if tries:
                    attempt = self._load(attempt.attempt_id)

                decision = decide(attempt)
                if decision is None:
                    return TransitionOutcome(attempt=attempt, previous_state=attempt.state)

                updated, events = decision
                if self.repository.save_attempt(updated, expected_state=attempt.state):
                    break

                logger.warning(
                    "attempt changed underneath transition",
                    extra={
                        "attempt_id": attempt.attempt_id,
                        "expected_state": attempt.state.value,
                        "tries": tries + 1,
                    },
                )
            else:
                raise ConcurrentModificationError(f"attempt {attempt.attempt_id} keeps changing, try again")

        outcome = TransitionOutcome(attempt=updated, previous_state=attempt.state, events=events, written=True)
        if outcome.changed:
            logger.info(
                "attempt state changed",
                extra={
                    "attempt_id": updated.attempt_id,
                    "from": attempt.state.value,
                    "to": updated.state.value,
                    "check_time": updated.check_time,
                },
            )
        else:
            logger.debug(
                "refreshed attempt check time",
                extra={
                    "attempt_id": updated.attempt_id,
                    "check_time": updated.check_time,
                },
            )

        for event in events:
            self.notifications.emit(event)

        if (
            self.grades is not None
            and updated.state is AttemptState.Finished
            and outcome.changed
            and not updated.is_preview
        ):
            self.grades.save_best_grade(activity, updated.user_id, now=now)

        return outcome

    def _load(self, attempt_id: AttemptID) -> Attempt:
        attempt = self.repository.get_attempt(attempt_id)
        if attempt is None:
            raise AttemptNotFoundError(f"no such attempt: {attempt_id}")
        return attempt

    def _load_activity(self, attempt: Attempt) -> Activity:
        activity = self.repository.get_activity(attempt.activity_id)
        if activity is None:
            raise ActivityNotFoundError(f"no such activity: {attempt.activity_id}")
        return activity
