from __future__ import annotations

import logging
import time
import typing as t
from dataclasses import dataclass, field

from proctor.model import Activity, ActivityID, Attempt, AttemptID, EffectiveRules, GradeSummary, UserID

from . import override
from .access import AccessManager
from .errors import ActivityNotFoundError, AttemptAlreadyOpenError, AttemptNotFoundError, DeadlineComputationError
from .grading import feedback_for_grade, GradeAggregator, validate_feedback_bands
from .ports import Repository
from .state import AttemptStateMachine, TransitionOutcome
from .sweep import OverdueAttemptSweeper, SweepResult

logger = logging.getLogger(__name__)

Clock = t.Callable[[], int]


def unix_now() -> int:
    return int(time.time())


@dataclass
class StartResult:
    """A new attempt, or the reasons one could not be started."""

    attempt: Attempt | None = None
    messages: list[str] = field(default_factory=list)

    @property
    def started(self) -> bool:
        return self.attempt is not None


@dataclass
class PageResult:
    """The attempt after a page interaction, and whether the user may carry on with it."""

    outcome: TransitionOutcome
    messages: list[str] = field(default_factory=list)
    time_left: int | None = None

    @property
    def attempt(self) -> Attempt:
        return self.outcome.attempt

    @property
    def may_continue(self) -> bool:
        return self.attempt.state.is_open and not self.messages


class QuizService(object):
    """Entry point for everything that happens to an activity's attempts and grades."""

    AttemptInProgress = "You already have an attempt at this quiz that is not finished"

    def __init__(
        self,
        repository: Repository,
        machine: AttemptStateMachine,
        sweeper: OverdueAttemptSweeper,
        grades: GradeAggregator,
        access: AccessManager,
        clock: Clock = unix_now,
    ):
        self.repository = repository
        self.machine = machine
        self.sweeper = sweeper
        self.grades = grades
        self.access = access
        self.clock = clock

    def get_activity(self, activity_id: ActivityID) -> Activity:
        activity = self.repository.get_activity(activity_id)
        if activity is None:
            raise ActivityNotFoundError(f"no such activity: {activity_id}")
        return activity

    def get_attempt(self, attempt_id: AttemptID) -> Attempt:
        attempt = self.repository.get_attempt(attempt_id)
        if attempt is None:
            raise AttemptNotFoundError(f"no such attempt: {attempt_id}")
        return attempt

    def save_activity(self, activity: Activity) -> None:
        validate_feedback_bands(activity.feedback_bands, activity.max_grade)
        self.repository.save_activity(activity)

    def effective_rules(self, activity: Activity, user_id: UserID) -> EffectiveRules:
        user_override, group_overrides = self.repository.get_overrides(activity.activity_id, user_id)
        return override.resolve(activity, user_override, group_overrides, user_id=user_id)

    def prior_attempts(self, activity_id: ActivityID, user_id: UserID) -> list[Attempt]:
        return [a for a in self.repository.list_attempts(activity_id, user_id) if a.state.is_terminal]

    def check_access(
        self,
        activity_id: ActivityID,
        user_id: UserID,
        *,
        attempt_id: AttemptID | None = None,
        password: str | None = None,
        ip_address: str | None = None,
        now: int | None = None,
    ) -> list[str]:
        now = self.clock() if now is None else now
        activity = self.get_activity(activity_id)
        rules = self.effective_rules(activity, user_id)
        attempt = self.get_attempt(attempt_id) if attempt_id is not None else None
        return self.access.evaluate(
            rules,
            now,
            attempt=attempt,
            prior_attempts=self.prior_attempts(activity_id, user_id),
            password=password,
            ip_address=ip_address,
        )

    def describe(self, activity_id: ActivityID, user_id: UserID, *, now: int | None = None) -> list[str]:
        now = self.clock() if now is None else now
        activity = self.get_activity(activity_id)
        return self.access.describe(self.effective_rules(activity, user_id), now)

    def start_attempt(
        self,
        activity_id: ActivityID,
        user_id: UserID,
        *,
        password: str | None = None,
        ip_address: str | None = None,
        is_preview: bool = False,
        now: int | None = None,
    ) -> StartResult:
        now = self.clock() if now is None else now
        activity = self.get_activity(activity_id)
        rules = self.effective_rules(activity, user_id)

        messages = self.access.evaluate(
            rules,
            now,
            prior_attempts=self.prior_attempts(activity_id, user_id),
            password=password,
            ip_address=ip_address,
            can_ignore_time_limits=is_preview,
        )
        if messages:
            logger.info(
                "refused new attempt",
                extra={
                    "activity_id": activity_id,
                    "user_id": user_id,
                    "reasons": len(messages),
                },
            )
            return StartResult(messages=messages)

        try:
            attempt = self.machine.start_attempt(activity, rules, user_id, now, is_preview=is_preview)
        except AttemptAlreadyOpenError:
            logger.info(
                "refused new attempt while one is open",
                extra={
                    "activity_id": activity_id,
                    "user_id": user_id,
                },
            )
            return StartResult(messages=[self.AttemptInProgress])
        return StartResult(attempt=attempt)

    def process_page(
        self, attempt_id: AttemptID, *, ip_address: str | None = None, now: int | None = None
    ) -> PageResult:
        """Run on every page the user loads or submits during an attempt.

        The attempt is first brought up to date with its deadline; if it is
        still open, the rules for continuing it are checked.
        """
        now = self.clock() if now is None else now
        attempt = self.get_attempt(attempt_id)
        activity = self.get_activity(attempt.activity_id)
        rules = self.effective_rules(activity, attempt.user_id)

        outcome = self.machine.check_time_limits(attempt_id, now, rules=rules, activity=activity)
        if not outcome.attempt.state.is_open:
            return PageResult(outcome=outcome)

        messages = self.access.evaluate(rules, now, attempt=outcome.attempt, ip_address=ip_address)
        time_left = self.access.time_left_display(rules, outcome.attempt, now)
        return PageResult(outcome=outcome, messages=messages, time_left=time_left)

    def finish_attempt(self, attempt_id: AttemptID, *, now: int | None = None) -> TransitionOutcome:
        now = self.clock() if now is None else now
        # a deadline that has already passed decides how the attempt ends
        try:
            outcome = self.machine.check_time_limits(attempt_id, now)
        except DeadlineComputationError as e:
            # with no usable deadline an explicit finish still goes ahead
            logger.warning(
                "could not check attempt deadline before finishing",
                extra={
                    "attempt_id": attempt_id,
                    "error": str(e),
                },
            )
        else:
            if outcome.attempt.state.is_terminal:
                return outcome
        return self.machine.finish(attempt_id, now)

    def abandon_attempt(self, attempt_id: AttemptID, *, now: int | None = None) -> TransitionOutcome:
        now = self.clock() if now is None else now
        return self.machine.abandon(attempt_id, now)

    def sweep(self, *, now: int | None = None) -> SweepResult:
        now = self.clock() if now is None else now
        return self.sweeper.sweep(now)

    def recompute_grades(self, activity_id: ActivityID, *, now: int | None = None) -> int:
        now = self.clock() if now is None else now
        return self.grades.update_all_final_grades(self.get_activity(activity_id), now=now)

    def set_max_grade(self, activity_id: ActivityID, new_max: float, *, now: int | None = None) -> Activity:
        now = self.clock() if now is None else now
        return self.grades.set_max_grade(new_max, self.get_activity(activity_id), now=now)

    def summarize(self, activity_id: ActivityID) -> GradeSummary:
        return self.grades.summarize(self.get_activity(activity_id))

    def feedback(self, activity_id: ActivityID, user_id: UserID) -> str | None:
        activity = self.get_activity(activity_id)
        grades = {g.user_id: g.grade for g in self.repository.get_grades(activity_id)}
        band = feedback_for_grade(grades.get(user_id), activity.feedback_bands)
        return band.text if band is not None else None
