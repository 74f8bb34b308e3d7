"""Periodic pass closing every attempt whose deadline has gone by."""

from __future__ import annotations

import itertools
import logging
import typing as t
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from proctor.model import ActivityID, Attempt, AttemptID, EffectiveRules, UserID

from . import override
from .errors import ActivityNotFoundError
from .ports import Repository
from .state import AttemptStateMachine

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    processed: int = 0
    transitioned: int = 0
    failed: int = 0
    activities: int = 0
    failed_attempts: list[AttemptID] = field(default_factory=list)

    def merge(self, other: SweepResult) -> None:
        self.processed += other.processed
        self.transitioned += other.transitioned
        self.failed += other.failed
        self.activities += other.activities
        self.failed_attempts.extend(other.failed_attempts)


class OverdueAttemptSweeper(object):
    """Applies the time limit check to every attempt that is due for one.

    Attempts are grouped by activity. Each activity is loaded once and each
    user's rules resolved once per sweep. Activities may run on separate
    worker threads; the attempts of one activity are always handled in
    order on a single thread.
    """

    def __init__(self, machine: AttemptStateMachine, repository: Repository, max_workers: int = 1):
        self.machine = machine
        self.repository = repository
        self.max_workers = max(1, max_workers)

    def sweep(self, now: int) -> SweepResult:
        due = sorted(
            self.repository.list_due_attempts(now),
            key=lambda a: (str(a.activity_id), str(a.user_id), a.attempt_number),
        )
        batches = [list(g) for _, g in itertools.groupby(due, key=lambda a: a.activity_id)]

        logger.info(
            "sweeping overdue attempts",
            extra={
                "now": now,
                "attempts": len(due),
                "activities": len(batches),
                "workers": self.max_workers,
            },
        )

        result = SweepResult()
        if self.max_workers > 1 and len(batches) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="sweep") as executor:
                for partial in executor.map(lambda b: self._sweep_activity(b, now), batches):
                    result.merge(partial)
        else:
            for batch in batches:
                result.merge(self._sweep_activity(batch, now))

        logger.info(
            "sweep complete",
            extra={
                "processed": result.processed,
                "transitioned": result.transitioned,
                "failed": result.failed,
            },
        )
        return result

    def _sweep_activity(self, attempts: t.Sequence[Attempt], now: int) -> SweepResult:
        result = SweepResult(activities=1)
        activity_id: ActivityID = attempts[0].activity_id

        activity = self.repository.get_activity(activity_id)
        rules_by_user: dict[UserID, EffectiveRules] = {}

        for attempt in attempts:
            result.processed += 1
            try:
                if activity is None:
                    raise ActivityNotFoundError(f"no such activity: {activity_id}")

                rules = rules_by_user.get(attempt.user_id)
                if rules is None:
                    user_override, group_overrides = self.repository.get_overrides(activity_id, attempt.user_id)
                    rules = override.resolve(activity, user_override, group_overrides, user_id=attempt.user_id)
                    rules_by_user[attempt.user_id] = rules

                outcome = self.machine.check_time_limits(attempt.attempt_id, now, rules=rules, activity=activity)
                if outcome.changed:
                    result.transitioned += 1
            except Exception:
                result.failed += 1
                result.failed_attempts.append(attempt.attempt_id)
                logger.exception(
                    "could not process attempt",
                    extra={
                        "attempt_id": attempt.attempt_id,
                        "activity_id": activity_id,
                        "user_id": attempt.user_id,
                    },
                )

        return result
