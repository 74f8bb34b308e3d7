"""Deadlines of an attempt under a set of effective rules."""

from __future__ import annotations

from proctor.model import Attempt, AttemptState, EffectiveRules

from .errors import DeadlineComputationError


def check_rules(rules: EffectiveRules) -> None:
    if rules.time_limit_seconds < 0:
        raise DeadlineComputationError(f"negative time limit: {rules.time_limit_seconds}")
    if rules.grace_period_seconds < 0:
        raise DeadlineComputationError(f"negative grace period: {rules.grace_period_seconds}")
    if rules.open_time and rules.close_time and rules.close_time < rules.open_time:
        raise DeadlineComputationError(
            f"activity {rules.activity_id} closes ({rules.close_time}) before it opens ({rules.open_time})"
        )


def end_time(rules: EffectiveRules, attempt: Attempt) -> int | None:
    """The instant the attempt runs out of time, ignoring any grace period.

    This is the earlier of the time limit measured from the start and the
    close time, or None when neither applies.
    """
    check_rules(rules)
    candidates: list[int] = []
    if rules.time_limit_seconds:
        candidates.append(attempt.start_time + rules.time_limit_seconds)
    if rules.close_time:
        candidates.append(rules.close_time)
    return min(candidates) if candidates else None


def compute_check_time(rules: EffectiveRules, attempt: Attempt) -> int | None:
    """The instant at which the attempt must next be re-examined.

    Previews are never policed. Once an attempt is overdue its check time
    moves out by the grace period.
    """
    if attempt.is_preview:
        return None
    deadline = end_time(rules, attempt)
    if deadline is None:
        return None
    if attempt.state is AttemptState.Overdue:
        deadline += rules.grace_period_seconds
    return deadline


def time_left(rules: EffectiveRules, attempt: Attempt, now: int) -> int | None:
    """Seconds remaining before `end_time`; negative once it has passed."""
    deadline = end_time(rules, attempt)
    if deadline is None:
        return None
    return deadline - now
