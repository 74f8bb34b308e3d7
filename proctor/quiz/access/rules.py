"""The built-in access rules."""

from __future__ import annotations

import hmac
import typing as t

from proctor.model import Attempt, AttemptState, OverdueHandling

from .base import AccessRequest, AccessRule, ShowTimeBeforeDeadline, format_datetime, format_duration
from .subnet import address_in_subnets

if t.TYPE_CHECKING:
    from proctor.model import EffectiveRules


class OpenCloseDateRule(AccessRule):
    """The activity can only be used between its open and close times.

    When overdue attempts get a grace period, attempts already under way may
    still be continued until the grace period after closing has run out.
    """

    NotAvailable = "This quiz is not currently available"

    def prevent_new_attempt(self, prior_attempts: t.Sequence[Attempt]) -> str | None:
        # the grace period after closing only extends attempts already under way
        if self.rules.close_time and self.now > self.rules.close_time and self.prevent_access() is None:
            return self.NotAvailable
        return None

    def prevent_access(self) -> str | None:
        if self.now < self.rules.open_time:
            return self.NotAvailable
        if not self.rules.close_time or self.now <= self.rules.close_time:
            return None
        if self.rules.overdue_handling is not OverdueHandling.GracePeriod:
            return self.NotAvailable
        if self.now <= self.rules.close_time + self.rules.grace_period_seconds:
            return None
        return self.NotAvailable

    def description(self) -> list[str]:
        result: list[str] = []
        if self.now < self.rules.open_time:
            result.append(f"The quiz will not be available until {format_datetime(self.rules.open_time)}")
            if self.rules.close_time:
                result.append(f"This quiz closes on {format_datetime(self.rules.close_time)}")
        elif self.rules.close_time and self.now > self.rules.close_time:
            result.append(f"This quiz closed on {format_datetime(self.rules.close_time)}")
        else:
            if self.rules.open_time:
                result.append(f"This quiz opened at {format_datetime(self.rules.open_time)}")
            if self.rules.close_time:
                result.append(f"This quiz closes on {format_datetime(self.rules.close_time)}")
        return result

    def is_finished(self, prior_attempts: t.Sequence[Attempt]) -> bool:
        return bool(self.rules.close_time) and self.now > self.rules.close_time

    def end_time(self, attempt: Attempt) -> int | None:
        return self.rules.close_time or None

    def time_left_display(self, attempt: Attempt, now: int) -> int | None:
        if attempt.is_preview and now > self.rules.close_time:
            return None
        end = self.end_time(attempt)
        if end is not None and now > end - ShowTimeBeforeDeadline:
            return end - now
        return None


class PasswordRule(AccessRule):
    """A new attempt needs the activity password, or any of the matching group passwords."""

    Required = "To attempt this quiz you need to know the quiz password"
    Incorrect = "The password entered was incorrect"

    @classmethod
    def make(cls, rules: EffectiveRules, request: AccessRequest) -> t.Self | None:
        if not rules.password:
            return None
        return cls(rules, request)

    def prevent_new_attempt(self, prior_attempts: t.Sequence[Attempt]) -> str | None:
        entered = self.request.password
        if entered is None:
            return self.Required
        if any(hmac.compare_digest(entered.encode(), p.encode()) for p in self.rules.passwords):
            return None
        return self.Incorrect

    def description(self) -> list[str]:
        return [self.Required]


class SubnetRule(AccessRule):
    """The activity may only be used from listed network addresses."""

    Refused = (
        "This quiz is only accessible from certain locations, and this computer is not on the allowed list."
    )

    @classmethod
    def make(cls, rules: EffectiveRules, request: AccessRequest) -> t.Self | None:
        if not rules.subnet.strip():
            return None
        return cls(rules, request)

    def prevent_access(self) -> str | None:
        if self.request.ip_address and address_in_subnets(self.request.ip_address, self.rules.subnet):
            return None
        return self.Refused


class DelayBetweenAttemptsRule(AccessRule):
    """Enforce a wait after the first attempt (delay1) and after each later one (delay2)."""

    CannotWait = "This quiz closes before you will be allowed to start another attempt."

    @classmethod
    def make(cls, rules: EffectiveRules, request: AccessRequest) -> t.Self | None:
        if not rules.delay1_seconds and not rules.delay2_seconds:
            return None
        return cls(rules, request)

    def prevent_new_attempt(self, prior_attempts: t.Sequence[Attempt]) -> str | None:
        # other rules already refuse these cases
        if self.rules.max_attempts > 0 and len(prior_attempts) >= self.rules.max_attempts:
            return None
        if self.rules.close_time and self.now > self.rules.close_time:
            return None

        next_start = self.next_start_time(prior_attempts)
        if self.now < next_start:
            if not self.rules.close_time or next_start <= self.rules.close_time:
                return (
                    "You must wait before you may re-attempt this quiz. "
                    f"You will be allowed to start another attempt after {format_datetime(next_start)}."
                )
            return self.CannotWait
        return None

    def next_start_time(self, prior_attempts: t.Sequence[Attempt]) -> int:
        if not prior_attempts:
            return 0

        last = prior_attempts[-1]
        last_finish = last.finish_time
        if self.rules.time_limit_seconds > 0:
            last_finish = min(last_finish, last.start_time + self.rules.time_limit_seconds)
        if last.state is AttemptState.Abandoned and not last_finish:
            last_finish = last.start_time + self.rules.time_limit_seconds

        if len(prior_attempts) == 1 and self.rules.delay1_seconds:
            return last_finish + self.rules.delay1_seconds
        if len(prior_attempts) > 1 and self.rules.delay2_seconds:
            return last_finish + self.rules.delay2_seconds
        return 0

    def is_finished(self, prior_attempts: t.Sequence[Attempt]) -> bool:
        next_start = self.next_start_time(prior_attempts)
        return self.now <= next_start and bool(self.rules.close_time) and next_start >= self.rules.close_time


class NumAttemptsRule(AccessRule):
    Exhausted = "No more attempts are allowed"

    @classmethod
    def make(cls, rules: EffectiveRules, request: AccessRequest) -> t.Self | None:
        if rules.max_attempts == 0:
            return None
        return cls(rules, request)

    def prevent_new_attempt(self, prior_attempts: t.Sequence[Attempt]) -> str | None:
        if len(prior_attempts) >= self.rules.max_attempts:
            return self.Exhausted
        return None

    def description(self) -> list[str]:
        return [f"Attempts allowed: {self.rules.max_attempts}"]

    def is_finished(self, prior_attempts: t.Sequence[Attempt]) -> bool:
        return len(prior_attempts) >= self.rules.max_attempts


class TimeLimitRule(AccessRule):
    """Tells the user about the time limit; never refuses anything."""

    @classmethod
    def make(cls, rules: EffectiveRules, request: AccessRequest) -> t.Self | None:
        if not rules.time_limit_seconds or request.can_ignore_time_limits:
            return None
        return cls(rules, request)

    def description(self) -> list[str]:
        return [f"Time limit: {format_duration(self.rules.time_limit_seconds)}"]

    def end_time(self, attempt: Attempt) -> int | None:
        return attempt.start_time + self.rules.time_limit_seconds

    def time_left_display(self, attempt: Attempt, now: int) -> int | None:
        end = t.cast(int, self.end_time(attempt))
        if attempt.is_preview and now > end:
            return None
        return end - now
