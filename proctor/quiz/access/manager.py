from __future__ import annotations

import logging
import typing as t

from proctor.model import Attempt, EffectiveRules

from .base import AccessRequest, AccessRule
from .rules import DelayBetweenAttemptsRule, NumAttemptsRule, OpenCloseDateRule, PasswordRule, SubnetRule, \
    TimeLimitRule

logger = logging.getLogger(__name__)

DefaultRules: tuple[type[AccessRule], ...] = (
    NumAttemptsRule,
    DelayBetweenAttemptsRule,
    OpenCloseDateRule,
    PasswordRule,
    SubnetRule,
    TimeLimitRule,
)


class AccessManager(object):
    """Runs every applicable access rule and collects what they have to say.

    Rules never short-circuit one another: a refusal lists every reason at
    once. An empty list from `evaluate` means access is permitted.
    """

    def __init__(self, rule_types: t.Iterable[type[AccessRule]] = DefaultRules):
        self.rule_types: list[type[AccessRule]] = list(rule_types)

    def register(self, rule_type: type[AccessRule]) -> None:
        if rule_type not in self.rule_types:
            self.rule_types.append(rule_type)

    def build(self, rules: EffectiveRules, request: AccessRequest) -> list[AccessRule]:
        built = (rule_type.make(rules, request) for rule_type in self.rule_types)
        return [r for r in built if r is not None]

    def evaluate(
        self,
        rules: EffectiveRules,
        now: int,
        attempt: Attempt | None = None,
        prior_attempts: t.Sequence[Attempt] = (),
        password: str | None = None,
        ip_address: str | None = None,
        can_ignore_time_limits: bool = False,
    ) -> list[str]:
        """Reasons the user may not start a new attempt, or continue `attempt` if one is given.

        `prior_attempts` are the user's closed attempts, oldest first.
        Previews among them are not counted.
        """
        request = AccessRequest(
            now=now,
            password=password,
            ip_address=ip_address,
            can_ignore_time_limits=can_ignore_time_limits,
        )
        prior = [a for a in prior_attempts if not a.is_preview]

        messages: list[str] = []
        for rule in self.build(rules, request):
            if attempt is None:
                if message := rule.prevent_new_attempt(prior):
                    messages.append(message)
            if message := rule.prevent_access():
                messages.append(message)

        if messages:
            logger.debug(
                "access refused",
                extra={
                    "activity_id": rules.activity_id,
                    "user_id": rules.user_id,
                    "attempt_id": attempt.attempt_id if attempt is not None else None,
                    "messages": messages,
                },
            )
        return messages

    def describe(self, rules: EffectiveRules, now: int) -> list[str]:
        request = AccessRequest(now=now)
        return [line for rule in self.build(rules, request) for line in rule.description()]

    def is_finished(self, rules: EffectiveRules, now: int, prior_attempts: t.Sequence[Attempt] = ()) -> bool:
        """True when no rule will ever let this user start another attempt."""
        request = AccessRequest(now=now)
        prior = [a for a in prior_attempts if not a.is_preview]
        return any(rule.is_finished(prior) for rule in self.build(rules, request))

    def end_time(self, rules: EffectiveRules, attempt: Attempt) -> int | None:
        request = AccessRequest(now=attempt.start_time)
        ends = [e for rule in self.build(rules, request) if (e := rule.end_time(attempt)) is not None]
        return min(ends) if ends else None

    def time_left_display(self, rules: EffectiveRules, attempt: Attempt, now: int) -> int | None:
        """The countdown to show during `attempt`, or None when there is nothing to show."""
        request = AccessRequest(now=now)
        lefts = [
            left for rule in self.build(rules, request) if (left := rule.time_left_display(attempt, now)) is not None
        ]
        return min(lefts) if lefts else None
