from __future__ import annotations

import datetime
import typing as t
from dataclasses import dataclass

from proctor.model import Attempt, EffectiveRules

# time remaining is only shown once the close date is this near
ShowTimeBeforeDeadline = 3600


@dataclass(frozen=True)
class AccessRequest:
    """What is known about the person asking for access."""

    now: int
    password: str | None = None
    ip_address: str | None = None
    # staff previewing an activity are not held to the time limit
    can_ignore_time_limits: bool = False


class AccessRule(object):
    """One independent restriction on starting or continuing an attempt.

    Subclasses override whichever checks apply to them; each returns a
    message explaining the refusal, or None to allow.
    """

    def __init__(self, rules: EffectiveRules, request: AccessRequest):
        self.rules = rules
        self.request = request

    @property
    def now(self) -> int:
        return self.request.now

    @classmethod
    def make(cls, rules: EffectiveRules, request: AccessRequest) -> t.Self | None:
        """Build the rule, or return None when it does not apply to these rules."""
        return cls(rules, request)

    def prevent_new_attempt(self, prior_attempts: t.Sequence[Attempt]) -> str | None:
        return None

    def prevent_access(self) -> str | None:
        return None

    def description(self) -> list[str]:
        return []

    def is_finished(self, prior_attempts: t.Sequence[Attempt]) -> bool:
        """True when this rule alone means the user can never start another attempt."""
        return False

    def end_time(self, attempt: Attempt) -> int | None:
        return None

    def time_left_display(self, attempt: Attempt, now: int) -> int | None:
        """Seconds left to show the user, or None to show nothing."""
        return None


def format_datetime(ts: int) -> str:
    return datetime.datetime.fromtimestamp(ts, tz=datetime.UTC).strftime("%A, %d %B %Y, %H:%M %Z")


def format_duration(seconds: int) -> str:
    parts: list[str] = []
    for unit, size in (("day", 86400), ("hour", 3600), ("min", 60), ("sec", 1)):
        count, seconds = divmod(seconds, size)
        if count:
            parts.append(f"{count} {unit}{'s' if count != 1 else ''}")
    return " ".join(parts) or "0 secs"
