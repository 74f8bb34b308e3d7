__all__ = [
    "AccessManager",
    "AccessRequest",
    "AccessRule",
    "DefaultRules",
    # Built-in rules
    "DelayBetweenAttemptsRule",
    "NumAttemptsRule",
    "OpenCloseDateRule",
    "PasswordRule",
    "SubnetRule",
    "TimeLimitRule",
]

from .base import AccessRequest, AccessRule
from .manager import AccessManager, DefaultRules
from .rules import DelayBetweenAttemptsRule, NumAttemptsRule, OpenCloseDateRule, PasswordRule, SubnetRule, \
    TimeLimitRule
