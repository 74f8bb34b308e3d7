"""Merge an activity's settings with the overrides that apply to one user."""

from __future__ import annotations

import logging
import typing as t

from proctor.model import Activity, EffectiveRules, Override, OverrideScope, UserID

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# fields where the smallest value is the most lenient
_EarliestWins = frozenset({"open_time"})
_TimingFields = ("open_time", "close_time", "time_limit_seconds", "max_attempts")


def resolve(
    activity: Activity,
    user_override: Override | None = None,
    group_overrides: t.Iterable[Override] = (),
    *,
    user_id: UserID | None = None,
) -> EffectiveRules:
    """Compute the rules in force for one user.

    Fields are resolved one at a time: the user's own override always wins;
    otherwise an unlimited (zero) group value wins; otherwise the most
    lenient group value; otherwise the activity default.
    """
    groups = tuple(group_overrides)
    _check_overrides(activity, user_override, groups)

    if user_id is None:
        if user_override is None:
            raise ValueError("user_id is required when there is no user override")
        user_id = t.cast(UserID, user_override.user_id)

    values: dict[str, t.Any] = {}
    for field in _TimingFields:
        values[field] = _resolve_field(field, getattr(activity, field), user_override, groups)

    password, extra = _resolve_password(activity, user_override, groups)

    rules = EffectiveRules(
        activity_id=activity.activity_id,
        user_id=user_id,
        password=password,
        extra_passwords=extra,
        grace_period_seconds=activity.grace_period_seconds,
        overdue_handling=activity.overdue_handling,
        subnet=activity.subnet,
        delay1_seconds=activity.delay1_seconds,
        delay2_seconds=activity.delay2_seconds,
        **values,
    )
    if user_override is not None or groups:
        logger.debug(
            "resolved effective rules",
            extra={
                "activity_id": activity.activity_id,
                "user_id": user_id,
                "user_override": user_override is not None,
                "group_overrides": len(groups),
            },
        )
    return rules


def _resolve_field(field: str, default: int, user_override: Override | None, groups: tuple[Override, ...]) -> int:
    if user_override is not None and user_override.is_set(field):
        return t.cast(int, getattr(user_override, field))

    candidates = [t.cast(int, getattr(o, field)) for o in groups if o.is_set(field)]
    if not candidates:
        return default
    if 0 in candidates:
        return 0
    if field in _EarliestWins:
        return min(candidates)
    return max(candidates)


def _resolve_password(
    activity: Activity, user_override: Override | None, groups: tuple[Override, ...]
) -> tuple[str, tuple[str, ...]]:
    if user_override is not None and user_override.is_set("password"):
        return t.cast(str, user_override.password), ()

    passwords: list[str] = []
    for o in groups:
        if o.password is not None and o.password not in passwords:
            passwords.append(o.password)
    if not passwords:
        return activity.password, ()
    primary, *extra = passwords
    return primary, tuple(extra)


def _check_overrides(activity: Activity, user_override: Override | None, groups: tuple[Override, ...]) -> None:
    if user_override is not None:
        if user_override.scope is not OverrideScope.User:
            raise ConfigurationError(f"override {user_override.override_id} is not a user override")
        if user_override.activity_id != activity.activity_id:
            raise ConfigurationError(f"override {user_override.override_id} belongs to another activity")
    for o in groups:
        if o.scope is not OverrideScope.Group:
            raise ConfigurationError(f"override {o.override_id} is not a group override")
        if o.activity_id != activity.activity_id:
            raise ConfigurationError(f"override {o.override_id} belongs to another activity")
