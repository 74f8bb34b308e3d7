import enum
import typing as t

import pydantic as p

from .base import BaseModel
from .id import ActivityID, GroupID, OverrideID, UserID


class OverrideScope(enum.Enum):
    User = "user"
    Group = "group"


class Override(BaseModel):
    """
    An exception to an activity's timing, attempt count or password for one
    user or one group.

    A field left as None is not overridden. Zero keeps its usual meaning
    (unbounded / unlimited) and is an explicit override.
    """

    override_id: OverrideID
    activity_id: ActivityID
    user_id: UserID | None = None
    group_id: GroupID | None = None

    open_time: int | None = None
    close_time: int | None = None
    time_limit_seconds: int | None = None
    max_attempts: int | None = None
    password: str | None = None

    Fields: t.ClassVar[tuple[str, ...]] = ("open_time", "close_time", "time_limit_seconds", "max_attempts", "password")

    @p.model_validator(mode="after")
    def check_scope(self) -> t.Self:
        if (self.user_id is None) == (self.group_id is None):
            raise ValueError("an override applies to exactly one user or one group")
        return self

    @property
    def scope(self) -> OverrideScope:
        return OverrideScope.User if self.user_id is not None else OverrideScope.Group

    def is_set(self, field: str) -> bool:
        if field not in self.Fields:
            raise KeyError(field)
        return getattr(self, field) is not None
