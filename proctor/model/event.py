import typing as t

from .base import BaseModel
from .id import ActivityID, AttemptID, UserID


class AttemptEvent(BaseModel):
    event_type: str
    attempt_id: AttemptID
    activity_id: ActivityID
    user_id: UserID
    timestamp: int


class AttemptStarted(AttemptEvent):
    event_type: t.Literal["attempt_started"] = "attempt_started"


class AttemptBecameOverdue(AttemptEvent):
    event_type: t.Literal["attempt_became_overdue"] = "attempt_became_overdue"


class AttemptFinished(AttemptEvent):
    event_type: t.Literal["attempt_finished"] = "attempt_finished"
    # False when the system closed the attempt on the user's behalf
    is_graded: bool = True


class AttemptAbandoned(AttemptEvent):
    event_type: t.Literal["attempt_abandoned"] = "attempt_abandoned"
