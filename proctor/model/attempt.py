import enum

from .base import BaseModel
from .id import ActivityID, AttemptID, UserID


class AttemptState(enum.Enum):
    InProgress = "inprogress"
    Overdue = "overdue"
    Finished = "finished"
    Abandoned = "abandoned"

    @property
    def is_open(self) -> bool:
        return self in (AttemptState.InProgress, AttemptState.Overdue)

    @property
    def is_terminal(self) -> bool:
        return not self.is_open


class Attempt(BaseModel):
    attempt_id: AttemptID
    activity_id: ActivityID
    user_id: UserID
    attempt_number: int

    state: AttemptState = AttemptState.InProgress
    start_time: int
    finish_time: int = 0
    # next instant the attempt must be looked at again, None for never
    check_time: int | None = None

    sum_of_marks: float | None = None
    is_preview: bool = False
