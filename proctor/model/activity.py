from .base import BaseModel
from .enum import GradingStrategy, OverdueHandling
from .id import ActivityID


class FeedbackBand(BaseModel):
    # [min_grade, max_grade), except the top band which also holds max_grade
    min_grade: float
    max_grade: float
    text: str = ""


class Activity(BaseModel):
    """
    Settings of a single quiz.

    Times are unix seconds; a zero open/close time is unbounded and a zero
    time limit or attempt count is unlimited.
    """

    activity_id: ActivityID
    name: str = ""

    open_time: int = 0
    close_time: int = 0
    time_limit_seconds: int = 0
    grace_period_seconds: int = 0
    overdue_handling: OverdueHandling = OverdueHandling.AutoAbandon
    max_attempts: int = 0

    password: str = ""
    subnet: str = ""
    delay1_seconds: int = 0
    delay2_seconds: int = 0

    grading_strategy: GradingStrategy = GradingStrategy.Highest
    max_grade: float = 10.0
    sum_of_part_marks: float = 0.0
    feedback_bands: tuple[FeedbackBand, ...] = ()
