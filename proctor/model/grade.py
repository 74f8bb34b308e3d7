from .base import BaseModel, WithTimeModified
from .id import ActivityID, UserID


class ActivityGrade(WithTimeModified):
    """A user's best grade on an activity, already rescaled to the activity's maximum."""

    activity_id: ActivityID
    user_id: UserID
    grade: float


class BandCount(BaseModel):
    min_grade: float
    max_grade: float
    count: int


class GradeSummary(BaseModel):
    activity_id: ActivityID
    count: int
    mean: float | None = None
    median: float | None = None
    minimum: float | None = None
    maximum: float | None = None
    standard_deviation: float | None = None
    bands: tuple[BandCount, ...] = ()
