from .base import BaseModel
from .enum import OverdueHandling
from .id import ActivityID, UserID


class EffectiveRules(BaseModel):
    """
    The settings that apply to one user on one activity once every matching
    override has been merged in. Computed on demand, never stored.
    """

    activity_id: ActivityID
    user_id: UserID

    open_time: int = 0
    close_time: int = 0
    time_limit_seconds: int = 0
    max_attempts: int = 0
    password: str = ""
    extra_passwords: tuple[str, ...] = ()

    grace_period_seconds: int = 0
    overdue_handling: OverdueHandling = OverdueHandling.AutoAbandon
    subnet: str = ""
    delay1_seconds: int = 0
    delay2_seconds: int = 0

    @property
    def passwords(self) -> tuple[str, ...]:
        if not self.password:
            return ()
        return (self.password, *self.extra_passwords)
