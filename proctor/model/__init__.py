__all__ = [
    # Base
    "BaseModel",
    "WithTimeModified",
    # Enums
    "DeploymentEnvironment",
    "GradingStrategy",
    "OverdueHandling",
    # ID Types
    "ActivityID",
    "AttemptID",
    "GroupID",
    "OverrideID",
    "UserID",
    # Activity
    "Activity",
    "FeedbackBand",
    # Overrides
    "Override",
    "OverrideScope",
    "EffectiveRules",
    # Attempts
    "Attempt",
    "AttemptState",
    # Grades
    "ActivityGrade",
    "BandCount",
    "GradeSummary",
    # Events
    "AttemptEvent",
    "AttemptStarted",
    "AttemptBecameOverdue",
    "AttemptFinished",
    "AttemptAbandoned",
]

from .activity import Activity, FeedbackBand
from .attempt import Attempt, AttemptState
from .base import BaseModel, WithTimeModified
from .enum import DeploymentEnvironment, GradingStrategy, OverdueHandling
from .event import AttemptAbandoned, AttemptBecameOverdue, AttemptEvent, AttemptFinished, AttemptStarted
from .grade import ActivityGrade, BandCount, GradeSummary
from .id import ActivityID, AttemptID, GroupID, OverrideID, UserID
from .override import Override, OverrideScope
from .rules import EffectiveRules
