__all__ = [
    # Errors
    "ProctorError",
    "ConfigurationError",
    "DeadlineComputationError",
    "ConcurrentModificationError",
    "ActivityNotFoundError",
    "AttemptNotFoundError",
    "AttemptAlreadyOpenError",
    # Ports
    "ItemResponseEngine",
    "NotificationPort",
    "Repository",
    "LoggingNotifier",
    # Components
    "AccessManager",
    "AttemptStateMachine",
    "GradeAggregator",
    "OverdueAttemptSweeper",
    "QuizService",
    # Results
    "PageResult",
    "StartResult",
    "SweepResult",
    "TransitionOutcome",
]

from .access import AccessManager
from .errors import ActivityNotFoundError, AttemptAlreadyOpenError, AttemptNotFoundError, \
    ConcurrentModificationError, ConfigurationError, DeadlineComputationError, ProctorError
from .grading import GradeAggregator
from .notify import LoggingNotifier
from .ports import ItemResponseEngine, NotificationPort, Repository
from .service import PageResult, QuizService, StartResult
from .state import AttemptStateMachine, TransitionOutcome
from .sweep import OverdueAttemptSweeper, SweepResult
