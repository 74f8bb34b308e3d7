__all__ = [
    "BootConfiguration",
    "ProctorContainer",
    "QuizContainer",
    "StorageContainer",
]

from .proctor import BootConfiguration, ProctorContainer
from .quiz import QuizContainer
from .storage import StorageContainer
