__all__ = [
    "DatabaseSecrets",
    "DatabaseSettings",
    "LoggingSettings",
    "QuizSettings",
    "Secrets",
    "Settings",
    "StorageSettings",
]


from .logging import LoggingSettings
from .quiz import QuizSettings
from .settings import Secrets, Settings
from .storage import DatabaseSecrets, DatabaseSettings, StorageSettings
