__all__ = [
    "BootConfiguration",
    "LoggingProvider",
    "ProctorContainer",
    "Secrets",
    "Settings",
    "TimestampProvider",
    "di",
    "unix_now",
]

# `di` first: proctor.storage imports it from here
from . import di
from .config import Secrets, Settings
from .container import BootConfiguration, ProctorContainer
from .provider import LoggingProvider, TimestampProvider, unix_now
