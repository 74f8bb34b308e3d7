__all__ = [
    "ExtraFormatter",
    "JSONEncoder",
    "LogStyle",
]

from .extra import ExtraFormatter
from .json import JSONEncoder
from .style import LogStyle
