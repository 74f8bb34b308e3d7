from __future__ import annotations

import logging

from proctor.model import AttemptEvent

logger = logging.getLogger(__name__)


class LoggingNotifier(object):
    """Publishes attempt events to the log; one record per event, carrying the event fields as extras."""

    def __init__(self, level: int = logging.INFO):
        self.level = level

    def emit(self, event: AttemptEvent) -> None:
        logger.log(self.level, event.event_type.replace("_", " "), extra=event.model_dump(mode="json"))
