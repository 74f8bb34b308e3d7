import inspect
import logging
import logging.config
import time
import typing as t

# unix seconds; every deadline and timestamp in the quiz core uses them
TimestampProvider = t.Callable[[], int]

TRACE: t.Final[int] = 5


def unix_now() -> int:
    return int(time.time())


class TraceLogger(logging.Logger):
    def trace(self, message: str, *args: t.Any, **kwargs: t.Any):
        if self.isEnabledFor(TRACE):
            self._log(TRACE, message, args, **kwargs)


class LoggingProvider(object):
    """Applies the `logging` section of the settings with `dictConfig` and hands out loggers."""

    def __init__(self, config: dict[str, t.Any], debug: bool):
        logging.addLevelName(TRACE, "TRACE")
        # loggers created from here on get a `trace()` method
        logging.setLoggerClass(TraceLogger)
        logging.config.dictConfig(config)
        logging.captureWarnings(debug)

    @staticmethod
    def get_logger(name: str | None = None) -> TraceLogger:
        """The named logger, or the one for the calling module."""
        if name is None:
            caller = inspect.stack()[1]
            name = caller.frame.f_globals["__name__"]
        return t.cast(TraceLogger, logging.getLogger(name))
