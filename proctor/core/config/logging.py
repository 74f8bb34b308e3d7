import pathlib
import typing as t

import pydantic as p

from .base import BaseSettings


class BaseFormatterSettings(BaseSettings):
    datefmt: str | None = None
    format: str | None = None


class ExtraFormatterSettings(BaseFormatterSettings):
    class_: t.Literal["proctor.lib.logging.ExtraFormatter"] = p.Field(alias="()")
    # dictConfig resolves `ext://` references, e.g. ext://colorlog.ColoredFormatter
    base: str
    log_colors: dict[str, str] | None = None
    no_color: bool = False
    # pretty-print the appended context over several lines
    indent: bool = True


class ColoredFormatterSettings(BaseFormatterSettings):
    class_: t.Literal["colorlog.ColoredFormatter"] = p.Field(alias="()")
    log_colors: dict[str, str] | None = None
    no_color: bool = False


FormatterSettings = t.Annotated[
    ExtraFormatterSettings | ColoredFormatterSettings,
    p.Field(discriminator="class_"),
]


# the standard levels plus TRACE, which LoggingProvider registers
LogLevel = t.Literal["NOTSET", "TRACE", "DEBUG", "INFO", "WARNING", "WARN", "ERROR", "FATAL", "CRITICAL"]


class BaseHandlerSettings(BaseSettings):
    formatter: str
    level: LogLevel = "NOTSET"


class StreamHandlerSettings(BaseHandlerSettings):
    class_: t.Literal["colorlog.StreamHandler", "logging.StreamHandler"] = p.Field(alias="class")
    stream: str = "ext://sys.stderr"


class TimedRotatingFileHandlerSettings(BaseHandlerSettings):
    class_: t.Literal["logging.handlers.TimedRotatingFileHandler"] = p.Field(alias="class")
    backupCount: int = 7
    filename: pathlib.Path
    when: str = "midnight"

    @p.field_serializer("filename")
    def serialize_filename(self, v: pathlib.Path) -> str:
        return str(v)


HandlerSettings = t.Annotated[
    TimedRotatingFileHandlerSettings | StreamHandlerSettings,
    p.Field(discriminator="class_"),
]


class LoggerSettings(BaseSettings):
    level: LogLevel = "NOTSET"
    propagate: bool = True
    handlers: list[str] | None = None


class RootLoggerSettings(BaseSettings):
    handlers: list[str]
    level: LogLevel = "NOTSET"


class LoggingSettings(BaseSettings):
    version: t.Literal[1] = 1
    disable_existing_loggers: bool = False
    formatters: dict[str, FormatterSettings]
    handlers: dict[str, HandlerSettings]
    root: RootLoggerSettings
    loggers: dict[str, LoggerSettings] = {}

    @p.model_validator(mode="after")
    def check_references(self) -> t.Self:
        for name, handler in self.handlers.items():
            if handler.formatter not in self.formatters:
                raise ValueError(f"handler {name!r} uses undefined formatter {handler.formatter!r}")
        loggers: dict[str, LoggerSettings | RootLoggerSettings] = {"root": self.root, **self.loggers}
        for name, logger in loggers.items():
            for handler in logger.handlers or ():
                if handler not in self.handlers:
                    raise ValueError(f"logger {name!r} uses undefined handler {handler!r}")
        return self
