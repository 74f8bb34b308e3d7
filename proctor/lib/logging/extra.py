import json
import logging
import re
import sys
import textwrap
import typing as t

import pygments
from pygments.formatters import Terminal256Formatter
from pygments.lexers.data import JsonLexer  # pyright: ignore [reportMissingTypeStubs]
from pygments.style import Style

from .json import JSONEncoder
from .style import LogStyle

# attributes every LogRecord carries; anything else came in through `extra=`
RecordAttributes = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime", "log_color"}
Escape = re.compile(r"\x1b\[[0-9;]*m")


class ExtraFormatter(logging.Formatter):
    """
    Wraps a `base` formatter and appends the record's `extra=` context as
    JSON, syntax highlighted when stderr is a terminal. Continuation lines of
    a multi-line message are indented under its first line.
    """

    def __init__(
        self,
        base: type[logging.Formatter],
        format: str | None = None,
        datefmt: str | None = None,
        indent: bool = True,
        pyg_style: type[Style] = LogStyle,
        style: t.Literal["%", "{", "$"] = "%",
        **kwargs: t.Any,
    ):
        super().__init__(format, datefmt=datefmt, style=style)
        self.base = base(format, datefmt=datefmt, style=style, **kwargs)
        self.indent = indent
        self.pyg_style = pyg_style
        self.color = not kwargs.get("no_color", False)

    def context(self, record: logging.LogRecord) -> dict[str, t.Any]:
        return {k: v for k, v in record.__dict__.items() if k not in RecordAttributes}

    def format(self, record: logging.LogRecord) -> str:
        message = self.base.format(record)
        first, _, rest = message.partition("\n")
        if rest and not record.exc_text:
            column = first.find(record.getMessage().split("\n", 1)[0])
            prefix = " " * len(Escape.sub("", first[:column])) if column > 0 else ""
            message = first + "\n" + textwrap.indent(rest, prefix)

        context = self.context(record)
        if not context:
            return message

        js = json.dumps(context, cls=JSONEncoder, sort_keys=True, indent=4 if self.indent else None)
        if self.color and sys.stderr.isatty():
            hl = pygments.highlight  # pyright: ignore [reportUnknownMemberType, reportUnknownVariableType]
            js = hl(js, JsonLexer(), Terminal256Formatter(style=self.pyg_style))
        return f"{message} {js.strip()}"
