from __future__ import annotations

import enum
import pathlib
import typing as t

import click
import pydantic as p
from click import *  # noqa: F401, F403 # pyright: ignore [reportWildcardImportFromLibrary]

from proctor.model.id import ShortUUIDKey

# A thin wrapper around Click, hence `click.*` in our namespace, plus the
# parameter types the `proctor` commands share.


class EnumType(click.Choice):
    """An enum member, given by its value or, case-insensitively, its name."""

    def __init__(self, enum_class: type[enum.Enum]):
        self.enum_class = enum_class
        super().__init__([str(e.value) for e in enum_class], case_sensitive=False)
        self.name = enum_class.__name__

    def convert(self, value: t.Any, param: click.Parameter | None, ctx: click.Context | None) -> enum.Enum:
        if isinstance(value, self.enum_class):
            return value
        for member in self.enum_class:
            if value.lower() in (str(member.value).lower(), member.name.lower()):
                return member
        self.fail(f"{value!r} is not one of {', '.join(self.choices)}", param, ctx)


class KeyParamType(click.ParamType):
    """A prefixed key such as `atmp$...`; the bare shortuuid part is accepted too."""

    def __init__(self, key_type: type[ShortUUIDKey]):
        self.key_type = key_type
        self.name = key_type.__name__

    def convert(
        self, value: str | ShortUUIDKey, param: click.Parameter | None, ctx: click.Context | None
    ) -> ShortUUIDKey:
        if isinstance(value, self.key_type):
            return value
        value = value.strip()
        if self.key_type.separator not in value:
            value = self.key_type.prefix + self.key_type.separator + value
        try:
            return self.key_type(value)
        except ValueError as e:
            self.fail(str(e), param, ctx)


class DirectoryURLType(click.ParamType):
    """An existing directory, given as a path or a `file://` URL; converted to a `file://` URL."""

    name = "DIRECTORY"

    def convert(
        self, value: str | pathlib.Path | p.FileUrl, param: click.Parameter | None, ctx: click.Context | None
    ) -> p.FileUrl:
        if isinstance(value, p.FileUrl):
            return value
        if isinstance(value, str) and "://" in value:
            url = p.AnyUrl(value)
            if url.scheme != "file" or url.path is None:
                self.fail(f"{value}: only file:// URLs are supported", param, ctx)
            value = url.path
        path = pathlib.Path(value).absolute()
        if not path.is_dir():
            self.fail(f"{value}: no such directory", param, ctx)
        return p.FileUrl(f"file://{path}")
