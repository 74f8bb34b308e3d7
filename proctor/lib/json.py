"""JSON for command output, the engine's JSON columns and log record context."""

from __future__ import annotations

import base64
import dataclasses
import enum
import functools
import json as pyjson
import pathlib
import typing as t

import pydantic as p

JSONPrimitive = str | int | float | bool | None
JSONValue = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]


@functools.singledispatch
def encode(obj: t.Any) -> JSONValue:
    raise TypeError(f"object of type {type(obj).__name__} is not JSON serializable")


@encode.register
def _(obj: p.BaseModel) -> JSONValue:
    return obj.model_dump(mode="json")


@encode.register
def _(obj: enum.Enum) -> JSONValue:
    return obj.value


@encode.register(set)
@encode.register(frozenset)
def _(obj: set[t.Any] | frozenset[t.Any]) -> JSONValue:
    return list(obj)


@encode.register
def _(obj: bytes) -> JSONValue:
    return base64.b64encode(obj).decode("utf8")


@encode.register
def _(obj: pathlib.PurePath) -> JSONValue:
    return str(obj)


class JSONEncoder(pyjson.JSONEncoder):
    def default(self, o: t.Any) -> t.Any:
        # result types such as SweepResult are plain dataclasses
        if dataclasses.is_dataclass(o) and not isinstance(o, type):
            return {f.name: getattr(o, f.name) for f in dataclasses.fields(o)}
        try:
            return encode(o)
        except TypeError:
            return super().default(o)


def dumps(obj: t.Any, **kwargs: t.Any) -> str:
    kwargs.setdefault("cls", JSONEncoder)
    return pyjson.dumps(obj, **kwargs)


def loads(s: str | bytes | bytearray, **kwargs: t.Any) -> JSONValue:
    return pyjson.loads(s, **kwargs)
