from __future__ import annotations

__all__ = [
    "NotReady",
    "Provide",
    "inject",
]

import typing as t

import dependency_injector.wiring as wiring
from dependency_injector.wiring import Provide

P = t.ParamSpec("P")
TReturn = t.TypeVar("TReturn")


def inject(fn: t.Callable[P, TReturn]) -> t.Callable[P, TReturn]:
    # keeps the signature of `fn` visible to type checkers
    return wiring.inject(fn)


class NotReady(object):
    """Placeholder for a provider whose value is only known once the container has booted."""

    _instance: t.ClassVar[NotReady | None] = None

    def __new__(cls) -> NotReady:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "<NotReady>"
