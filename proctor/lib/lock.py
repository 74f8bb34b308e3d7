from __future__ import annotations

import contextlib
import threading
import typing as t

K = t.TypeVar("K", bound=t.Hashable)


class KeyedLock(t.Generic[K]):
    """
    A mutex per key, created on first use and discarded once nobody holds or
    waits for it.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[K, threading.Lock] = {}
        self._waiters: dict[K, int] = {}

    @contextlib.contextmanager
    def hold(self, key: K) -> t.Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._waiters[key] -= 1
                if self._waiters[key] == 0:
                    del self._waiters[key]
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
