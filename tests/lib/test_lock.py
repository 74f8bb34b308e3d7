from __future__ import annotations

import threading
import time

import pytest

from proctor.lib.lock import KeyedLock


class TestKeyedLock(object):
    def test_entries_are_dropped_on_release(self) -> None:
        locks: KeyedLock[str] = KeyedLock()

        with locks.hold("a"):
            with locks.hold("b"):
                assert len(locks) == 2
            assert len(locks) == 1

        assert len(locks) == 0

    def test_dropped_after_an_error(self) -> None:
        locks: KeyedLock[str] = KeyedLock()

        with pytest.raises(RuntimeError):
            with locks.hold("a"):
                raise RuntimeError("boom")

        assert len(locks) == 0

    def test_one_holder_per_key(self) -> None:
        locks: KeyedLock[str] = KeyedLock()
        barrier = threading.Barrier(4)
        inside = 0
        most_inside = 0
        count = threading.Lock()

        def worker() -> None:
            nonlocal inside, most_inside
            barrier.wait()
            with locks.hold("a"):
                with count:
                    inside += 1
                    most_inside = max(most_inside, inside)
                time.sleep(0.02)
                with count:
                    inside -= 1

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert most_inside == 1
        assert len(locks) == 0

    def test_other_keys_are_not_blocked(self) -> None:
        locks: KeyedLock[str] = KeyedLock()
        acquired = threading.Event()

        def worker() -> None:
            with locks.hold("b"):
                acquired.set()

        with locks.hold("a"):
            thread = threading.Thread(target=worker)
            thread.start()
            assert acquired.wait(timeout=5)
            thread.join(timeout=5)

        assert len(locks) == 0
