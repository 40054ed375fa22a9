from __future__ import annotations

import threading
from collections.abc import Hashable, Iterator
from contextlib import contextmanager


class LockRegistry:
    """Process-wide exclusive locks keyed by account id (or any hashable key).

    Keys are always acquired in ascending ``str(key)`` order so two callers
    locking the same pair in opposite directions cannot deadlock.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[Hashable, threading.Lock] = {}

    def _lock_for(self, key: Hashable) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @staticmethod
    def ordered(keys) -> list:
        return sorted(set(keys), key=str)

    @contextmanager
    def hold(self, *keys: Hashable) -> Iterator[None]:
        acquired: list[threading.Lock] = []
        try:
            for key in self.ordered(keys):
                lock = self._lock_for(key)
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
