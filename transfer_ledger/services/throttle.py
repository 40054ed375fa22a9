"""Failed-login throttling.

Counters live in a store keyed by login identifier and are only touched
while holding that key's lock. A block is lifted lazily: the next check
after ``blocked_until`` clears the entry, so no timer runs per user.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Callable, Optional, Protocol

from ..core.errors import LoginBlockedError
from ..core.locks import LockRegistry


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoginAttempts:
    attempt_count: int = 0
    blocked_until: Optional[datetime] = None


class LoginAttemptStore(Protocol):
    def get(self, key: str) -> LoginAttempts:
        ...

    def save(self, key: str, attempts: LoginAttempts) -> None:
        ...

    def clear(self, key: str) -> None:
        ...


class InMemoryLoginAttemptStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, LoginAttempts] = {}

    def get(self, key: str) -> LoginAttempts:
        with self._lock:
            return self._entries.get(key, LoginAttempts())

    def save(self, key: str, attempts: LoginAttempts) -> None:
        with self._lock:
            self._entries[key] = attempts

    def clear(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class LoginThrottle:
    def __init__(
        self,
        store: Optional[LoginAttemptStore] = None,
        *,
        attempt_limit: int = 5,
        block_for: timedelta = timedelta(minutes=30),
        locks: Optional[LockRegistry] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store or InMemoryLoginAttemptStore()
        self.attempt_limit = attempt_limit
        self.block_for = block_for
        self.locks = locks or LockRegistry()
        self.clock = clock

    def ensure_allowed(self, key: str) -> None:
        """Raise ``LoginBlockedError`` while ``key`` is locked out."""
        with self.locks.hold(key):
            attempts = self.store.get(key)
            if attempts.blocked_until is None:
                return
            if self.clock() < attempts.blocked_until:
                logger.info(
                    "login.blocked",
                    extra={"login": key, "blocked_until": attempts.blocked_until.isoformat()},
                )
                raise LoginBlockedError(
                    "Too many failed login attempts",
                    blocked_until=attempts.blocked_until,
                )
            self.store.clear(key)
            logger.info("login.unblocked", extra={"login": key})

    def record_failure(self, key: str) -> LoginAttempts:
        with self.locks.hold(key):
            attempts = self.store.get(key)
            now = self.clock()
            if attempts.blocked_until is not None and now >= attempts.blocked_until:
                attempts = LoginAttempts()
            count = min(attempts.attempt_count + 1, self.attempt_limit)
            blocked_until = attempts.blocked_until
            if count >= self.attempt_limit:
                blocked_until = now + self.block_for
            updated = LoginAttempts(attempt_count=count, blocked_until=blocked_until)
            self.store.save(key, updated)

        logger.info(
            "login.failed",
            extra={
                "login": key,
                "attempt": count,
                "max_limit_reached": count >= self.attempt_limit,
            },
        )
        return updated

    def record_success(self, key: str) -> None:
        with self.locks.hold(key):
            self.store.clear(key)
