"""
auth/lockout.py -- Per-account login lockout policy.

Lockout is per account, not per IP. After `threshold` consecutive failures
the account is refused for `window`, whatever the password. A successful
login resets the counter.

The increment-then-maybe-lock step is delegated to
UserStore.record_failed_attempt(), which performs it as one UPDATE inside a
transaction. Two concurrent failures can therefore never both read the same
old counter value.

Both limits are wall-clock comparisons made at check time; there are no
background timers.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from auth.errors import AccountLocked
from core.config import get_settings

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("taskflow.auth")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LockoutPolicy:
    def __init__(
        self,
        store: UserStore,
        threshold: int = 5,
        window: timedelta = timedelta(minutes=15),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.threshold = threshold
        self.window = window
        self._clock = clock

    @classmethod
    def from_settings(cls, store: UserStore) -> LockoutPolicy:
        settings = get_settings()
        return cls(store, threshold=settings.lockout_threshold, window=timedelta(minutes=settings.lockout_minutes))

    def is_locked(self, user: User) -> bool:
        return user.locked_until is not None and user.locked_until > self._clock()

    def check_locked(self, user: User) -> None:
        """Raise AccountLocked while the user's lockout expiry is in the future."""
        if self.is_locked(user):
            raise AccountLocked()

    def on_failure(self, user: User) -> tuple[int, datetime | None]:
        """Count one failed attempt. Returns (new_count, locked_until)."""
        lock_until = self._clock() + self.window
        count, locked_until = self.store.record_failed_attempt(user.id, self.threshold, lock_until)
        user.login_attempts = count
        user.locked_until = locked_until
        if count >= self.threshold:
            logger.warning("Account %s locked after %d failed attempts", user.id, count)
        return count, locked_until

    def on_success(self, user: User) -> None:
        """Reset the counter, clear any lockout and stamp last_login."""
        when = self._clock()
        self.store.record_successful_login(user.id, when)
        user.login_attempts = 0
        user.locked_until = None
        user.last_login = when.isoformat()
