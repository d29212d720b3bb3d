"""Sliding-window attempt limiter with lockout.

One ``AttemptLimiter`` per named action keeps failures for one action (say,
logins) from locking a client out of an unrelated one (say, applying for a
pet). State is a lock-guarded in-process map; a multi-instance deployment
would back the same interface with a shared key-value store.
"""

import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from loguru import logger

# Opportunistic sweep of expired records every N mutations.
_SWEEP_EVERY = 500


@dataclass
class AttemptRecord:
    """Attempts counted for one key in its current window."""

    window_start: float
    attempts: int = 0
    lock_until: float | None = None


@dataclass(frozen=True)
class LimitDecision:
    """Result of ``AttemptLimiter.check``."""

    allowed: bool
    remaining_attempts: int = 0
    retry_after_seconds: int = 0


class AttemptLimiter:
    """Counts attempts per key inside a fixed-length window started by the first attempt.

    Args:
        name: Action name, used in logs and error messages.
        window_seconds: Length of the counting window.
        max_attempts: Attempts allowed per window.
        lockout_seconds: Lockout applied once the window is exhausted.
        clock: Time source returning epoch seconds.
    """

    def __init__(
        self,
        name: str,
        window_seconds: float,
        max_attempts: int,
        lockout_seconds: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if window_seconds <= 0 or max_attempts <= 0 or lockout_seconds <= 0:
            msg = "window_seconds, max_attempts and lockout_seconds must be positive"
            raise ValueError(msg)
        self.name = name
        self.window_seconds = window_seconds
        self.max_attempts = max_attempts
        self.lockout_seconds = lockout_seconds
        self._clock = clock
        self._records: dict[str, AttemptRecord] = {}
        self._lock = threading.Lock()
        self._mutations = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def _is_expired(self, record: AttemptRecord, now: float) -> bool:
        locked = record.lock_until is not None and record.lock_until > now
        return not locked and now - record.window_start >= self.window_seconds

    def _live_record(self, key: str, now: float) -> AttemptRecord | None:
        record = self._records.get(key)
        if record is not None and self._is_expired(record, now):
            del self._records[key]
            return None
        return record

    def _check_locked(self, key: str, now: float) -> LimitDecision:
        record = self._live_record(key, now)
        if record is None:
            return LimitDecision(allowed=True, remaining_attempts=self.max_attempts)

        if record.lock_until is not None:
            if record.lock_until > now:
                return LimitDecision(allowed=False, retry_after_seconds=max(1, math.ceil(record.lock_until - now)))
            # Lockout served: start over.
            del self._records[key]
            return LimitDecision(allowed=True, remaining_attempts=self.max_attempts)

        if record.attempts >= self.max_attempts:
            record.lock_until = now + self.lockout_seconds
            logger.warning(f"Limiter '{self.name}' locked key {key} for {self.lockout_seconds:.0f}s")
            return LimitDecision(allowed=False, retry_after_seconds=max(1, math.ceil(self.lockout_seconds)))

        return LimitDecision(allowed=True, remaining_attempts=self.max_attempts - record.attempts)

    def check(self, key: str) -> LimitDecision:
        """Decide whether ``key`` may attempt the action now.

        Exhausting the window switches the key into lockout, so the call that
        discovers the exhaustion is already refused.
        """
        with self._lock:
            return self._check_locked(key, self._clock())

    def record_failure(self, key: str) -> int:
        """Count one failed attempt and return the attempts in the current window."""
        with self._lock:
            now = self._clock()
            record = self._live_record(key, now)
            if record is None or (record.lock_until is not None and record.lock_until <= now):
                record = AttemptRecord(window_start=now)
                self._records[key] = record
            record.attempts += 1
            self._after_mutation(now)
            return record.attempts

    def record_success(self, key: str) -> None:
        """Forget everything about ``key``."""
        with self._lock:
            self._records.pop(key, None)

    def hit(self, key: str) -> LimitDecision:
        """Check and, when allowed, count the attempt; for plain throttling."""
        with self._lock:
            now = self._clock()
            decision = self._check_locked(key, now)
            if not decision.allowed:
                return decision
            record = self._records.get(key)
            if record is None:
                record = AttemptRecord(window_start=now)
                self._records[key] = record
            record.attempts += 1
            self._after_mutation(now)
            return LimitDecision(allowed=True, remaining_attempts=max(0, self.max_attempts - record.attempts))

    def attempts(self, key: str) -> int:
        """Attempts counted for ``key`` in its current window."""
        with self._lock:
            record = self._live_record(key, self._clock())
            return 0 if record is None else record.attempts

    def sweep(self) -> int:
        """Drop expired records; returns how many were removed."""
        with self._lock:
            return self._sweep_locked(self._clock())

    def reset(self) -> None:
        with self._lock:
            self._records.clear()
            self._mutations = 0

    def _after_mutation(self, now: float) -> None:
        self._mutations += 1
        if self._mutations % _SWEEP_EVERY == 0:
            self._sweep_locked(now)

    def _sweep_locked(self, now: float) -> int:
        expired = [key for key, record in self._records.items() if self._is_expired(record, now)]
        for key in expired:
            del self._records[key]
        return len(expired)


class LimiterRegistry:
    """Named limiters, one per rate-limited action."""

    def __init__(self, limiters: dict[str, AttemptLimiter] | None = None) -> None:
        self._limiters: dict[str, AttemptLimiter] = dict(limiters or {})

    def add(self, limiter: AttemptLimiter) -> AttemptLimiter:
        self._limiters[limiter.name] = limiter
        return limiter

    def get(self, name: str) -> AttemptLimiter:
        try:
            return self._limiters[name]
        except KeyError:
            msg = f"No limiter configured for action '{name}'"
            raise KeyError(msg) from None

    __getitem__ = get

    def __contains__(self, name: object) -> bool:
        return name in self._limiters

    def names(self) -> list[str]:
        return sorted(self._limiters)

    def reset(self) -> None:
        for limiter in self._limiters.values():
            limiter.reset()
