"""Fixed-interval rate limiter shared by all migration workers."""

from __future__ import annotations

import math
import threading
import time
from collections.abc import Callable
from datetime import timedelta

_NANOS_PER_SECOND = 1_000_000_000


class AtomicCursor:
    """Integer cell with get and compare-and-set.

    The lock is held only for the duration of a single compare_and_set and
    stands in for a hardware compare-and-swap; callers build their retry
    loops on top and never wait while holding it.
    """

    __slots__ = ("_lock", "_value")

    def __init__(self, value: int = 0) -> None:
        self._value = value
        self._lock = threading.Lock()

    def get(self) -> int:
        return self._value

    def compare_and_set(self, expected: int, new: int) -> bool:
        """Set to new iff the current value equals expected.

        Returns:
            True if the swap happened, False if another caller got there first
        """
        with self._lock:
            if self._value != expected:
                return False
            self._value = new
            return True


class RateLimiter:
    """Paces callers to at most one permit per fixed interval.

    Each acquire reserves the next free time slot on a shared cursor and
    then sleeps until that slot arrives, so concurrent workers are spaced
    evenly rather than released in bursts.

    Example:
        limiter = RateLimiter.create(permits_per_second=500)

        # Blocking acquire (waits if needed)
        limiter.acquire()
        destination.upsert(doc_id, payload, durability)

        # Non-blocking check
        if limiter.try_acquire():
            destination.upsert(doc_id, payload, durability)
    """

    def __init__(
        self,
        interval_nanos: int,
        *,
        clock: Callable[[], int] = time.monotonic_ns,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize rate limiter.

        Prefer create() or unlimited().

        Args:
            interval_nanos: Minimum spacing between permits; 0 means unlimited
            clock: Monotonic nanosecond clock
            sleep: Sleep function taking seconds

        Raises:
            ValueError: If interval_nanos is negative
        """
        if interval_nanos < 0:
            msg = f"interval_nanos must be non-negative, got {interval_nanos}"
            raise ValueError(msg)
        self._interval_nanos = interval_nanos
        self._clock = clock
        self._sleep = sleep
        self._next_free = AtomicCursor(clock())

    @classmethod
    def create(
        cls,
        permits_per_second: float,
        *,
        clock: Callable[[], int] = time.monotonic_ns,
        sleep: Callable[[float], None] = time.sleep,
    ) -> RateLimiter:
        """Build a limiter for the given rate.

        Args:
            permits_per_second: Target rate; zero or negative disables limiting

        Raises:
            ValueError: If permits_per_second is NaN or infinite
        """
        if math.isnan(permits_per_second) or math.isinf(permits_per_second):
            msg = f"permits_per_second must be finite, got {permits_per_second}"
            raise ValueError(msg)
        if permits_per_second <= 0:
            return cls(0, clock=clock, sleep=sleep)
        # Rates above 1e9/s truncate to 0 and therefore run unlimited
        return cls(int(_NANOS_PER_SECOND / permits_per_second), clock=clock, sleep=sleep)

    @classmethod
    def unlimited(cls) -> RateLimiter:
        return cls(0)

    @property
    def is_unlimited(self) -> bool:
        return self._interval_nanos <= 0

    @property
    def interval(self) -> timedelta:
        return timedelta(microseconds=self._interval_nanos / 1000)

    def acquire(self) -> None:
        """Reserve the next slot, blocking until it arrives."""
        if self.is_unlimited:
            return
        while True:
            now = self._clock()
            current = self._next_free.get()
            slot = max(now, current)
            if self._next_free.compare_and_set(current, slot + self._interval_nanos):
                wait_nanos = slot - now
                if wait_nanos > 0:
                    self._sleep(wait_nanos / _NANOS_PER_SECOND)
                return

    def try_acquire(self) -> bool:
        """Take a permit only if one is available right now.

        Never sleeps. Returns False when the next slot lies in the future or
        a concurrent caller claimed the current one.
        """
        if self.is_unlimited:
            return True
        now = self._clock()
        current = self._next_free.get()
        if current > now:
            return False
        return self._next_free.compare_and_set(current, now + self._interval_nanos)

    def __repr__(self) -> str:
        if self.is_unlimited:
            return "RateLimiter(unlimited)"
        return f"RateLimiter(interval_nanos={self._interval_nanos})"
