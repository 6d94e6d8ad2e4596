"""Fixed-window admission control for outbound document submissions.

This module provides a thread-safe limiter that admits at most
``max_per_window`` callers per window and parks everyone else on a
condition variable until the window rolls over.
"""

import threading
import time
from contextlib import contextmanager
from enum import Enum
from typing import Callable, Iterator, List, Optional, Union

from docgate.app.core.logging import get_logger
from docgate.app.exceptions import AdmissionDenied, CancellationError

logger = get_logger(__name__)


class TimeUnit(Enum):
    """Window lengths accepted by the limiter."""
    SECOND = "second"
    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"

    @property
    def seconds(self) -> float:
        return _UNIT_SECONDS[self]


_UNIT_SECONDS = {
    TimeUnit.SECOND: 1.0,
    TimeUnit.MINUTE: 60.0,
    TimeUnit.HOUR: 3600.0,
    TimeUnit.DAY: 86400.0,
}


class AcquireStatus(Enum):
    """Outcome of RateLimiter.acquire()."""
    ADMITTED = "admitted"
    DENIED = "denied"
    CANCELLED = "cancelled"

    def __bool__(self) -> bool:
        return self is AcquireStatus.ADMITTED


class CancelToken:
    """Cancellation handle for a blocked acquire().

    Cancelling wakes every limiter currently waiting on behalf of the
    token, so the waiter returns CANCELLED without waiting for rollover.

    Usage:
        token = CancelToken()
        # in another thread
        limiter.acquire(cancel=token)
        # later
        token.cancel()
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._conditions: List[threading.Condition] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()
        with self._lock:
            conditions = list(self._conditions)
        for condition in conditions:
            with condition:
                condition.notify_all()

    def _attach(self, condition: threading.Condition) -> None:
        with self._lock:
            self._conditions.append(condition)

    def _detach(self, condition: threading.Condition) -> None:
        with self._lock:
            self._conditions.remove(condition)


class RateLimiter:
    """Thread-safe fixed-window rate limiter.

    The window starts at the first access and rolls over lazily: the first
    acquire() that observes ``now - window_start >= window`` resets the
    counter before checking quota.

    release() only wakes waiters. Capacity is reclaimed by rollover, never
    by release(), so the limiter bounds calls per window rather than calls
    in flight.

    Usage:
        limiter = RateLimiter(TimeUnit.SECOND, max_per_window=10)

        if limiter.acquire(timeout=5.0):
            try:
                # call the remote API
                pass
            finally:
                limiter.release()

        # or
        with limiter.admission(timeout=5.0):
            ...
    """

    def __init__(
        self,
        window: Union[float, TimeUnit],
        max_per_window: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the rate limiter.

        Args:
            window: Window length in seconds, or a TimeUnit
            max_per_window: Admissions granted per window
            clock: Monotonic clock returning seconds
        """
        if isinstance(window, TimeUnit):
            window = window.seconds
        if window <= 0:
            raise ValueError("window must be positive")
        if max_per_window < 1:
            raise ValueError("max_per_window must be at least 1")

        self.window = float(window)
        self.max_per_window = max_per_window
        self._clock = clock

        self._cond = threading.Condition(threading.Lock())
        self._window_start = clock()
        self._count = 0

        # Counters for monitoring
        self._waiting = 0
        self._admitted_total = 0
        self._denied_total = 0
        self._cancelled_total = 0
        self._released_total = 0

    @property
    def count_in_window(self) -> int:
        with self._cond:
            return self._count

    @property
    def window_start(self) -> float:
        with self._cond:
            return self._window_start

    def _roll_window(self, now: float) -> None:
        # Caller must hold self._cond
        if now - self._window_start >= self.window:
            self._window_start = now
            self._count = 0
            if self._waiting:
                self._cond.notify_all()

    def acquire(
        self,
        blocking: bool = True,
        timeout: Optional[float] = None,
        cancel: Optional[CancelToken] = None,
    ) -> AcquireStatus:
        """Wait for room in the current window and take one admission.

        Args:
            blocking: If False, return DENIED instead of waiting
            timeout: Maximum seconds to wait, None waits until admitted
            cancel: Token that aborts the wait when cancelled

        Returns:
            ADMITTED if the count was incremented, DENIED if the caller
            would not or could not wait long enough, CANCELLED if the
            token fired first. Only ADMITTED changes the window count.
        """
        if timeout is not None and timeout < 0:
            raise ValueError("timeout must not be negative")

        with self._cond:
            deadline = None if timeout is None else self._clock() + timeout
            if cancel is not None:
                cancel._attach(self._cond)
            try:
                while True:
                    if cancel is not None and cancel.cancelled:
                        self._cancelled_total += 1
                        logger.debug("Admission wait cancelled")
                        return AcquireStatus.CANCELLED

                    now = self._clock()
                    self._roll_window(now)

                    if self._count < self.max_per_window:
                        self._count += 1
                        self._admitted_total += 1
                        return AcquireStatus.ADMITTED

                    until_rollover = self._window_start + self.window - now
                    if not blocking or (deadline is not None and deadline <= now):
                        self._denied_total += 1
                        logger.debug(
                            f"Admission denied: {self._count}/{self.max_per_window} "
                            f"used, window rolls over in {until_rollover:.3f}s"
                        )
                        return AcquireStatus.DENIED

                    wait_for = until_rollover
                    if deadline is not None:
                        wait_for = min(wait_for, deadline - now)

                    self._waiting += 1
                    try:
                        self._cond.wait(wait_for)
                    finally:
                        self._waiting -= 1
            finally:
                if cancel is not None:
                    cancel._detach(self._cond)

    def try_acquire(self) -> bool:
        """Take an admission only if one is available right now."""
        return self.acquire(blocking=False) is AcquireStatus.ADMITTED

    def release(self) -> None:
        """Signal that an admitted call finished and wake all waiters.

        Does not return capacity to the window. Calling it without a
        matching acquire() only produces a spurious wakeup.
        """
        with self._cond:
            self._released_total += 1
            self._cond.notify_all()

    @contextmanager
    def admission(
        self,
        timeout: Optional[float] = None,
        cancel: Optional[CancelToken] = None,
    ) -> Iterator[None]:
        """Hold one admission for the duration of the block.

        Raises:
            AdmissionDenied: If the timeout elapsed first
            CancellationError: If the token was cancelled first
        """
        status = self.acquire(timeout=timeout, cancel=cancel)
        if status is AcquireStatus.CANCELLED:
            raise CancellationError()
        if status is AcquireStatus.DENIED:
            raise AdmissionDenied(retry_after=self.retry_after())
        try:
            yield
        finally:
            self.release()

    def retry_after(self) -> float:
        """Seconds until the current window rolls over, 0 if quota remains."""
        with self._cond:
            now = self._clock()
            self._roll_window(now)
            if self._count < self.max_per_window:
                return 0.0
            return max(0.0, self._window_start + self.window - now)

    def get_stats(self) -> dict:
        """Get current limiter statistics.

        Returns:
            Dictionary with current stats
        """
        with self._cond:
            now = self._clock()
            elapsed = now - self._window_start
            expired = elapsed >= self.window
            used = 0 if expired else self._count
            return {
                "window_seconds": self.window,
                "max_per_window": self.max_per_window,
                "count_in_window": used,
                "remaining": self.max_per_window - used,
                "resets_in": 0.0 if expired else round(self.window - elapsed, 3),
                "waiting": self._waiting,
                "total_admitted": self._admitted_total,
                "total_denied": self._denied_total,
                "total_cancelled": self._cancelled_total,
                "total_released": self._released_total,
            }

    def reset_stats(self) -> None:
        """Reset statistics counters (useful for testing)."""
        with self._cond:
            self._admitted_total = 0
            self._denied_total = 0
            self._cancelled_total = 0
            self._released_total = 0
