"""Tests for the fixed-window rate limiter."""

import threading
import time

import pytest

from docgate.app.exceptions import AdmissionDenied, CancellationError
from docgate.app.services.rate_limiter import (
    AcquireStatus,
    CancelToken,
    RateLimiter,
    TimeUnit,
)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestConfiguration:
    """Test limiter construction."""

    def test_time_unit_window(self):
        limiter = RateLimiter(TimeUnit.MINUTE, max_per_window=5)
        assert limiter.window == 60.0
        assert limiter.max_per_window == 5

    @pytest.mark.parametrize(
        ("unit", "seconds"),
        [
            (TimeUnit.SECOND, 1.0),
            (TimeUnit.MINUTE, 60.0),
            (TimeUnit.HOUR, 3600.0),
            (TimeUnit.DAY, 86400.0),
        ],
    )
    def test_time_unit_seconds(self, unit, seconds):
        assert unit.seconds == seconds

    @pytest.mark.parametrize(("window", "quota"), [(0, 1), (-1.0, 1), (1.0, 0)])
    def test_invalid_configuration(self, window, quota):
        with pytest.raises(ValueError):
            RateLimiter(window, max_per_window=quota)

    def test_negative_timeout_rejected(self):
        limiter = RateLimiter(1.0, max_per_window=1)
        with pytest.raises(ValueError):
            limiter.acquire(timeout=-1)

    def test_status_truthiness(self):
        assert AcquireStatus.ADMITTED
        assert not AcquireStatus.DENIED
        assert not AcquireStatus.CANCELLED


class TestFixedWindow:
    """Test quota accounting within and across windows."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def limiter(self, clock):
        return RateLimiter(10.0, max_per_window=3, clock=clock)

    def test_admits_up_to_quota(self, limiter):
        for _ in range(3):
            assert limiter.acquire(blocking=False) is AcquireStatus.ADMITTED
        assert limiter.acquire(blocking=False) is AcquireStatus.DENIED
        assert limiter.count_in_window == 3

    def test_try_acquire(self, limiter):
        assert [limiter.try_acquire() for _ in range(4)] == [True, True, True, False]

    def test_window_rolls_over_lazily(self, limiter, clock):
        for _ in range(3):
            limiter.try_acquire()
        clock.advance(9.99)
        assert limiter.try_acquire() is False

        clock.advance(0.01)
        assert limiter.try_acquire() is True
        assert limiter.count_in_window == 1
        assert limiter.window_start == clock.now

    def test_new_window_starts_at_first_access(self, limiter, clock):
        limiter.try_acquire()
        clock.advance(25.0)
        limiter.try_acquire()
        clock.advance(9.0)
        # Window restarted at t+25, not aligned to multiples of 10
        assert [limiter.try_acquire() for _ in range(3)] == [True, True, False]

    def test_retry_after(self, limiter, clock):
        assert limiter.retry_after() == 0.0
        for _ in range(3):
            limiter.try_acquire()
        clock.advance(4.0)
        assert limiter.retry_after() == pytest.approx(6.0)
        clock.advance(6.0)
        assert limiter.retry_after() == 0.0

    def test_release_does_not_return_capacity(self, limiter):
        for _ in range(3):
            limiter.try_acquire()
        limiter.release()
        assert limiter.try_acquire() is False

    def test_unmatched_release_leaves_state_intact(self, limiter, clock):
        start = limiter.window_start
        limiter.release()
        limiter.release()

        assert limiter.count_in_window == 0
        assert limiter.window_start == start
        stats = limiter.get_stats()
        assert stats["remaining"] == 3
        assert stats["total_released"] == 2
        assert [limiter.try_acquire() for _ in range(4)] == [True, True, True, False]

    def test_stats(self, limiter, clock):
        limiter.try_acquire()
        limiter.try_acquire()
        limiter.try_acquire()
        limiter.try_acquire()
        limiter.release()

        stats = limiter.get_stats()
        assert stats["window_seconds"] == 10.0
        assert stats["max_per_window"] == 3
        assert stats["count_in_window"] == 3
        assert stats["remaining"] == 0
        assert stats["waiting"] == 0
        assert stats["total_admitted"] == 3
        assert stats["total_denied"] == 1
        assert stats["total_released"] == 1

        clock.advance(10.0)
        stats = limiter.get_stats()
        assert stats["count_in_window"] == 0
        assert stats["resets_in"] == 0.0

    def test_reset_stats(self, limiter):
        limiter.try_acquire()
        limiter.release()
        limiter.reset_stats()

        stats = limiter.get_stats()
        assert stats["total_admitted"] == 0
        assert stats["total_released"] == 0
        # Window accounting is not touched
        assert stats["count_in_window"] == 1


class TestBlocking:
    """Test waiting for capacity with a real clock."""

    def test_rollover_after_window(self):
        limiter = RateLimiter(0.1, max_per_window=1)
        assert limiter.acquire() is AcquireStatus.ADMITTED
        time.sleep(0.15)
        assert limiter.acquire(blocking=False) is AcquireStatus.ADMITTED

    def test_blocking_acquire_waits_for_rollover(self):
        limiter = RateLimiter(0.2, max_per_window=1)
        limiter.acquire()
        window_end = limiter.window_start + 0.2

        assert limiter.acquire() is AcquireStatus.ADMITTED
        assert time.monotonic() >= window_end

    def test_timeout_denies_without_increment(self):
        limiter = RateLimiter(60.0, max_per_window=1)
        limiter.acquire()

        started = time.monotonic()
        assert limiter.acquire(timeout=0.05) is AcquireStatus.DENIED
        assert time.monotonic() - started >= 0.05
        assert limiter.count_in_window == 1
        assert limiter.get_stats()["total_denied"] == 1

    def test_zero_timeout_does_not_wait(self):
        limiter = RateLimiter(60.0, max_per_window=1)
        limiter.acquire()
        assert limiter.acquire(timeout=0) is AcquireStatus.DENIED

    def test_release_wakes_waiters_to_recheck(self):
        clock = FakeClock()
        limiter = RateLimiter(60.0, max_per_window=1, clock=clock)
        limiter.acquire()
        results = []

        waiter = threading.Thread(target=lambda: results.append(limiter.acquire()))
        waiter.start()
        _wait_until(lambda: limiter.get_stats()["waiting"] == 1)

        # The waiter would sleep a full minute unless woken
        clock.advance(60.0)
        limiter.release()
        waiter.join(timeout=2.0)

        assert not waiter.is_alive()
        assert results == [AcquireStatus.ADMITTED]


class TestCancellation:
    """Test cancelling a blocked acquire()."""

    def test_cancel_blocked_acquire(self):
        limiter = RateLimiter(60.0, max_per_window=1)
        limiter.acquire()
        token = CancelToken()
        results = []

        waiter = threading.Thread(
            target=lambda: results.append(limiter.acquire(cancel=token))
        )
        waiter.start()
        _wait_until(lambda: limiter.get_stats()["waiting"] == 1)

        token.cancel()
        waiter.join(timeout=2.0)

        assert not waiter.is_alive()
        assert results == [AcquireStatus.CANCELLED]
        assert token.cancelled
        assert limiter.count_in_window == 1
        stats = limiter.get_stats()
        assert stats["total_cancelled"] == 1
        assert stats["waiting"] == 0

    def test_cancelled_token_grants_nothing(self):
        limiter = RateLimiter(60.0, max_per_window=5)
        token = CancelToken()
        token.cancel()

        assert limiter.acquire(cancel=token) is AcquireStatus.CANCELLED
        assert limiter.count_in_window == 0

    def test_cancel_only_affects_its_own_waiter(self):
        clock = FakeClock()
        limiter = RateLimiter(60.0, max_per_window=1, clock=clock)
        limiter.acquire()
        token = CancelToken()
        results = {}

        cancelled = threading.Thread(
            target=lambda: results.__setitem__("cancelled", limiter.acquire(cancel=token))
        )
        other = threading.Thread(
            target=lambda: results.__setitem__("other", limiter.acquire(timeout=5.0))
        )
        cancelled.start()
        other.start()
        _wait_until(lambda: limiter.get_stats()["waiting"] == 2)

        token.cancel()
        cancelled.join(timeout=2.0)
        assert results["cancelled"] is AcquireStatus.CANCELLED
        assert other.is_alive()

        clock.advance(60.0)
        limiter.release()
        other.join(timeout=2.0)
        assert results["other"] is AcquireStatus.ADMITTED


class TestConcurrency:
    """Test that no interleaving oversubscribes a window."""

    @pytest.mark.parametrize(("threads", "attempts", "quota"), [(20, 10, 7), (8, 50, 1), (4, 5, 30)])
    def test_non_blocking_never_exceeds_quota(self, threads, attempts, quota):
        limiter = RateLimiter(60.0, max_per_window=quota)
        barrier = threading.Barrier(threads)
        admitted = []
        lock = threading.Lock()

        def worker():
            barrier.wait()
            for _ in range(attempts):
                if limiter.try_acquire():
                    with lock:
                        admitted.append(1)

        workers = [threading.Thread(target=worker) for _ in range(threads)]
        for w in workers:
            w.start()
        for w in workers:
            w.join()

        assert len(admitted) == min(quota, threads * attempts)
        assert limiter.count_in_window <= quota

    def test_blocking_waiters_never_exceed_quota(self):
        limiter = RateLimiter(60.0, max_per_window=3)
        barrier = threading.Barrier(12)
        results = []
        lock = threading.Lock()

        def worker():
            barrier.wait()
            status = limiter.acquire(timeout=0.1)
            with lock:
                results.append(status)

        workers = [threading.Thread(target=worker) for _ in range(12)]
        for w in workers:
            w.start()
        for w in workers:
            w.join()

        assert results.count(AcquireStatus.ADMITTED) == 3
        assert results.count(AcquireStatus.DENIED) == 9
        assert limiter.count_in_window == 3

    def test_admissions_per_window_across_rollovers(self):
        window = 0.2
        limiter = RateLimiter(window, max_per_window=2)
        admitted_at = []
        lock = threading.Lock()

        def worker():
            limiter.acquire()
            with lock:
                admitted_at.append(time.monotonic())

        start = limiter.window_start
        workers = [threading.Thread(target=worker) for _ in range(6)]
        for w in workers:
            w.start()
        for w in workers:
            w.join(timeout=5.0)

        admitted_at.sort()
        assert len(admitted_at) == 6
        assert admitted_at[1] - start < window
        assert admitted_at[2] - start >= window
        assert admitted_at[4] - start >= 2 * window


class TestAdmissionContext:
    """Test the admission() context manager."""

    def test_releases_on_success(self):
        limiter = RateLimiter(60.0, max_per_window=2)
        with limiter.admission():
            assert limiter.count_in_window == 1
        assert limiter.get_stats()["total_released"] == 1

    def test_releases_on_error(self):
        limiter = RateLimiter(60.0, max_per_window=2)
        with pytest.raises(RuntimeError):
            with limiter.admission():
                raise RuntimeError("boom")
        assert limiter.get_stats()["total_released"] == 1

    def test_denied_raises(self):
        limiter = RateLimiter(60.0, max_per_window=1)
        limiter.acquire()
        with pytest.raises(AdmissionDenied) as exc_info:
            with limiter.admission(timeout=0):
                pytest.fail("should not be admitted")
        assert exc_info.value.retry_after > 0
        assert limiter.get_stats()["total_released"] == 0

    def test_cancelled_raises(self):
        limiter = RateLimiter(60.0, max_per_window=1)
        token = CancelToken()
        token.cancel()
        with pytest.raises(CancellationError):
            with limiter.admission(cancel=token):
                pytest.fail("should not be admitted")
        assert limiter.count_in_window == 0


def _wait_until(predicate, timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached")
        time.sleep(0.005)
