"""Tests for the token bucket rate limiter."""

import threading

from campione.processors.rate_limiter import RateLimiter


class TestRateLimiterSizing:
    def test_burst_scaled_by_sample_rate(self):
        limiter = RateLimiter.sized(10.0, 0.5)
        assert limiter.enabled
        assert limiter.rate_limit == 10.0
        assert limiter.burst == 5

    def test_burst_rounds_up(self):
        assert RateLimiter.sized(10.0, 0.01).burst == 1
        assert RateLimiter.sized(3.0, 0.5).burst == 2

    def test_no_limit_is_unbounded(self):
        limiter = RateLimiter.sized(None, 0.5)
        assert not limiter.enabled
        assert all(limiter.try_admit(100.0) for _ in range(10000))


class TestTryAdmit:
    def test_burst_then_deny_in_same_instant(self):
        """Burst 5: five instant requests pass, the sixth fails."""
        limiter = RateLimiter.sized(10.0, 0.5)
        results = [limiter.try_admit(100.0) for _ in range(6)]
        assert results == [True] * 5 + [False]

    def test_refills_with_elapsed_time(self):
        limiter = RateLimiter.sized(10.0, 0.5)
        for _ in range(5):
            assert limiter.try_admit(100.0)
        assert not limiter.try_admit(100.0)

        # 0.25s at 10/s gives 2.5 tokens
        assert limiter.try_admit(100.25)
        assert limiter.try_admit(100.25)
        assert not limiter.try_admit(100.25)

    def test_refill_capped_at_burst(self):
        limiter = RateLimiter(10.0, 5)
        assert limiter.try_admit(100.0)
        results = [limiter.try_admit(1000.0) for _ in range(6)]
        assert results == [True] * 5 + [False]

    def test_multiple_tokens(self):
        limiter = RateLimiter(10.0, 5)
        assert limiter.try_admit(100.0, n=3)
        assert not limiter.try_admit(100.0, n=3)
        assert limiter.try_admit(100.0, n=2)

    def test_clock_going_backwards_adds_nothing(self):
        limiter = RateLimiter(10.0, 1)
        assert limiter.try_admit(100.0)
        assert not limiter.try_admit(99.0)
        assert not limiter.try_admit(99.0)

    def test_zero_limit_denies_everything(self):
        limiter = RateLimiter.sized(0.0, 1.0)
        assert limiter.enabled
        assert limiter.burst == 0
        assert not limiter.try_admit(100.0)
        assert not limiter.try_admit(200.0)

    def test_concurrent_admission_never_exceeds_burst(self):
        limiter = RateLimiter(1.0, 50)
        admitted = []
        lock = threading.Lock()

        def worker():
            count = sum(limiter.try_admit(100.0) for _ in range(100))
            with lock:
                admitted.append(count)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sum(admitted) == 50


class TestRateLimiterStats:
    def test_stats(self):
        limiter = RateLimiter(2.0, 2)
        results = [limiter.try_admit(100.0) for _ in range(5)]
        assert sum(results) == 2

        stats = limiter.get_stats()
        assert stats["enabled"] is True
        assert stats["total_spans"] == 5
        assert stats["dropped_spans"] == 3
        assert stats["drop_rate_percent"] == 60.0
        assert stats["current_tokens"] == 0.0

    def test_reset_stats(self):
        limiter = RateLimiter(2.0, 2)
        limiter.try_admit(100.0)
        limiter.reset_stats()

        stats = limiter.get_stats()
        assert stats["total_spans"] == 0
        assert stats["dropped_spans"] == 0
