"""Token bucket rate limiter applied to rule-sampled spans."""

from __future__ import annotations

import logging
import math
import threading
from typing import Optional

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Token bucket admission gate bounding admitted spans per second.

    Features:
    - Refills continuously at ``rate_limit`` tokens per second, capped at ``burst``
    - Never blocks: a request either gets its tokens now or is denied
    - Time is passed in by the caller so one clock read can drive several decisions
    - Thread-safe implementation
    """

    def __init__(self, rate_limit: Optional[float] = None, burst: int = 0) -> None:
        """
        Initialize rate limiter.

        Args:
            rate_limit: Tokens added per second (None = unlimited)
            burst: Bucket capacity, the bucket starts full
        """
        self.rate_limit = rate_limit
        self.burst = burst
        self.enabled = rate_limit is not None

        # Token bucket state
        self._tokens: float = float(burst)
        self._last_refill_time: Optional[float] = None
        self._lock = threading.Lock()

        # Stats
        self._total_spans = 0
        self._dropped_spans = 0

    @classmethod
    def sized(cls, rate_limit: Optional[float], sample_rate: float) -> "RateLimiter":
        """
        Build a limiter whose burst is scaled by the sampling rate.

        ``burst = ceil(sample_rate * rate_limit)``: a low sampling rate already
        thins out arrivals, so it gets a proportionally smaller burst.
        """
        if rate_limit is None:
            return cls()
        return cls(rate_limit, int(math.ceil(sample_rate * rate_limit)))

    def try_admit(self, now: float, n: int = 1) -> bool:
        """
        Try to take ``n`` tokens at instant ``now``.

        Args:
            now: Current time in seconds
            n: Number of tokens requested

        Returns:
            True if admitted, False if denied
        """
        if not self.enabled:
            return True

        with self._lock:
            self._total_spans += 1
            self._refill_tokens(now)

            if self._tokens >= n:
                self._tokens -= n
                return True

            self._dropped_spans += 1
            logger.debug(
                "Rate limit exceeded - denied %d token(s). Total dropped: %d/%d",
                n,
                self._dropped_spans,
                self._total_spans,
            )
            return False

    def _refill_tokens(self, now: float) -> None:
        """Refill tokens based on elapsed time (token bucket algorithm)."""
        if self._last_refill_time is None or now < self._last_refill_time:
            # first use, or the clock moved backwards: nothing to add
            self._last_refill_time = now
            return

        elapsed = now - self._last_refill_time
        if elapsed > 0:
            new_tokens = elapsed * self.rate_limit
            self._tokens = min(float(self.burst), self._tokens + new_tokens)
            self._last_refill_time = now

    def get_stats(self) -> dict:
        """Get rate limiting statistics."""
        with self._lock:
            drop_rate = (self._dropped_spans / self._total_spans * 100) if self._total_spans > 0 else 0
            return {
                "enabled": self.enabled,
                "rate_limit": self.rate_limit,
                "burst": self.burst,
                "total_spans": self._total_spans,
                "dropped_spans": self._dropped_spans,
                "drop_rate_percent": round(drop_rate, 2),
                "current_tokens": round(self._tokens, 2),
            }

    def reset_stats(self) -> None:
        """Reset statistics counters."""
        with self._lock:
            self._total_spans = 0
            self._dropped_spans = 0

    def __repr__(self) -> str:
        if not self.enabled:
            return "RateLimiter(rate_limit=inf)"
        return f"RateLimiter(rate_limit={self.rate_limit}, burst={self.burst})"
