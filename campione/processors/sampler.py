"""Deterministic rate sampling.

Samplers here decide from the trace id alone, so every process that sees the
same trace at the same rate reaches the same decision without coordination.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod

from campione.tracer.span import Span
from campione.utils.helpers import MAX_UINT_64BITS

logger = logging.getLogger(__name__)

# Has to match every cooperating tracer and agent to allow chained sampling
KNUTH_FACTOR = 1111111111111111111


def sampled_by_rate(trace_id: int, rate: float) -> bool:
    """
    Decide whether the trace with the given id is sampled at ``rate``.

    The trace id is scrambled with a Knuth multiplicative hash and compared
    against ``rate`` scaled to the 64-bit range. The threshold only grows with
    the rate, so a trace kept at some rate is kept at every higher rate.

    Args:
        trace_id: Trace id, only the lower 64 bits are used
        rate: Sampling rate between 0.0 and 1.0

    Returns:
        True if the trace should be sampled
    """
    if rate >= 1:
        return True
    if not rate > 0:
        # also rejects NaN
        return False
    return ((trace_id * KNUTH_FACTOR) & MAX_UINT_64BITS) < int(rate * MAX_UINT_64BITS)


class BaseSampler(ABC):
    """Abstract base class for span samplers. Implementations must be thread-safe."""

    @abstractmethod
    def sample(self, span: Span) -> bool:
        """Return True if the given span should be sampled."""
        pass


class RateSampler(BaseSampler):
    """
    Sampler keeping (100 * rate)% of the traces.

    The rate can be changed at runtime. Writes are serialized by a lock;
    reads never block since the rate is rebound in a single assignment.
    """

    def __init__(self, rate: float = 1.0) -> None:
        self._rate = float(rate)
        self._lock = threading.Lock()
        logger.debug("initialized RateSampler, sample %s%% of traces", 100 * self._rate)

    @property
    def rate(self) -> float:
        """Current sample rate."""
        return self._rate

    def set_rate(self, rate: float) -> None:
        with self._lock:
            self._rate = float(rate)

    def sample(self, span: Span) -> bool:
        rate = self._rate
        if rate == 1:
            return True
        return sampled_by_rate(span.trace_id, rate)

    def __repr__(self) -> str:
        return f"RateSampler(rate={self._rate})"


class AllSampler(RateSampler):
    """All-permissive sampler, a RateSampler fixed at 1.0 initially."""

    def __init__(self) -> None:
        super().__init__(1.0)
