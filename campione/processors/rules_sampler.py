"""Rule-based sampling with a global rate limit and effective rate reporting."""

from __future__ import annotations

import logging
import math
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

from campione.config import SamplingConfig
from campione.constants import (
    AUTO_KEEP,
    AUTO_REJECT,
    SAMPLING_LIMIT_DECISION,
    SAMPLING_PRIORITY_KEY,
    SAMPLING_RULE_DECISION,
)
from campione.processors.rate_limiter import RateLimiter
from campione.processors.sampler import sampled_by_rate
from campione.processors.sampling_rule import SamplingRule, service_operation_rule
from campione.tracer.span import Span

log = logging.getLogger(__name__)


class RulesSampler:
    """
    Applies a user-defined list of rules to spans.

    Rules can match on the span's service, operation or both. They are
    checked in order and the first match gives the sampling rate. If none
    matches, the global ``sample_rate`` is used when it is set (non-zero);
    otherwise the sampler does not handle the span and the caller is expected
    to fall back to priority sampling.

    Spans kept by their rate then go through a global rate limiter
    (``rate_limit`` spans per second). Spans over the limit are rejected.
    The fraction of limited spans that got through is tracked over one-second
    windows and reported on each span as the effective rate, averaged with
    the previous window's value for smoothing.
    """

    SAMPLE_DEBUG_MESSAGE = "Rules sampling applied to %r: rate=%s priority=%s effective_rate=%s"

    def __init__(
        self,
        rules: Optional[Sequence[SamplingRule]] = None,
        config: Optional[SamplingConfig] = None,
        clock: Optional[Callable[[], float]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """
        Initialize rules sampler.

        Invalid rules and configuration values are tolerated: they are logged
        as warnings and ignored.

        Args:
            rules: Programmatic rules, replaced entirely by ``config.rules`` when set
            config: Sampling configuration (fallback rate, rate limit, rule override)
            clock: Returns the current time in seconds, defaults to ``time.time``
            logger: Receives warnings about ignored rules
        """
        config = config or SamplingConfig()
        self._logger = logger or log
        self._clock = clock or time.time

        self.rules: List[SamplingRule] = applied_sampling_rules(
            rules or [], config.rules, self._logger
        )
        self.sample_rate = config.sample_rate
        # An unset fallback rate sizes the burst as if every matched span were kept
        self.limiter = RateLimiter.sized(config.rate_limit, self.sample_rate or 1.0)

        # "effective rate" calculations
        self._lock = threading.Lock()  # guards below fields
        self._window_start = math.floor(self._clock())
        self._allowed = 0
        self._total = 0
        self._previous_rate = 0.0
        self._effective_rate = 0.0

    @property
    def effective_rate(self) -> float:
        """Last effective rate reported on a span."""
        return self._effective_rate

    def apply(self, span: Span) -> bool:
        """
        Make the sampling decision for ``span`` using the rules.

        Returns:
            True if the span was handled (priority tagged), False if no rule
            matched and no global rate is set; the span is then left untouched.
        """
        rate = self.sample_rate
        matched = False
        for rule in self.rules:
            if rule.match(span):
                matched = True
                rate = rule.rate
                break
        if not matched and rate == 0.0:
            return False

        span.set_attribute(SAMPLING_RULE_DECISION, rate)
        if not sampled_by_rate(span.trace_id, rate):
            span.set_attribute(SAMPLING_PRIORITY_KEY, AUTO_REJECT)
            return True

        with self._lock:
            now = self._clock()
            self._roll_window(now)

            self._total += 1
            if self.limiter.try_admit(now):
                self._allowed += 1
                priority = AUTO_KEEP
            else:
                priority = AUTO_REJECT

            effective_rate = (self._previous_rate + self._allowed / self._total) / 2.0
            self._effective_rate = effective_rate

        span.set_attribute(SAMPLING_PRIORITY_KEY, priority)
        span.set_attribute(SAMPLING_LIMIT_DECISION, effective_rate)
        self._logger.debug(self.SAMPLE_DEBUG_MESSAGE, span, rate, priority, effective_rate)
        return True

    def _roll_window(self, now: float) -> None:
        """Start a new counting window once a whole second has passed. Caller holds the lock."""
        elapsed = int(now - self._window_start)
        if elapsed < 1:
            return
        # Only a window that ended exactly one second ago carries over;
        # after a longer gap the previous rate restarts at zero.
        if elapsed == 1 and self._total > 0:
            self._previous_rate = self._allowed / self._total
        else:
            self._previous_rate = 0.0
        self._window_start = math.floor(now)
        self._allowed = 0
        self._total = 0

    def __repr__(self) -> str:
        return (
            f"RulesSampler(rules={self.rules!r}, sample_rate={self.sample_rate}, "
            f"limiter={self.limiter!r})"
        )


def applied_sampling_rules(
    rules: Sequence[SamplingRule],
    overrides: Optional[List[Dict[str, Any]]] = None,
    logger: logging.Logger = log,
) -> List[SamplingRule]:
    """
    Validate the rules and return the ones to apply.

    Args:
        rules: Programmatic rules
        overrides: Rule entries ``{"service", "operation", "rate"}`` from the
            configuration. When given they replace ``rules`` entirely.
        logger: Receives a warning for every rule dropped

    Returns:
        Rules with a rate in [0, 1], in their original order
    """
    if overrides is not None:
        rules = []
        for entry in overrides:
            raw_rate = entry.get("rate")
            if raw_rate is None or raw_rate == "":
                logger.warning(f"error parsing rule {entry}: rate not provided")
                continue
            if isinstance(raw_rate, bool):
                logger.warning(f"error parsing rule {entry}: invalid rate: {raw_rate!r}")
                continue
            try:
                rate = float(raw_rate)
            except (TypeError, ValueError) as e:
                logger.warning(f"error parsing rule {entry}: invalid rate: {e}")
                continue
            service = entry.get("service")
            operation = entry.get("operation")
            if not service and not operation:
                logger.warning(f"error parsing rule {entry}: neither service nor operation provided")
                continue
            rules.append(
                service_operation_rule(
                    str(service) if service is not None else None,
                    str(operation) if operation is not None else None,
                    rate,
                )
            )

    valid_rules = []
    for rule in rules:
        if not 0.0 <= rule.rate <= 1.0:
            logger.warning(f"ignoring rule {rule}: rate is out of range")
            continue
        valid_rules.append(rule)
    return valid_rules
