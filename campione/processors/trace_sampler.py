"""Full sampling decision for a span: client rate, rules, then priority sampling."""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from campione.config import CampioneConfig
from campione.constants import SAMPLE_RATE_METRIC_KEY, SAMPLING_PRIORITY_KEY
from campione.processors.priority_sampler import PrioritySampler
from campione.processors.rules_sampler import RulesSampler
from campione.processors.sampler import AllSampler, RateSampler
from campione.processors.sampling_rule import SamplingRule
from campione.tracer.span import Span

log = logging.getLogger(__name__)


class TraceSampler:
    """
    Chains the samplers in the order a tracer consults them.

    1. A span that already carries a priority (decided upstream and
       propagated) keeps it.
    2. The client-side rate sampler drops spans outright.
    3. The rules sampler decides if a rule or the global rate applies.
    4. Otherwise the priority sampler decides from the remote rate table.
    """

    def __init__(
        self,
        sampler: Optional[RateSampler] = None,
        rules_sampler: Optional[RulesSampler] = None,
        priority_sampler: Optional[PrioritySampler] = None,
    ) -> None:
        self.sampler = sampler or AllSampler()
        self.rules_sampler = rules_sampler or RulesSampler()
        self.priority_sampler = priority_sampler or PrioritySampler()

    @classmethod
    def from_config(
        cls,
        config: CampioneConfig,
        rules: Optional[Sequence[SamplingRule]] = None,
        clock: Optional[Callable[[], float]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "TraceSampler":
        """Build the samplers from a loaded configuration."""
        rules_sampler = RulesSampler(
            rules=rules,
            config=config.sampling,
            clock=clock,
            logger=logger,
        )
        return cls(rules_sampler=rules_sampler)

    def sample(self, span: Span) -> bool:
        """
        Decide whether to keep ``span`` and tag it with the decision.

        Returns:
            True if the span should be kept
        """
        priority = _upstream_priority(span)
        if priority is not None:
            return priority > 0

        if not self.sampler.sample(span):
            return False
        rate = self.sampler.rate
        if rate < 1:
            span.set_attribute(SAMPLE_RATE_METRIC_KEY, rate)

        if not self.rules_sampler.apply(span):
            self.priority_sampler.apply(span)
        return span.get_attribute(SAMPLING_PRIORITY_KEY) > 0

    def __repr__(self) -> str:
        return (
            f"TraceSampler(sampler={self.sampler!r}, rules_sampler={self.rules_sampler!r}, "
            f"priority_sampler={self.priority_sampler!r})"
        )


def _upstream_priority(span: Span) -> Optional[int]:
    """Priority already on the span, ignored when it is not an integer."""
    priority = span.get_attribute(SAMPLING_PRIORITY_KEY)
    if priority is None:
        return None
    try:
        return int(priority)
    except (TypeError, ValueError):
        log.debug("ignoring unparseable upstream priority %r", priority)
        return None
