"""Samplers, rate limiting and span processors."""

from campione.processors.logging_processor import LoggingSpanProcessor
from campione.processors.priority_sampler import PrioritySampler, RateByServicePayload
from campione.processors.rate_limiter import RateLimiter
from campione.processors.rules_sampler import RulesSampler, applied_sampling_rules
from campione.processors.sampler import (
    KNUTH_FACTOR,
    AllSampler,
    BaseSampler,
    RateSampler,
    sampled_by_rate,
)
from campione.processors.sampling_processor import SamplingSpanProcessor
from campione.processors.sampling_rule import (
    Exact,
    Matcher,
    Pattern,
    SamplingRule,
    Unset,
    matcher,
    operation_rule,
    rate_rule,
    service_operation_rule,
    service_rule,
)
from campione.processors.trace_sampler import TraceSampler

__all__ = [
    "KNUTH_FACTOR",
    "sampled_by_rate",
    "BaseSampler",
    "RateSampler",
    "AllSampler",
    "PrioritySampler",
    "RateByServicePayload",
    "RateLimiter",
    "RulesSampler",
    "applied_sampling_rules",
    "Matcher",
    "Unset",
    "Exact",
    "Pattern",
    "matcher",
    "SamplingRule",
    "service_rule",
    "operation_rule",
    "service_operation_rule",
    "rate_rule",
    "TraceSampler",
    "SamplingSpanProcessor",
    "LoggingSpanProcessor",
]
