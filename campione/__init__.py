"""Campione: deterministic, rate-limited trace sampling."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional, Sequence

from campione.config import CampioneConfig, SamplingConfig, load_config
from campione.constants import (
    AUTO_KEEP,
    AUTO_REJECT,
    USER_KEEP,
    USER_REJECT,
)
from campione.errors import CampioneError, ConfigError, RateTableError, ValidationError
from campione.processors import (
    AllSampler,
    LoggingSpanProcessor,
    PrioritySampler,
    RateLimiter,
    RateSampler,
    RulesSampler,
    SamplingRule,
    SamplingSpanProcessor,
    TraceSampler,
    operation_rule,
    rate_rule,
    sampled_by_rate,
    service_operation_rule,
    service_rule,
)
from campione.tracer import Span, SpanProcessor
from campione.tracer.otel_sampler import CampioneSampler

__version__ = "0.3.0"

logger = logging.getLogger(__name__)


def init(
    config_file: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
    rules: Optional[Sequence[SamplingRule]] = None,
    clock: Optional[Callable[[], float]] = None,
) -> TraceSampler:
    """
    Load configuration and build a ready-to-use trace sampler.

    Args:
        config_file: Path to a TOML config file (searched for when not given)
        overrides: Explicit settings, highest priority
        rules: Programmatic sampling rules, replaced by configured rules if any
        clock: Time source in seconds, defaults to ``time.time``

    Returns:
        TraceSampler combining rules, rate limiting and priority sampling
    """
    config = load_config(config_file=config_file, overrides=overrides)
    if config.logging.debug:
        logging.getLogger("campione").setLevel(logging.DEBUG)

    trace_sampler = TraceSampler.from_config(config, rules=rules, clock=clock)
    logger.debug(f"initialized {trace_sampler!r}")
    return trace_sampler


__all__ = [
    "__version__",
    "init",
    "AUTO_KEEP",
    "AUTO_REJECT",
    "USER_KEEP",
    "USER_REJECT",
    "CampioneConfig",
    "SamplingConfig",
    "load_config",
    "CampioneError",
    "ConfigError",
    "RateTableError",
    "ValidationError",
    "Span",
    "SpanProcessor",
    "sampled_by_rate",
    "RateSampler",
    "AllSampler",
    "PrioritySampler",
    "RateLimiter",
    "RulesSampler",
    "SamplingRule",
    "service_rule",
    "operation_rule",
    "service_operation_rule",
    "rate_rule",
    "TraceSampler",
    "SamplingSpanProcessor",
    "LoggingSpanProcessor",
    "CampioneSampler",
]
