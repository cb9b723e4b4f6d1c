"""Sampling priorities and the span tags recording sampling decisions."""

# Priority is a hint for the backend telling it which traces to keep or reject.
USER_REJECT = -1
AUTO_REJECT = 0
AUTO_KEEP = 1
USER_KEEP = 2

# Tags recording sampling decisions on spans
SAMPLING_PRIORITY_KEY = "_sampling_priority_v1"
SAMPLING_AGENT_DECISION = "_sampling.agent_psr"
SAMPLING_RULE_DECISION = "_sampling.rule_psr"
SAMPLING_LIMIT_DECISION = "_sampling.limit_psr"
SAMPLE_RATE_METRIC_KEY = "_sample_rate"

# Span tag holding the deployment environment
ENV_KEY = "env"

# Key of the default rate in the remote rate-by-service table
DEFAULT_RATE_KEY = "service:,env:"
