"""OpenTelemetry SDK sampler backed by the campione sampling engine."""

from __future__ import annotations

from typing import Optional, Sequence

from opentelemetry.context import Context
from opentelemetry.sdk.trace.sampling import Decision, Sampler, SamplingResult
from opentelemetry.trace import Link, SpanKind, get_current_span
from opentelemetry.trace.span import TraceState
from opentelemetry.util.types import Attributes

from campione.constants import (
    ENV_KEY,
    SAMPLE_RATE_METRIC_KEY,
    SAMPLING_AGENT_DECISION,
    SAMPLING_LIMIT_DECISION,
    SAMPLING_PRIORITY_KEY,
    SAMPLING_RULE_DECISION,
)
from campione.processors.trace_sampler import TraceSampler
from campione.tracer.span import Span

SAMPLING_TAGS = (
    SAMPLING_PRIORITY_KEY,
    SAMPLING_AGENT_DECISION,
    SAMPLING_RULE_DECISION,
    SAMPLING_LIMIT_DECISION,
    SAMPLE_RATE_METRIC_KEY,
)


class CampioneSampler(Sampler):
    """
    Head sampler deciding at span start with a TraceSampler.

    The OpenTelemetry sampling hook does not see the resource, so the
    service and environment are given at construction. Kept spans get the
    sampling tags added to their attributes; rejected spans are dropped.

    To follow the parent's decision for child spans, wrap it::

        ParentBased(root=CampioneSampler(trace_sampler, service="web"))
    """

    def __init__(
        self,
        trace_sampler: Optional[TraceSampler] = None,
        service: str = "",
        environment: str = "",
    ) -> None:
        self.trace_sampler = trace_sampler or TraceSampler()
        self.service = service
        self.environment = environment

    def should_sample(
        self,
        parent_context: Optional[Context],
        trace_id: int,
        name: str,
        kind: Optional[SpanKind] = None,
        attributes: Attributes = None,
        links: Optional[Sequence[Link]] = None,
        trace_state: Optional[TraceState] = None,
    ) -> SamplingResult:
        span_attributes = dict(attributes or {})
        if self.environment:
            span_attributes.setdefault(ENV_KEY, self.environment)
        span = Span(trace_id, service=self.service, name=name, attributes=span_attributes)

        parent_span_context = get_current_span(parent_context).get_span_context()
        parent_trace_state = parent_span_context.trace_state if parent_span_context.is_valid else None

        if not self.trace_sampler.sample(span):
            return SamplingResult(Decision.DROP, None, parent_trace_state)

        # the SDK builds the span attributes from the result only
        result_attributes = dict(attributes or {})
        for key in SAMPLING_TAGS:
            value = span.get_attribute(key)
            if value is not None:
                result_attributes[key] = value
        return SamplingResult(Decision.RECORD_AND_SAMPLE, result_attributes, parent_trace_state)

    def get_description(self) -> str:
        return f"CampioneSampler{{service={self.service},env={self.environment}}}"
