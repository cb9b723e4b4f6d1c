"""Span processor that logs sampling decisions."""

from __future__ import annotations

import logging
from typing import Optional

from campione.constants import (
    SAMPLING_AGENT_DECISION,
    SAMPLING_LIMIT_DECISION,
    SAMPLING_PRIORITY_KEY,
    SAMPLING_RULE_DECISION,
)
from campione.tracer.processor import SpanProcessor
from campione.tracer.span import Span
from campione.utils.helpers import format_trace_id


class LoggingSpanProcessor(SpanProcessor):
    """Logs the sampling outcome of each span using the standard logging module."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or logging.getLogger("campione.decisions")

    def on_end(self, span) -> None:
        if not isinstance(span, Span):
            span = Span.from_otel(span)
        msg = (
            f"[sampling] name={span.name} service={span.service} "
            f"trace_id={format_trace_id(span.trace_id)} "
            f"priority={span.get_attribute(SAMPLING_PRIORITY_KEY)} "
            f"rule_rate={span.get_attribute(SAMPLING_RULE_DECISION)} "
            f"agent_rate={span.get_attribute(SAMPLING_AGENT_DECISION)} "
            f"effective_rate={span.get_attribute(SAMPLING_LIMIT_DECISION)}"
        )
        self.logger.info(msg)
