"""Span processor interface."""

from __future__ import annotations

from typing import Optional

from opentelemetry.context import Context
from opentelemetry.sdk.trace import SpanProcessor as OTelSpanProcessor


class SpanProcessor(OTelSpanProcessor):
    """
    Base span processor interface.

    Processors are chained: each one receives the span and decides whether
    to hand it to the next processor. Subclasses can be registered directly
    with ``TracerProvider.add_span_processor``.
    """

    def on_start(self, span, parent_context: Optional[Context] = None) -> None:
        """
        Called when a span starts.

        Note: OpenTelemetry spans are still recording here, so attributes set
        now reach the exported span.
        """
        pass

    def on_end(self, span) -> None:
        """
        Called when a span ends.

        Note: OpenTelemetry spans are read-only by now; only span views
        (``campione.tracer.span.Span``) can still be tagged.

        Args:
            span: Span view or OpenTelemetry span
        """
        pass

    def shutdown(self) -> None:
        """Shutdown the processor."""
        pass

    def force_flush(self, timeout_millis: Optional[int] = None) -> bool:
        """Force flush any pending spans."""
        return True
