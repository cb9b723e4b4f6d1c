"""Span processor applying the sampling decision before the next processor."""

from __future__ import annotations

import logging
import threading
from typing import Dict, Optional, Tuple

from campione.processors.trace_sampler import TraceSampler
from campione.tracer.processor import SpanProcessor
from campione.tracer.span import Span

logger = logging.getLogger(__name__)


class SamplingSpanProcessor(SpanProcessor):
    """
    Span processor that samples spans before passing them to the next processor.

    This should be added early in the processor chain so rejected spans
    don't consume resources in downstream processors.

    OpenTelemetry spans are sampled in ``on_start``, while they are still
    recording, so the sampling tags end up on the exported span. The decision
    is remembered until ``on_end`` filters the span.
    """

    def __init__(
        self,
        next_processor=None,
        trace_sampler: Optional[TraceSampler] = None,
    ):
        """
        Initialize sampling processor.

        Args:
            next_processor: Next processor in the chain
            trace_sampler: Sampler chain deciding which spans to keep
        """
        self.next_processor = next_processor
        self.trace_sampler = trace_sampler or TraceSampler()

        self._lock = threading.Lock()
        self._decisions: Dict[Tuple[int, int], bool] = {}
        self._kept_spans = 0
        self._dropped_spans = 0

    def on_start(self, span, parent_context=None):
        """Called when span starts - sample it, then pass through to next processor."""
        if not isinstance(span, Span) and span.is_recording():
            kept = self.trace_sampler.sample(Span.from_otel(span))
            with self._lock:
                self._decisions[_span_key(span)] = kept

        if self.next_processor and hasattr(self.next_processor, 'on_start'):
            self.next_processor.on_start(span, parent_context)

    def _on_ending(self, span):
        if self.next_processor and hasattr(self.next_processor, '_on_ending'):
            self.next_processor._on_ending(span)

    def on_end(self, span):
        """
        Called when span ends - pass kept spans to the next processor.

        Spans not seen in ``on_start`` are sampled here. An ended
        OpenTelemetry span can no longer be tagged, only filtered.
        """
        if isinstance(span, Span):
            kept = self.trace_sampler.sample(span)
        else:
            with self._lock:
                kept = self._decisions.pop(_span_key(span), None)
            if kept is None:
                kept = self.trace_sampler.sample(Span.from_otel(span))

        with self._lock:
            if kept:
                self._kept_spans += 1
            else:
                self._dropped_spans += 1

        if not kept:
            return

        if self.next_processor and hasattr(self.next_processor, 'on_end'):
            self.next_processor.on_end(span)

    def get_stats(self) -> dict:
        with self._lock:
            return {
                "kept_spans": self._kept_spans,
                "dropped_spans": self._dropped_spans,
            }

    def shutdown(self):
        """Shutdown processor and log final stats."""
        stats = self.get_stats()
        total = stats["kept_spans"] + stats["dropped_spans"]
        if total > 0:
            logger.info(
                f"Sampling processor shutdown. Final stats: "
                f"{stats['dropped_spans']}/{total} spans dropped "
                f"({stats['dropped_spans'] / total * 100:.1f}%)"
            )

        if self.next_processor and hasattr(self.next_processor, 'shutdown'):
            self.next_processor.shutdown()

    def force_flush(self, timeout_millis: Optional[int] = None) -> bool:
        """Force flush - pass through to next processor."""
        if self.next_processor and hasattr(self.next_processor, 'force_flush'):
            if timeout_millis is None:
                return self.next_processor.force_flush()
            return self.next_processor.force_flush(timeout_millis)
        return True


def _span_key(span) -> Tuple[int, int]:
    context = span.get_span_context()
    return context.trace_id, context.span_id
