"""Span view and processor interface consumed by the samplers."""

from campione.tracer.processor import SpanProcessor
from campione.tracer.span import Span

__all__ = [
    "Span",
    "SpanProcessor",
]
