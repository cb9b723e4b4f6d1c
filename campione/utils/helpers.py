"""Helper functions for trace identifiers."""

from __future__ import annotations

MAX_UINT_64BITS = (1 << 64) - 1


def trace_id_64bits(trace_id: int) -> int:
    """
    Reduce a trace id to its lower 64 bits.

    OpenTelemetry trace ids are 128-bit; sampling only looks at the lower
    half so 64-bit and 128-bit tracers agree on the same trace.

    Args:
        trace_id: Trace id as an int of any width

    Returns:
        Lower 64 bits of the trace id
    """
    return trace_id & MAX_UINT_64BITS


def format_trace_id(trace_id: int) -> str:
    """
    Format a trace_id to hex string.

    Args:
        trace_id: trace_id as int

    Returns:
        32-character hex string
    """
    return format(trace_id, '032x')

