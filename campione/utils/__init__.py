"""Utility functions for Campione."""

from campione.utils.helpers import (
    MAX_UINT_64BITS,
    format_trace_id,
    trace_id_64bits,
)

__all__ = [
    "MAX_UINT_64BITS",
    "format_trace_id",
    "trace_id_64bits",
]
