"""Probe tracing and rendering helpers."""

from .probe import (
    ProbeTracer,
    format_slot_grid,
    format_trace_lines,
    trace_delete,
    trace_get,
    trace_insert,
    trace_operation,
    validate_trace,
)

__all__ = [
    "ProbeTracer",
    "format_slot_grid",
    "format_trace_lines",
    "trace_delete",
    "trace_get",
    "trace_insert",
    "trace_operation",
    "validate_trace",
]
