"""Probe-path tracing utilities for open-addressing tables."""

from __future__ import annotations

import json
from importlib import resources
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from jsonschema import Draft202012Validator

from probehash.contracts.error import InvariantError, PolicyError, TableFullError
from probehash.core.hashing import describe_strategy
from probehash.core.table import (
    NOT_FOUND,
    Entry,
    OpenAddressingTable,
    ProbeEvent,
    ProbePhase,
    Slot,
)

TRACE_SCHEMA = "probehash.trace.v1"

ProbeTrace = Dict[str, Any]


def _json_friendly(value: Any) -> Any:
    """Return a JSON-serialisable representation of ``value``."""

    try:
        json.dumps(value)
        return value
    except (TypeError, ValueError):
        return repr(value)


class ProbeTracer:
    """Observer that records every probe event as a JSON-friendly step."""

    def __init__(self) -> None:
        self.events: List[ProbeEvent] = []

    def __call__(self, event: ProbeEvent) -> None:
        self.events.append(event)

    def path(self) -> List[Dict[str, Any]]:
        steps: List[Dict[str, Any]] = []
        for event in self.events:
            step: Dict[str, Any] = {
                "step": event.attempt,
                "slot": event.slot,
                "state": event.state.value,
                "phase": event.phase.value,
            }
            if event.occupant is not None:
                step["occupant_key"] = repr(event.occupant.key)
                step["occupant_value"] = repr(event.occupant.value)
                if event.phase is ProbePhase.PROBE:
                    step["matches"] = event.occupant.key == event.key
            steps.append(step)
        return steps

    def probes(self) -> List[ProbeEvent]:
        return [event for event in self.events if event.phase is ProbePhase.PROBE]


def _base_trace(table: OpenAddressingTable, operation: str, key: Any) -> ProbeTrace:
    return {
        "schema": TRACE_SCHEMA,
        "operation": operation,
        "key_repr": repr(key),
        "strategy": describe_strategy(table.strategy),
        "size": table.size,
    }


def _insert_terminal(tracer: ProbeTracer) -> str:
    writes = [event for event in tracer.events if event.phase is ProbePhase.WRITE]
    if not writes:
        return "full"
    target = writes[-1].slot
    for event in tracer.probes():
        if event.slot == target:
            return {"empty": "insert", "tombstone": "reuse-tombstone"}.get(
                event.state.value, "update"
            )
    return "insert"  # pragma: no cover - a write is always preceded by its probe


def _lookup_terminal(tracer: ProbeTracer, found: bool) -> str:
    if found:
        return "match"
    probes = tracer.probes()
    if probes and probes[-1].state.value == "empty":
        return "empty"
    return "exhausted"


def trace_insert(table: OpenAddressingTable, key: Any, value: Any) -> ProbeTrace:
    """Insert ``key`` into ``table`` and return the recorded probe trace.

    A full table is reported through ``terminal == "full"`` rather than raised.
    """

    tracer = ProbeTracer()
    before = table.collision_count
    trace = _base_trace(table, "insert", key)
    trace["value_repr"] = repr(value)
    try:
        table.insert(key, value, on_probe=tracer)
        trace["found"] = True
    except TableFullError:
        trace["found"] = False
    trace["terminal"] = _insert_terminal(tracer)
    trace["collisions"] = table.collision_count - before
    trace["path"] = tracer.path()
    return trace


def trace_get(table: OpenAddressingTable, key: Any) -> ProbeTrace:
    tracer = ProbeTracer()
    value = table.get(key, on_probe=tracer)
    found = value is not NOT_FOUND
    trace = _base_trace(table, "get", key)
    trace["found"] = found
    trace["result"] = _json_friendly(value) if found else None
    trace["terminal"] = _lookup_terminal(tracer, found)
    trace["collisions"] = 0
    trace["path"] = tracer.path()
    return trace


def trace_delete(table: OpenAddressingTable, key: Any) -> ProbeTrace:
    tracer = ProbeTracer()
    removed = table.delete(key, on_probe=tracer)
    trace = _base_trace(table, "delete", key)
    trace["found"] = removed
    trace["result"] = removed
    trace["terminal"] = _lookup_terminal(tracer, removed)
    trace["collisions"] = 0
    trace["path"] = tracer.path()
    return trace


def trace_operation(
    table: OpenAddressingTable, operation: str, key: Any, value: Any = None
) -> ProbeTrace:
    if operation == "insert":
        return trace_insert(table, key, value)
    if operation == "get":
        return trace_get(table, key)
    if operation == "delete":
        return trace_delete(table, key)
    raise PolicyError(f"Unsupported operation: {operation!r}")


def _trace_validator() -> Draft202012Validator:
    schema_resource = resources.files("probehash.contracts") / "trace_schema.json"
    with schema_resource.open(encoding="utf-8") as stream:
        return Draft202012Validator(json.load(stream))


def trace_errors(trace: ProbeTrace) -> List[str]:
    """Return schema violations for ``trace`` (empty when valid)."""

    errors = sorted(_trace_validator().iter_errors(trace), key=lambda err: list(err.path))
    return [f"{err.message} @ {list(err.path)}" for err in errors]


def validate_trace(trace: ProbeTrace) -> None:
    problems = trace_errors(trace)
    if problems:
        raise InvariantError("Probe trace does not match schema: " + "; ".join(problems))


def format_trace_lines(
    trace: Dict[str, Any],
    *,
    seeds: Optional[Sequence[str]] = None,
    export_path: Optional[Union[str, Path]] = None,
) -> List[str]:
    """Return a human-friendly rendering of a probe trace."""

    lines: List[str] = []
    operation = trace.get("operation", "?")
    lines.append(f"Probe visualization {operation.upper()} key={trace.get('key_repr', '?')}")
    lines.append(f"h(k, i) = {trace.get('strategy', '?')}")
    lines.append(
        f"Found: {trace.get('found')} | Terminal: {trace.get('terminal')} "
        f"| Collisions: {trace.get('collisions', 0)}"
    )
    if "result" in trace and operation == "get":
        lines.append(f"Result: {trace['result']!r}")
    if seeds:
        lines.append("Seed entries: " + ", ".join(seeds))
    lines.append("Steps:")
    path = trace.get("path")
    if not isinstance(path, list) or not path:
        lines.append("  (no path recorded)")
    else:
        for item in path:
            label = "Write" if item.get("phase") == "write" else f"Step {item.get('step')}"
            attrs = [f"slot={item.get('slot')}", f"state={item.get('state')}"]
            if "occupant_key" in item:
                attrs.append(f"occupant={item['occupant_key']}:{item.get('occupant_value')}")
            if "matches" in item:
                attrs.append(f"matches={str(item['matches']).lower()}")
            lines.append(f"  {label}: " + ", ".join(attrs))
    if export_path:
        lines.append(f"Trace JSON written to: {export_path}")
    return lines


def format_slot_grid(
    slots: Sequence[Slot], *, highlight: Optional[int] = None, columns: int = 12
) -> List[str]:
    """Render a slot snapshot as fixed-width rows, marking ``highlight`` with ``*``."""

    cells: List[str] = []
    for idx, slot in enumerate(slots):
        if isinstance(slot, Entry):
            body = f"{slot.key}:{slot.value}"
        elif slot is None:
            body = "."
        else:
            body = "X"
        marker = "*" if idx == highlight else " "
        cells.append(f"{marker}{idx:>3} {body:<12}")
    columns = max(1, columns)
    return ["".join(cells[row : row + columns]).rstrip() for row in range(0, len(cells), columns)]


__all__ = [
    "ProbeTracer",
    "TRACE_SCHEMA",
    "format_slot_grid",
    "format_trace_lines",
    "trace_delete",
    "trace_errors",
    "trace_get",
    "trace_insert",
    "trace_operation",
    "validate_trace",
]
