"""CLI command registration and handlers for probehash."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from probehash.analysis import format_slot_grid, format_trace_lines, trace_operation, validate_trace
from probehash.bench import BenchSpec, format_bench_lines, run_benchmark
from probehash.config import AppConfig
from probehash.contracts.error import BadInputError, Exit, IOErrorEnvelope, TableFullError
from probehash.core import OpenAddressingTable, ProbeEvent, ProbePhase, describe_strategy


@dataclass(frozen=True)
class CLIContext:
    """Runtime hooks supplied by the top-level CLI entrypoint."""

    emit_success: Callable[..., None]
    config: Callable[[], AppConfig]
    logger: logging.Logger
    json_enabled: Callable[[], bool]
    guard: Callable[[Callable[[argparse.Namespace], int]], Callable[[argparse.Namespace], int]]


def register_subcommands(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
    ctx: CLIContext,
) -> Dict[str, Callable[[argparse.Namespace], int]]:
    """Define CLI subcommands and return their handlers."""

    handlers: Dict[str, Callable[[argparse.Namespace], int]] = {}

    def _register(
        name: str,
        help_text: Optional[str],
        configure: Callable[[argparse.ArgumentParser], Callable[[argparse.Namespace], int]],
    ) -> None:
        parser = subparsers.add_parser(name, help=help_text)
        handler = configure(parser)
        handlers[name] = ctx.guard(handler)

    _register(
        "describe",
        "Print the configured probe function.",
        lambda parser: _configure_describe(parser, ctx),
    )
    _register(
        "probe-visualize",
        "Trace the probe path of one insert/get/delete (text/JSON).",
        lambda parser: _configure_probe_visualize(parser, ctx),
    )
    _register(
        "bench",
        "Insert random keys into fresh tables and report mean collisions.",
        lambda parser: _configure_bench(parser, ctx),
    )
    _register(
        "simulate",
        "Insert random keys one probe at a time, printing every step.",
        lambda parser: _configure_simulate(parser, ctx),
    )
    return handlers


def _configure_describe(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:

    def handler(args: argparse.Namespace) -> int:
        cfg = ctx.config()
        strategy = cfg.build_strategy()
        formula = strategy.describe()
        data = {
            "size": cfg.table.size,
            "strategy": cfg.table.strategy,
            "formula": formula,
            "scan_past_tombstones": cfg.table.scan_past_tombstones,
        }
        ctx.emit_success("describe", text=f"h(k, i) = {formula}", data=data)
        return int(Exit.OK)

    return handler


def _parse_key(raw: str) -> int:
    try:
        return int(raw)
    except ValueError as exc:
        raise BadInputError(f"Key must be an integer, got {raw!r}") from exc


def _parse_seed(entry: str) -> Tuple[int, str]:
    if "=" not in entry:
        raise BadInputError(f"Seed entry '{entry}' must be KEY=VALUE")
    key, value = entry.split("=", 1)
    return _parse_key(key.strip()), value


def _seed_table(table: OpenAddressingTable, seeds: List[str]) -> None:
    for entry in seeds:
        key, value = _parse_seed(entry)
        table.insert(key, value)


def _configure_probe_visualize(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    parser.add_argument(
        "--operation",
        choices=["insert", "get", "delete"],
        required=True,
        help="Operation to trace",
    )
    parser.add_argument("--key", required=True, help="Integer key to probe")
    parser.add_argument("--value", help="Value for INSERT operations")
    parser.add_argument(
        "--seed",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Seed the table with entries before tracing (repeatable)",
    )
    parser.add_argument(
        "--delete-seed",
        action="append",
        default=[],
        metavar="KEY",
        help="Delete a key after seeding to leave a tombstone (repeatable)",
    )
    parser.add_argument(
        "--export-json",
        help="Write the trace payload to a JSON file (indent=2)",
    )

    def handler(args: argparse.Namespace) -> int:
        if args.operation == "insert" and args.value is None:
            raise BadInputError("INSERT operation requires --value")
        key = _parse_key(args.key)

        table = ctx.config().build_table()
        _seed_table(table, args.seed)
        for raw in args.delete_seed:
            table.delete(_parse_key(raw))

        trace = trace_operation(table, args.operation, key, args.value)
        validate_trace(trace)

        export_path: Optional[Path] = None
        if args.export_json:
            export_path = Path(args.export_json).expanduser().resolve()
            try:
                export_path.parent.mkdir(parents=True, exist_ok=True)
                export_path.write_text(json.dumps(trace, indent=2), encoding="utf-8")
            except OSError as exc:
                raise IOErrorEnvelope(f"Could not write trace to {export_path}: {exc}") from exc

        lines = format_trace_lines(trace, seeds=args.seed, export_path=export_path)
        lines.extend(format_slot_grid(table.slots(), highlight=table.last_probe[1]))

        payload: Dict[str, Any] = {"trace": trace, "collision_count": table.collision_count}
        if args.seed:
            payload["seed_entries"] = list(args.seed)
        if export_path is not None:
            payload["export_json"] = str(export_path)

        ctx.emit_success("probe-visualize", text="\n".join(lines), data=payload)
        return int(Exit.OK)

    return handler


def _configure_bench(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    parser.add_argument("--runs", type=int, default=None, help="Number of fresh tables to fill")
    parser.add_argument("--inserts", type=int, default=None, help="Random inserts per run")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible runs")

    def handler(args: argparse.Namespace) -> int:
        cfg = ctx.config()
        if args.runs is not None and args.runs <= 0:
            raise BadInputError("--runs must be > 0")
        if args.inserts is not None and not 1 <= args.inserts <= cfg.table.size:
            raise BadInputError(f"--inserts must be within [1, {cfg.table.size}]")
        spec = BenchSpec.from_config(cfg, runs=args.runs, inserts=args.inserts, seed=args.seed)
        result = run_benchmark(cfg, spec)
        ctx.emit_success("bench", text="\n".join(format_bench_lines(result)), data=result.to_dict())
        return int(Exit.OK)

    return handler


def _format_event(event: ProbeEvent) -> str:
    if event.phase is ProbePhase.WRITE:
        return f"  {event.key}->{event.slot} write ({event.state.value})"
    return f"  {event.key}->{event.slot} attempt={event.attempt} {event.state.value}"


def _configure_simulate(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    parser.add_argument("--inserts", type=int, default=None, help="Random inserts to perform")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument(
        "--delay-ms",
        type=float,
        default=10.0,
        help="Pause after every probe (default: %(default)s)",
    )

    def handler(args: argparse.Namespace) -> int:
        cfg = ctx.config()
        if args.delay_ms < 0:
            raise BadInputError("--delay-ms must be >= 0")
        inserts = args.inserts if args.inserts is not None else cfg.bench.resolved_inserts(
            cfg.table.size
        )
        if inserts <= 0:
            raise BadInputError("--inserts must be > 0")
        rng = random.Random(args.seed if args.seed is not None else cfg.bench.seed)
        table = cfg.build_table()
        json_mode = ctx.json_enabled()
        events: List[Dict[str, Any]] = []
        delay = args.delay_ms / 1000.0

        async def on_probe(event: ProbeEvent) -> None:
            if json_mode:
                events.append(
                    {
                        "key": event.key,
                        "attempt": event.attempt,
                        "slot": event.slot,
                        "state": event.state.value,
                        "phase": event.phase.value,
                    }
                )
            else:
                print(_format_event(event), flush=True)
            await asyncio.sleep(delay)

        async def run() -> int:
            rejected = 0
            for _ in range(inserts):
                key = rng.randrange(cfg.bench.key_space)
                value = rng.randrange(cfg.bench.key_space)
                if not json_mode:
                    print(f"insert {key}={value}", flush=True)
                try:
                    await table.ainsert(key, value, on_probe)
                except TableFullError as exc:
                    rejected += 1
                    ctx.logger.warning("%s", exc)
            return rejected

        rejected = asyncio.run(run())
        lines = [
            f"h(k, i) = {describe_strategy(table.strategy)}",
            f"Total collisions: {table.collision_count} | Occupied: {len(table)}/{table.size}",
        ]
        lines.extend(format_slot_grid(table.slots(), highlight=table.last_probe[1]))
        data = {
            "inserts": inserts,
            "rejected": rejected,
            "collision_count": table.collision_count,
            "last_probe": list(table.last_probe),
            "events": events,
        }
        ctx.emit_success("simulate", text="\n".join(lines), data=data)
        return int(Exit.OK)

    return handler


__all__ = ["CLIContext", "register_subcommands"]
