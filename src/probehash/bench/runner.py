"""Collision benchmark runner for probehash tables."""

from __future__ import annotations

import logging
import math
import random
import time
from dataclasses import dataclass, field
from typing import Any

from probehash.config import AppConfig
from probehash.contracts.error import TableFullError
from probehash.core.hashing import describe_strategy

logger = logging.getLogger(__name__)


@dataclass
class BenchSpec:
    runs: int
    inserts: int
    key_space: int
    seed: int | None = None

    @classmethod
    def from_config(
        cls,
        cfg: AppConfig,
        *,
        runs: int | None = None,
        inserts: int | None = None,
        seed: int | None = None,
    ) -> BenchSpec:
        bench = cfg.bench
        return cls(
            runs=runs if runs is not None else bench.runs,
            inserts=inserts if inserts is not None else bench.resolved_inserts(cfg.table.size),
            key_space=bench.key_space,
            seed=seed if seed is not None else bench.seed,
        )


@dataclass
class BenchResult:
    strategy: str
    size: int
    spec: BenchSpec
    collisions: list[int] = field(default_factory=list)
    table_full: int = 0
    duration_seconds: float = 0.0

    @property
    def mean_collisions(self) -> int:
        """Average collisions per run, floored to an integer."""

        if not self.collisions:
            return 0
        return math.floor(sum(self.collisions) / len(self.collisions))

    def to_dict(self) -> dict[str, Any]:
        return {
            "strategy": self.strategy,
            "size": self.size,
            "runs": self.spec.runs,
            "inserts": self.spec.inserts,
            "key_space": self.spec.key_space,
            "seed": self.spec.seed,
            "mean_collisions": self.mean_collisions,
            "collisions": list(self.collisions),
            "table_full": self.table_full,
            "duration_seconds": self.duration_seconds,
        }


def run_benchmark(cfg: AppConfig, spec: BenchSpec) -> BenchResult:
    """Insert random keys into fresh tables and record collisions per run."""

    if spec.runs <= 0:
        raise ValueError("runs must be > 0")
    rng = random.Random(spec.seed)
    strategy = cfg.build_strategy()
    result = BenchResult(strategy=describe_strategy(strategy), size=cfg.table.size, spec=spec)
    started = time.perf_counter()
    for run in range(spec.runs):
        table = cfg.build_table()
        for _ in range(spec.inserts):
            key = rng.randrange(spec.key_space)
            value = rng.randrange(spec.key_space)
            try:
                table.insert(key, value)
            except TableFullError:
                result.table_full += 1
        result.collisions.append(table.collision_count)
        logger.debug("bench run %d: collisions=%d", run, table.collision_count)
    result.duration_seconds = time.perf_counter() - started
    logger.info(
        "Benchmark finished: runs=%d inserts=%d mean_collisions=%d table_full=%d",
        spec.runs,
        spec.inserts,
        result.mean_collisions,
        result.table_full,
    )
    return result


def format_bench_lines(result: BenchResult) -> list[str]:
    lines = [
        f"h(k, i) = {result.strategy}",
        f"Runs: {result.spec.runs} | Inserts per run: {result.spec.inserts} | Size: {result.size}",
        f"Total collisions (mean per run): {result.mean_collisions}",
    ]
    if result.table_full:
        lines.append(f"Inserts rejected (table full): {result.table_full}")
    return lines


__all__ = ["BenchResult", "BenchSpec", "format_bench_lines", "run_benchmark"]
