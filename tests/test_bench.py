from __future__ import annotations

from probehash.bench import BenchSpec, format_bench_lines, run_benchmark
from probehash.config import AppConfig


def _config(**table: object) -> AppConfig:
    cfg = AppConfig.from_dict({"table": {"size": 37, **table}})
    cfg.validate()
    return cfg


def test_benchmark_is_deterministic_for_a_seed() -> None:
    cfg = _config()
    spec = BenchSpec(runs=5, inserts=18, key_space=10_000, seed=7)
    first = run_benchmark(cfg, spec)
    second = run_benchmark(cfg, spec)
    assert first.collisions == second.collisions
    assert len(first.collisions) == 5
    assert first.table_full == 0


def test_mean_collisions_is_floored() -> None:
    cfg = _config()
    result = run_benchmark(cfg, BenchSpec(runs=1, inserts=1, key_space=10, seed=1))
    result.collisions = [1, 2]
    assert result.mean_collisions == 1
    result.collisions = []
    assert result.mean_collisions == 0


def test_degenerate_strategy_reports_table_full() -> None:
    cfg = AppConfig.from_dict(
        {"table": {"size": 5, "strategy": "quadratic", "c1": 0, "c2": 0}, "hash": {"modulus": 1}}
    )
    cfg.validate()
    result = run_benchmark(cfg, BenchSpec(runs=2, inserts=5, key_space=1_000_000, seed=3))
    assert result.table_full > 0
    assert all(count >= 5 for count in result.collisions)


def test_bench_spec_defaults_come_from_config() -> None:
    cfg = _config()
    spec = BenchSpec.from_config(cfg)
    assert spec.runs == 10
    assert spec.inserts == 18
    assert spec.key_space == 10_000
    assert BenchSpec.from_config(cfg, runs=2, inserts=3, seed=9) == BenchSpec(2, 3, 10_000, 9)


def test_result_serialisation_and_lines() -> None:
    cfg = _config()
    result = run_benchmark(cfg, BenchSpec(runs=2, inserts=4, key_space=100, seed=0))
    payload = result.to_dict()
    assert payload["strategy"] == "((k mod 37) + i) mod 37"
    assert payload["runs"] == 2
    assert payload["collisions"] == result.collisions
    lines = format_bench_lines(result)
    assert lines[0] == "h(k, i) = ((k mod 37) + i) mod 37"
    assert any("mean per run" in line for line in lines)
