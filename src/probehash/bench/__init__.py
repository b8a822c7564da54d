"""Collision benchmarks for probe strategies."""

from .runner import BenchResult, BenchSpec, format_bench_lines, run_benchmark

__all__ = ["BenchResult", "BenchSpec", "format_bench_lines", "run_benchmark"]
