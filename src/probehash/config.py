"""Typed configuration loader for probehash tables and benchmarks."""

from __future__ import annotations

import os
import tomllib
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .contracts.error import InvalidConfigurationError
from .core.hashing import (
    KNUTH_A,
    HashMethod,
    PrimaryHash,
    ProbeScheme,
    ProbeStrategy,
)
from .core.table import OpenAddressingTable, ProbeHook

DEFAULT_TABLE_SIZE = 37
DEFAULT_KEY_SPACE = 10_000

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _parse_bool(raw: Any, name: str) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        normalized = raw.strip().lower()
        if normalized in _TRUE:
            return True
        if normalized in _FALSE:
            return False
    raise InvalidConfigurationError(f"{name} must be boolean")


def _require_int(value: Any, name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidConfigurationError(f"{name} must be an integer, got {value!r}")


@dataclass
class HashSettings:
    method: str = HashMethod.DIVISION.value
    modulus: int | None = None
    a: float = KNUTH_A

    def validate(self, section: str) -> None:
        if not isinstance(self.method, str) or self.method not in {m.value for m in HashMethod}:
            raise InvalidConfigurationError(
                f"{section}.method must be 'division' or 'multiplication'"
            )
        if self.modulus is not None:
            _require_int(self.modulus, f"{section}.modulus")
            if self.modulus < 1:
                raise InvalidConfigurationError(f"{section}.modulus must be >= 1")
        if isinstance(self.a, bool) or not isinstance(self.a, (int, float)):
            raise InvalidConfigurationError(f"{section}.a must be a number, got {self.a!r}")
        if not 0.0 <= self.a <= 1.0:
            raise InvalidConfigurationError(f"{section}.a must be within [0, 1]")

    def build(self, table_size: int) -> PrimaryHash:
        modulus = self.modulus if self.modulus is not None else table_size
        return PrimaryHash(HashMethod(self.method), modulus, self.a)


@dataclass
class TableSettings:
    size: int = DEFAULT_TABLE_SIZE
    strategy: str = ProbeScheme.LINEAR.value
    c1: int = 10
    c2: int = 10
    scan_past_tombstones: bool = False

    def validate(self) -> None:
        for name in ("size", "c1", "c2"):
            _require_int(getattr(self, name), f"table.{name}")
        if self.size < 1:
            raise InvalidConfigurationError("table.size must be > 0")
        if not isinstance(self.strategy, str) or self.strategy not in {
            s.value for s in ProbeScheme
        }:
            raise InvalidConfigurationError(
                "table.strategy must be 'linear', 'quadratic' or 'double'"
            )
        if self.c1 < 0 or self.c2 < 0:
            raise InvalidConfigurationError("table.c1 and table.c2 must be >= 0")


@dataclass
class BenchSettings:
    runs: int = 10
    inserts: int | None = None
    key_space: int = DEFAULT_KEY_SPACE
    seed: int | None = None

    def validate(self, table_size: int) -> None:
        _require_int(self.runs, "bench.runs")
        _require_int(self.key_space, "bench.key_space")
        if self.inserts is not None:
            _require_int(self.inserts, "bench.inserts")
        if self.seed is not None:
            _require_int(self.seed, "bench.seed")
        if self.runs <= 0:
            raise InvalidConfigurationError("bench.runs must be > 0")
        if self.inserts is not None and not 1 <= self.inserts <= table_size:
            raise InvalidConfigurationError("bench.inserts must be within [1, table.size]")
        if self.key_space <= 0:
            raise InvalidConfigurationError("bench.key_space must be > 0")

    def resolved_inserts(self, table_size: int) -> int:
        return self.inserts if self.inserts is not None else max(1, table_size // 2)


@dataclass
class AppConfig:
    table: TableSettings = field(default_factory=TableSettings)
    hash: HashSettings = field(default_factory=HashSettings)
    hash2: HashSettings = field(default_factory=HashSettings)
    bench: BenchSettings = field(default_factory=BenchSettings)

    @classmethod
    def load(cls, path: Path | None) -> AppConfig:
        if path is None:
            cfg = cls()
        else:
            try:
                data = tomllib.loads(path.read_text(encoding="utf-8"))
            except FileNotFoundError as exc:
                raise InvalidConfigurationError(f"Config file not found: {path}") from exc
            except tomllib.TOMLDecodeError as exc:
                raise InvalidConfigurationError(f"Invalid TOML: {exc}") from exc
            cfg = cls.from_dict(data)
        cfg.apply_env_overrides(os.environ)
        cfg.validate()
        return cfg

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AppConfig:
        def section(name: str) -> dict[str, Any]:
            value = data.get(name, {})
            if not isinstance(value, dict):
                raise InvalidConfigurationError(f"[{name}] section must be a table")
            return value

        try:
            table_data = dict(section("table"))
            if "scan_past_tombstones" in table_data:
                table_data["scan_past_tombstones"] = _parse_bool(
                    table_data["scan_past_tombstones"], "table.scan_past_tombstones"
                )
            table = TableSettings(**table_data)
            hash1 = HashSettings(**section("hash"))
            hash2 = HashSettings(**section("hash2"))
            bench = BenchSettings(**section("bench"))
        except TypeError as exc:
            raise InvalidConfigurationError(f"Unknown config key: {exc}") from exc
        return cls(table=table, hash=hash1, hash2=hash2, bench=bench)

    def apply_env_overrides(self, env: Mapping[str, str]) -> None:
        mapping: dict[str, tuple[Any, str, Callable[[str], Any]]] = {
            "PROBEHASH_SIZE": (self.table, "size", int),
            "PROBEHASH_STRATEGY": (self.table, "strategy", str),
            "PROBEHASH_C1": (self.table, "c1", int),
            "PROBEHASH_C2": (self.table, "c2", int),
            "PROBEHASH_H1_METHOD": (self.hash, "method", str),
            "PROBEHASH_H1_MODULUS": (self.hash, "modulus", int),
            "PROBEHASH_H1_A": (self.hash, "a", float),
            "PROBEHASH_H2_METHOD": (self.hash2, "method", str),
            "PROBEHASH_H2_MODULUS": (self.hash2, "modulus", int),
            "PROBEHASH_H2_A": (self.hash2, "a", float),
            "PROBEHASH_BENCH_RUNS": (self.bench, "runs", int),
            "PROBEHASH_BENCH_INSERTS": (self.bench, "inserts", int),
        }
        for key, (target, attr, caster) in mapping.items():
            raw_value = env.get(key)
            if raw_value is None:
                continue
            try:
                value = caster(raw_value)
            except ValueError as exc:
                raise InvalidConfigurationError(
                    f"Invalid env override {key}={raw_value!r}"
                ) from exc
            setattr(target, attr, value)

        raw_scan = env.get("PROBEHASH_SCAN_PAST_TOMBSTONES")
        if raw_scan is not None:
            self.table.scan_past_tombstones = _parse_bool(
                raw_scan, "PROBEHASH_SCAN_PAST_TOMBSTONES"
            )

    def validate(self) -> None:
        self.table.validate()
        self.hash.validate("hash")
        self.hash2.validate("hash2")
        self.bench.validate(self.table.size)

    def build_strategy(self) -> ProbeStrategy:
        size = self.table.size
        scheme = ProbeScheme(self.table.strategy)
        h1 = self.hash.build(size)
        if scheme is ProbeScheme.DOUBLE:
            return ProbeStrategy(scheme, size, h1, h2=self.hash2.build(size))
        if scheme is ProbeScheme.QUADRATIC:
            return ProbeStrategy(scheme, size, h1, c1=self.table.c1, c2=self.table.c2)
        return ProbeStrategy(scheme, size, h1)

    def build_table(self, observer: ProbeHook | None = None) -> OpenAddressingTable:
        return OpenAddressingTable(
            self.table.size,
            self.build_strategy(),
            observer=observer,
            scan_past_tombstones=self.table.scan_past_tombstones,
        )


DEFAULT_CONFIG = AppConfig()


def load_app_config(path: str | None) -> AppConfig:
    config_path = Path(path) if path else None
    return AppConfig.load(config_path)


__all__ = [
    "AppConfig",
    "BenchSettings",
    "DEFAULT_CONFIG",
    "DEFAULT_TABLE_SIZE",
    "HashSettings",
    "TableSettings",
    "load_app_config",
]
