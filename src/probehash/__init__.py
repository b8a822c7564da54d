"""Instrumented open-addressing hash table engine."""

from . import analysis, bench, contracts, core
from .core import (
    NOT_FOUND,
    TOMBSTONE,
    OpenAddressingTable,
    ProbeEvent,
    ProbeStrategy,
    double_hashing,
    linear_probing,
    quadratic_probing,
)

__all__ = [
    "NOT_FOUND",
    "TOMBSTONE",
    "OpenAddressingTable",
    "ProbeEvent",
    "ProbeStrategy",
    "analysis",
    "bench",
    "contracts",
    "core",
    "double_hashing",
    "linear_probing",
    "quadratic_probing",
]
