from .hashing import (
    KNUTH_A,
    HashMethod,
    PrimaryHash,
    ProbeFunction,
    ProbeScheme,
    ProbeStrategy,
    describe_strategy,
    division,
    double_hashing,
    linear_probing,
    multiplication,
    quadratic_probing,
)
from .table import (
    NOT_FOUND,
    TOMBSTONE,
    AsyncProbeHook,
    Entry,
    OpenAddressingTable,
    ProbeEvent,
    ProbeHook,
    ProbePhase,
    Slot,
    SlotState,
    slot_state,
)

__all__ = [
    "KNUTH_A",
    "NOT_FOUND",
    "TOMBSTONE",
    "AsyncProbeHook",
    "Entry",
    "HashMethod",
    "OpenAddressingTable",
    "PrimaryHash",
    "ProbeEvent",
    "ProbeFunction",
    "ProbeHook",
    "ProbePhase",
    "ProbeScheme",
    "ProbeStrategy",
    "Slot",
    "SlotState",
    "describe_strategy",
    "division",
    "double_hashing",
    "linear_probing",
    "multiplication",
    "quadratic_probing",
    "slot_state",
]
