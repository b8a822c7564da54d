"""Contract helpers for the probehash engine and CLI."""

from .error import (
    BadInputError,
    EnvelopeError,
    ErrorEnvelope,
    Exit,
    InvalidConfigurationError,
    InvariantError,
    IOErrorEnvelope,
    PolicyError,
    TableFullError,
    die,
    guard_cli,
)

__all__ = [
    "Exit",
    "ErrorEnvelope",
    "EnvelopeError",
    "BadInputError",
    "InvalidConfigurationError",
    "InvariantError",
    "PolicyError",
    "IOErrorEnvelope",
    "TableFullError",
    "guard_cli",
    "die",
]
