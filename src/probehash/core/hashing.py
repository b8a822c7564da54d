"""Primary hash functions and probe strategies for open addressing."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from fractions import Fraction
from typing import Any, Callable, Optional

from probehash.contracts.error import InvalidConfigurationError

KNUTH_A: float = (math.sqrt(5) - 1) / 2

ProbeFunction = Callable[[Any, int], int]


class HashMethod(str, Enum):
    DIVISION = "division"
    MULTIPLICATION = "multiplication"


class ProbeScheme(str, Enum):
    LINEAR = "linear"
    QUADRATIC = "quadratic"
    DOUBLE = "double"


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class PrimaryHash:
    """Map an integer key onto ``[0, modulus)``.

    ``a`` is only consulted by the multiplication method. The fractional part of
    ``a * key`` is taken in exact rational arithmetic, so arbitrarily large keys hash
    without overflow or loss of precision.
    """

    method: HashMethod = HashMethod.DIVISION
    modulus: int = 1
    a: float = KNUTH_A
    _a_exact: Fraction = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        try:
            method = HashMethod(self.method)
        except ValueError as exc:
            raise InvalidConfigurationError(
                f"hash method must be 'division' or 'multiplication', got {self.method!r}"
            ) from exc
        object.__setattr__(self, "method", method)
        if not _is_int(self.modulus):
            raise InvalidConfigurationError("hash modulus must be an integer")
        if self.modulus < 1:
            raise InvalidConfigurationError("hash modulus must be >= 1")
        if isinstance(self.a, bool) or not isinstance(self.a, (int, float)):
            raise InvalidConfigurationError("multiplication constant A must be a number")
        if not 0.0 <= self.a <= 1.0:
            raise InvalidConfigurationError("multiplication constant A must be within [0, 1]")
        object.__setattr__(self, "_a_exact", Fraction(self.a))

    def __call__(self, key: int) -> int:
        if self.method is HashMethod.DIVISION:
            return key % self.modulus
        return math.floor(self.modulus * ((self._a_exact * key) % 1))

    def describe(self) -> str:
        if self.method is HashMethod.DIVISION:
            return f"k mod {self.modulus}"
        return f"floor({self.modulus}({self.a:g}k mod 1))"


def division(modulus: int) -> PrimaryHash:
    return PrimaryHash(HashMethod.DIVISION, modulus)


def multiplication(modulus: int, a: float = KNUTH_A) -> PrimaryHash:
    return PrimaryHash(HashMethod.MULTIPLICATION, modulus, a)


@dataclass(frozen=True)
class ProbeStrategy:
    """Deterministic ``(key, attempt) -> slot`` mapping for a table of ``size`` slots.

    The scheme tag selects the formula; ``h2`` is used only for double hashing and
    ``c1``/``c2`` only for quadratic probing. Instances hold no mutable state, so
    swapping one on a live table only changes future probes.
    """

    scheme: ProbeScheme
    size: int
    h1: PrimaryHash
    h2: Optional[PrimaryHash] = None
    c1: int = 0
    c2: int = 0

    def __post_init__(self) -> None:
        try:
            scheme = ProbeScheme(self.scheme)
        except ValueError as exc:
            raise InvalidConfigurationError(
                f"probe strategy must be one of linear/quadratic/double, got {self.scheme!r}"
            ) from exc
        object.__setattr__(self, "scheme", scheme)
        if not _is_int(self.size) or self.size < 1:
            raise InvalidConfigurationError("table size must be a positive integer")
        if not (_is_int(self.c1) and _is_int(self.c2)):
            raise InvalidConfigurationError("quadratic constants c1 and c2 must be integers")
        if self.c1 < 0 or self.c2 < 0:
            raise InvalidConfigurationError("quadratic constants c1 and c2 must be >= 0")
        if scheme is ProbeScheme.DOUBLE and self.h2 is None:
            raise InvalidConfigurationError("double hashing requires a secondary hash h2")

    def __call__(self, key: Any, attempt: int) -> int:
        base = self.h1(key)
        if self.scheme is ProbeScheme.LINEAR:
            return (base + attempt) % self.size
        if self.scheme is ProbeScheme.QUADRATIC:
            return (base + self.c1 * attempt + self.c2 * attempt * attempt) % self.size
        assert self.h2 is not None
        return (base + attempt * self.h2(key)) % self.size

    def sequence(self, key: Any) -> list[int]:
        """Return the full probe sequence for ``key`` over attempts ``0..size-1``."""

        return [self(key, attempt) for attempt in range(self.size)]

    def describe(self) -> str:
        inner = self.h1.describe()
        if self.scheme is ProbeScheme.LINEAR:
            return f"(({inner}) + i) mod {self.size}"
        if self.scheme is ProbeScheme.QUADRATIC:
            return f"(({inner}) + {self.c1}*i + {self.c2}*i**2) mod {self.size}"
        assert self.h2 is not None
        return f"(({inner}) + i * ({self.h2.describe()})) mod {self.size}"


def linear_probing(size: int, h: Optional[PrimaryHash] = None) -> ProbeStrategy:
    return ProbeStrategy(ProbeScheme.LINEAR, size, h or division(size))


def quadratic_probing(
    size: int, c1: int, c2: int, h: Optional[PrimaryHash] = None
) -> ProbeStrategy:
    return ProbeStrategy(ProbeScheme.QUADRATIC, size, h or division(size), c1=c1, c2=c2)


def double_hashing(size: int, h1: PrimaryHash, h2: PrimaryHash) -> ProbeStrategy:
    return ProbeStrategy(ProbeScheme.DOUBLE, size, h1, h2=h2)


def describe_strategy(strategy: ProbeFunction) -> str:
    describe = getattr(strategy, "describe", None)
    if callable(describe):
        return str(describe())
    return getattr(strategy, "__name__", repr(strategy))


__all__ = [
    "KNUTH_A",
    "HashMethod",
    "PrimaryHash",
    "ProbeFunction",
    "ProbeScheme",
    "ProbeStrategy",
    "describe_strategy",
    "division",
    "double_hashing",
    "linear_probing",
    "multiplication",
    "quadratic_probing",
]
