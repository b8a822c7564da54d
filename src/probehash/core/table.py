from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import (
    Any,
    Awaitable,
    Callable,
    Generator,
    Iterator,
    List,
    Optional,
    Tuple,
    Union,
)

from probehash.contracts.error import InvalidConfigurationError, InvariantError, TableFullError
from probehash.core.hashing import ProbeFunction, describe_strategy

logger = logging.getLogger("probehash")


class _Tombstone:
    __slots__ = ()

    def __repr__(self) -> str:
        return "TOMBSTONE"


TOMBSTONE = _Tombstone()


class _NotFound:
    __slots__ = ()

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_FOUND"


NOT_FOUND = _NotFound()


@dataclass(frozen=True)
class Entry:
    key: Any
    value: Any


Slot = Optional[Union[Entry, _Tombstone]]


class SlotState(str, Enum):
    EMPTY = "empty"
    TOMBSTONE = "tombstone"
    OCCUPIED = "occupied"


class ProbePhase(str, Enum):
    PROBE = "probe"
    WRITE = "write"


def slot_state(slot: Slot) -> SlotState:
    if slot is None:
        return SlotState.EMPTY
    if slot is TOMBSTONE:
        return SlotState.TOMBSTONE
    return SlotState.OCCUPIED


@dataclass(frozen=True)
class ProbeEvent:
    """One observable step of a table operation.

    ``PROBE`` events report the slot as it was inspected; a ``WRITE`` event follows the
    mutation that ends an insert or delete and reports the slot's new state.
    """

    operation: str
    key: Any
    attempt: int
    slot: int
    state: SlotState
    phase: ProbePhase = ProbePhase.PROBE
    occupant: Optional[Entry] = None


ProbeHook = Callable[[ProbeEvent], Any]
AsyncProbeHook = Callable[[ProbeEvent], Awaitable[Any]]
_Steps = Generator[ProbeEvent, None, Any]


class OpenAddressingTable:
    """Fixed-size open-addressing table with a pluggable probe strategy.

    Every probe is announced to a hook (``on_probe`` per call, otherwise the table's
    ``observer``) before the table acts on it. Inserts return ``None``; ``get`` returns
    :data:`NOT_FOUND` on a miss and ``delete`` returns ``False``.

    With ``scan_past_tombstones`` disabled (the default) an insert stops at the first
    tombstone on the probe path, which can leave an older copy of the same key further
    along the chain. Enabling it keeps probing until an empty slot or the key itself is
    reached and only then reuses the first tombstone seen.
    """

    __slots__ = (
        "_size",
        "_strategy",
        "_slots",
        "_collisions",
        "_last_probe",
        "_occupied",
        "_tombstones",
        "observer",
        "scan_past_tombstones",
    )

    def __init__(
        self,
        size: int,
        strategy: ProbeFunction,
        *,
        observer: Optional[ProbeHook] = None,
        scan_past_tombstones: bool = False,
    ) -> None:
        if isinstance(size, bool) or not isinstance(size, int) or size < 1:
            raise InvalidConfigurationError("table size must be a positive integer")
        self._size = size
        self._check_strategy(strategy)
        self._strategy = strategy
        self._slots: List[Slot] = [None] * size
        self._collisions = 0
        self._last_probe: Tuple[Any, int] = (None, 0)
        self._occupied = 0
        self._tombstones = 0
        self.observer = observer
        self.scan_past_tombstones = scan_past_tombstones
        logger.debug("Table created (size=%d, strategy=%s)", size, describe_strategy(strategy))

    def __len__(self) -> int:
        return self._occupied

    def __repr__(self) -> str:
        return (
            f"OpenAddressingTable(size={self._size}, occupied={self._occupied}, "
            f"tombstones={self._tombstones}, collisions={self._collisions})"
        )

    @property
    def size(self) -> int:
        return self._size

    @property
    def strategy(self) -> ProbeFunction:
        return self._strategy

    @property
    def collision_count(self) -> int:
        return self._collisions

    @property
    def last_probe(self) -> Tuple[Any, int]:
        return self._last_probe

    def slots(self) -> List[Slot]:
        return list(self._slots)

    def items(self) -> Iterator[Tuple[Any, Any]]:
        for slot in self._slots:
            if isinstance(slot, Entry):
                yield slot.key, slot.value

    def load_factor(self) -> float:
        return self._occupied / self._size

    def tombstone_ratio(self) -> float:
        return self._tombstones / self._size

    def _check_strategy(self, strategy: ProbeFunction) -> None:
        if not callable(strategy):
            raise InvalidConfigurationError("probe strategy must be callable")
        declared = getattr(strategy, "size", None)
        if declared is not None and declared != self._size:
            raise InvalidConfigurationError(
                f"probe strategy is sized for {declared} slots but the table has {self._size}"
            )

    def set_strategy(self, strategy: ProbeFunction) -> None:
        """Replace the probe strategy; existing entries stay where they are."""

        self._check_strategy(strategy)
        if self._occupied:
            logger.info(
                "Probe strategy replaced on a table holding %d entries; entries are not rehashed",
                self._occupied,
            )
        self._strategy = strategy

    # ------------------------------------------------------------------
    # step generators
    # ------------------------------------------------------------------
    def _probe(self, operation: str, key: Any, attempt: int) -> ProbeEvent:
        idx = self._strategy(key, attempt)
        if not 0 <= idx < self._size:
            raise InvariantError(
                f"probe strategy returned slot {idx} for key {key!r} at attempt {attempt}; "
                f"expected [0, {self._size})"
            )
        self._last_probe = (key, idx)
        slot = self._slots[idx]
        return ProbeEvent(
            operation,
            key,
            attempt,
            idx,
            slot_state(slot),
            occupant=slot if isinstance(slot, Entry) else None,
        )

    def _write(self, operation: str, key: Any, attempt: int, idx: int, slot: Slot) -> ProbeEvent:
        previous = self._slots[idx]
        if isinstance(slot, Entry):
            if not isinstance(previous, Entry):
                self._occupied += 1
            if previous is TOMBSTONE:
                self._tombstones -= 1
        elif slot is TOMBSTONE and isinstance(previous, Entry):
            self._occupied -= 1
            self._tombstones += 1
        self._slots[idx] = slot
        self._last_probe = (key, idx)
        return ProbeEvent(
            operation,
            key,
            attempt,
            idx,
            slot_state(slot),
            phase=ProbePhase.WRITE,
            occupant=slot if isinstance(slot, Entry) else None,
        )

    def insert_steps(self, key: Any, value: Any) -> _Steps:
        attempt = 0
        target: Optional[int] = None
        first_tombstone: Optional[int] = None
        while attempt < self._size:
            event = self._probe("insert", key, attempt)
            yield event
            if event.state is SlotState.TOMBSTONE:
                if not self.scan_past_tombstones:
                    target = event.slot
                    break
                if first_tombstone is None:
                    first_tombstone = event.slot
            elif event.state is SlotState.EMPTY:
                target = event.slot if first_tombstone is None else first_tombstone
                break
            elif event.occupant is not None and event.occupant.key == key:
                target = event.slot
                break
            attempt += 1
        if target is None:
            target = first_tombstone
        self._collisions += attempt
        if target is None:
            logger.warning("Insert rejected: table full (key=%r, size=%d)", key, self._size)
            raise TableFullError(key, self._size)
        yield self._write("insert", key, min(attempt, self._size - 1), target, Entry(key, value))
        logger.debug("insert key=%r slot=%d collisions=%d", key, target, attempt)
        return None

    def get_steps(self, key: Any) -> _Steps:
        for attempt in range(self._size):
            event = self._probe("get", key, attempt)
            yield event
            if event.state is SlotState.EMPTY:
                return NOT_FOUND
            if event.occupant is not None and event.occupant.key == key:
                return event.occupant.value
        return NOT_FOUND

    def delete_steps(self, key: Any) -> _Steps:
        for attempt in range(self._size):
            event = self._probe("delete", key, attempt)
            yield event
            if event.state is SlotState.EMPTY:
                return False
            if event.occupant is not None and event.occupant.key == key:
                yield self._write("delete", key, attempt, event.slot, TOMBSTONE)
                logger.debug("delete key=%r slot=%d", key, event.slot)
                return True
        return False

    # ------------------------------------------------------------------
    # drivers
    # ------------------------------------------------------------------
    def _drive(self, steps: _Steps, on_probe: Optional[ProbeHook]) -> Any:
        hook = on_probe if on_probe is not None else self.observer
        while True:
            try:
                event = next(steps)
            except StopIteration as stop:
                return stop.value
            if hook is not None:
                hook(event)

    async def _adrive(
        self, steps: _Steps, on_probe: Optional[Union[ProbeHook, AsyncProbeHook]]
    ) -> Any:
        hook = on_probe if on_probe is not None else self.observer
        while True:
            try:
                event = next(steps)
            except StopIteration as stop:
                return stop.value
            if hook is not None:
                result = hook(event)
                if inspect.isawaitable(result):
                    await result

    def insert(self, key: Any, value: Any, on_probe: Optional[ProbeHook] = None) -> None:
        self._drive(self.insert_steps(key, value), on_probe)

    def get(self, key: Any, on_probe: Optional[ProbeHook] = None) -> Any:
        return self._drive(self.get_steps(key), on_probe)

    def delete(self, key: Any, on_probe: Optional[ProbeHook] = None) -> bool:
        return bool(self._drive(self.delete_steps(key), on_probe))

    async def ainsert(
        self,
        key: Any,
        value: Any,
        on_probe: Optional[Union[ProbeHook, AsyncProbeHook]] = None,
    ) -> None:
        await self._adrive(self.insert_steps(key, value), on_probe)

    async def aget(
        self, key: Any, on_probe: Optional[Union[ProbeHook, AsyncProbeHook]] = None
    ) -> Any:
        return await self._adrive(self.get_steps(key), on_probe)

    async def adelete(
        self, key: Any, on_probe: Optional[Union[ProbeHook, AsyncProbeHook]] = None
    ) -> bool:
        return bool(await self._adrive(self.delete_steps(key), on_probe))


__all__ = [
    "AsyncProbeHook",
    "Entry",
    "NOT_FOUND",
    "OpenAddressingTable",
    "ProbeEvent",
    "ProbeHook",
    "ProbePhase",
    "Slot",
    "SlotState",
    "TOMBSTONE",
    "slot_state",
]
