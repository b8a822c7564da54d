from __future__ import annotations

import asyncio
import logging
from typing import List

import pytest

from probehash.contracts.error import (
    InvalidConfigurationError,
    InvariantError,
    TableFullError,
)
from probehash.core import (
    NOT_FOUND,
    TOMBSTONE,
    Entry,
    OpenAddressingTable,
    ProbeEvent,
    ProbePhase,
    SlotState,
    linear_probing,
    multiplication,
)


def _states(events: List[ProbeEvent]) -> List[str]:
    return [event.state.value for event in events if event.phase is ProbePhase.PROBE]


def test_walkthrough_scenario(linear_table: OpenAddressingTable) -> None:
    table = linear_table
    table.insert(5, "a")
    assert table.slots()[0] == Entry(5, "a")
    assert table.collision_count == 0

    table.insert(10, "b")
    assert table.slots()[1] == Entry(10, "b")
    assert table.collision_count == 1

    assert table.get(10) == "b"

    assert table.delete(5) is True
    assert table.slots()[0] is TOMBSTONE

    seen: List[ProbeEvent] = []
    assert table.get(5, on_probe=seen.append) is NOT_FOUND
    assert [event.slot for event in seen] == [0, 1, 2]
    assert _states(seen) == ["tombstone", "occupied", "empty"]

    table.insert(10, "c")
    assert table.slots()[:2] == [Entry(10, "c"), Entry(10, "b")]
    assert table.collision_count == 1
    assert table.get(10) == "c"


def test_stale_duplicate_resurfaces_after_delete(linear_table: OpenAddressingTable) -> None:
    table = linear_table
    table.insert(5, "a")
    table.insert(10, "b")
    table.delete(5)
    table.insert(10, "c")

    assert table.delete(10) is True
    assert table.get(10) == "b"


def test_scan_past_tombstones_updates_existing_key() -> None:
    table = OpenAddressingTable(5, linear_probing(5), scan_past_tombstones=True)
    table.insert(5, "a")
    table.insert(10, "b")
    table.delete(5)

    table.insert(10, "c")
    assert table.slots()[:2] == [TOMBSTONE, Entry(10, "c")]
    assert table.collision_count == 2

    assert table.delete(10) is True
    assert table.get(10) is NOT_FOUND


def test_scan_past_tombstones_reuses_first_tombstone() -> None:
    table = OpenAddressingTable(5, linear_probing(5), scan_past_tombstones=True)
    table.insert(5, "a")
    table.insert(10, "b")
    table.delete(5)

    events: List[ProbeEvent] = []
    table.insert(15, "x", on_probe=events.append)
    assert [event.slot for event in events] == [0, 1, 2, 0]
    assert events[-1].phase is ProbePhase.WRITE
    assert table.slots()[0] == Entry(15, "x")
    assert table.slots()[2] is None
    assert table.collision_count == 1 + 2


def test_read_your_write_overwrites_in_place(linear_table: OpenAddressingTable) -> None:
    linear_table.insert(3, "first")
    linear_table.insert(3, "second")
    assert linear_table.get(3) == "second"
    assert len(linear_table) == 1
    assert list(linear_table.items()) == [(3, "second")]


def test_delete_absent_key_leaves_table_untouched(linear_table: OpenAddressingTable) -> None:
    linear_table.insert(5, "a")
    linear_table.insert(10, "b")
    before = linear_table.slots()
    collisions = linear_table.collision_count

    events: List[ProbeEvent] = []
    assert linear_table.delete(20, on_probe=events.append) is False
    assert [event.slot for event in events] == [0, 1, 2]
    assert linear_table.slots() == before
    assert linear_table.collision_count == collisions


def test_zero_probe_insert_does_not_count_collision(linear_table: OpenAddressingTable) -> None:
    linear_table.insert(1, "a")
    linear_table.insert(2, "b")
    assert linear_table.collision_count == 0


def test_get_never_changes_collisions() -> None:
    table = OpenAddressingTable(2, linear_probing(2))
    table.insert(0, "a")
    table.insert(1, "b")
    events: List[ProbeEvent] = []
    assert table.get(2, on_probe=events.append) is NOT_FOUND
    assert len(events) == 2
    assert table.collision_count == 0


def test_table_full_raises_and_counts_attempts() -> None:
    table = OpenAddressingTable(2, linear_probing(2))
    table.insert(0, "a")
    table.insert(1, "b")
    with pytest.raises(TableFullError) as excinfo:
        table.insert(2, "c")
    assert excinfo.value.size == 2
    assert table.collision_count == 2
    assert table.slots() == [Entry(0, "a"), Entry(1, "b")]


def test_poor_strategy_hits_size_cutoff() -> None:
    table = OpenAddressingTable(3, lambda key, attempt: 0)
    table.insert(1, "a")
    with pytest.raises(TableFullError):
        table.insert(2, "b")
    assert table.collision_count == 3
    assert table.slots() == [Entry(1, "a"), None, None]


def test_table_full_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("probehash")
    logger.addHandler(caplog.handler)
    try:
        table = OpenAddressingTable(1, linear_probing(1))
        table.insert(0, "a")
        with pytest.raises(TableFullError):
            table.insert(1, "b")
    finally:
        logger.removeHandler(caplog.handler)
    assert any("table full" in record.getMessage() for record in caplog.records)


def test_hook_sees_each_probe_before_the_write(linear_table: OpenAddressingTable) -> None:
    linear_table.insert(5, "a")
    snapshots = []

    def hook(event: ProbeEvent) -> None:
        assert linear_table.last_probe == (10, event.slot)
        snapshots.append((event.phase, event.slot, linear_table.slots()[1]))

    linear_table.insert(10, "b", on_probe=hook)
    assert snapshots == [
        (ProbePhase.PROBE, 0, None),
        (ProbePhase.PROBE, 1, None),
        (ProbePhase.WRITE, 1, Entry(10, "b")),
    ]


def test_delete_announces_tombstone(linear_table: OpenAddressingTable) -> None:
    linear_table.insert(5, "a")
    events: List[ProbeEvent] = []
    assert linear_table.delete(5, on_probe=events.append) is True
    assert [(event.phase, event.state) for event in events] == [
        (ProbePhase.PROBE, SlotState.OCCUPIED),
        (ProbePhase.WRITE, SlotState.TOMBSTONE),
    ]
    assert len(linear_table) == 0
    assert linear_table.tombstone_ratio() == pytest.approx(0.2)


def test_constructor_observer_used_without_per_call_hook() -> None:
    events: List[ProbeEvent] = []
    table = OpenAddressingTable(5, linear_probing(5), observer=events.append)
    table.insert(1, "a")
    table.get(1)
    assert [event.operation for event in events] == ["insert", "insert", "get"]

    override: List[ProbeEvent] = []
    table.get(1, on_probe=override.append)
    assert len(override) == 1
    assert len(events) == 3


def test_set_strategy_does_not_rehash(linear_table: OpenAddressingTable) -> None:
    linear_table.insert(7, "seven")
    assert linear_table.slots()[2] == Entry(7, "seven")

    linear_table.set_strategy(linear_probing(5, multiplication(5)))
    assert linear_table.slots()[2] == Entry(7, "seven")
    assert linear_table.get(7) is NOT_FOUND


def test_strategy_sized_for_other_table_is_rejected() -> None:
    with pytest.raises(InvalidConfigurationError):
        OpenAddressingTable(5, linear_probing(7))
    table = OpenAddressingTable(5, linear_probing(5))
    with pytest.raises(InvalidConfigurationError):
        table.set_strategy(linear_probing(6))


@pytest.mark.parametrize("size", [0, -1, True])
def test_non_positive_size_is_rejected(size: int) -> None:
    with pytest.raises(InvalidConfigurationError):
        OpenAddressingTable(size, lambda key, attempt: 0)


def test_out_of_range_probe_is_an_invariant_violation() -> None:
    table = OpenAddressingTable(3, lambda key, attempt: 5)
    with pytest.raises(InvariantError):
        table.insert(1, "a")
    assert table.slots() == [None, None, None]
    assert table.collision_count == 0


def test_load_factor_and_repr(linear_table: OpenAddressingTable) -> None:
    linear_table.insert(0, "a")
    linear_table.insert(1, "b")
    assert linear_table.load_factor() == pytest.approx(0.4)
    assert "occupied=2" in repr(linear_table)


def test_not_found_sentinel_is_falsy() -> None:
    assert not NOT_FOUND
    assert repr(NOT_FOUND) == "NOT_FOUND"


def test_async_drivers_await_hook(linear_table: OpenAddressingTable) -> None:
    order: List[str] = []

    async def hook(event: ProbeEvent) -> None:
        order.append(f"{event.operation}:{event.phase.value}:{event.slot}")
        await asyncio.sleep(0)

    async def scenario() -> tuple:
        await linear_table.ainsert(5, "a", hook)
        await linear_table.ainsert(10, "b", hook)
        value = await linear_table.aget(10, hook)
        removed = await linear_table.adelete(5, hook)
        return value, removed

    value, removed = asyncio.run(scenario())
    assert value == "b"
    assert removed is True
    assert order == [
        "insert:probe:0",
        "insert:write:0",
        "insert:probe:0",
        "insert:probe:1",
        "insert:write:1",
        "get:probe:0",
        "get:probe:1",
        "delete:probe:0",
        "delete:write:0",
    ]
    assert linear_table.collision_count == 1


def test_async_driver_accepts_plain_callbacks(linear_table: OpenAddressingTable) -> None:
    events: List[ProbeEvent] = []
    asyncio.run(linear_table.ainsert(4, "d", events.append))
    assert asyncio.run(linear_table.aget(4)) == "d"
    assert asyncio.run(linear_table.adelete(9)) is False
    assert [event.slot for event in events] == [4, 4]


def test_async_insert_raises_table_full() -> None:
    table = OpenAddressingTable(1, linear_probing(1))
    asyncio.run(table.ainsert(0, "a"))
    with pytest.raises(TableFullError):
        asyncio.run(table.ainsert(1, "b"))


def test_step_generator_can_be_driven_manually(linear_table: OpenAddressingTable) -> None:
    steps = linear_table.insert_steps(3, "c")
    first = next(steps)
    assert first.slot == 3 and first.state is SlotState.EMPTY
    assert linear_table.slots()[3] is None
    write = next(steps)
    assert write.phase is ProbePhase.WRITE
    with pytest.raises(StopIteration):
        next(steps)
    assert linear_table.get(3) == "c"
