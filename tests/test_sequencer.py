# ruff: noqa: INP001
"""Position arithmetic for ordered siblings."""

from __future__ import annotations

import itertools
from dataclasses import dataclass

import pytest

from taskboard.services.ordering.sequencer import (
    PositionShift,
    ShiftRange,
    apply_shifts,
    clamp_position,
    close_gap_range,
    compute_cross_parent_move,
    compute_delete_shift,
    compute_insert_position,
    compute_reorder,
    insert_item,
    is_dense,
    move_between,
    open_slot_range,
    remove_item,
    renumber,
    reorder_items,
    reorder_range,
)


@dataclass(frozen=True)
class Item:
    id: str
    position: int


def _items(*ids: str) -> list[Item]:
    return [Item(id=item_id, position=index) for index, item_id in enumerate(ids)]


def _order(items: list[Item]) -> list[str]:
    return [item.id for item in sorted(items, key=lambda item: item.position)]


def test_insert_position_appends_after_max() -> None:
    assert compute_insert_position(None) == 0
    assert compute_insert_position(0) == 1
    assert compute_insert_position(6) == 7


def test_reorder_range_directions() -> None:
    assert reorder_range(0, 2) == ShiftRange(lower=1, upper=2, delta=-1)
    assert reorder_range(3, 1) == ShiftRange(lower=1, upper=2, delta=1)
    assert reorder_range(2, 2) is None


def test_gap_and_slot_ranges_are_open_ended() -> None:
    assert close_gap_range(1) == ShiftRange(lower=2, upper=None, delta=-1)
    assert open_slot_range(0) == ShiftRange(lower=0, upper=None, delta=1)
    assert open_slot_range(0).contains(99)
    assert not close_gap_range(1).contains(1)


def test_compute_reorder_moving_down() -> None:
    siblings = _items("t1", "t2", "t3")

    shifts = compute_reorder(siblings, "t1", 0, 2)

    assert shifts == [PositionShift("t2", -1), PositionShift("t3", -1)]


def test_compute_reorder_moving_up() -> None:
    siblings = _items("a", "b", "c", "d")

    shifts = compute_reorder(siblings, "d", 3, 1)

    assert shifts == [PositionShift("b", 1), PositionShift("c", 1)]


def test_compute_reorder_same_position_is_noop() -> None:
    assert compute_reorder(_items("a", "b"), "a", 0, 0) == []


def test_compute_reorder_rejects_out_of_range_target() -> None:
    with pytest.raises(ValueError):
        compute_reorder(_items("a", "b"), "a", 0, 2)
    with pytest.raises(ValueError):
        compute_reorder(_items("a", "b"), "a", 0, -1)


def test_cross_parent_move_shifts_both_sides() -> None:
    source_survivors = [Item("t2", 1), Item("t3", 2)]
    dest = _items("u1", "u2")

    plan = compute_cross_parent_move(source_survivors, dest, 0, 1)

    assert plan.source_shifts == [PositionShift("t2", -1), PositionShift("t3", -1)]
    assert plan.dest_shifts == [PositionShift("u2", 1)]
    assert plan.position == 1


def test_cross_parent_move_allows_append_slot() -> None:
    plan = compute_cross_parent_move([], _items("u1"), 0, 1)
    assert plan.dest_shifts == []
    assert plan.position == 1
    with pytest.raises(ValueError):
        compute_cross_parent_move([], _items("u1"), 0, 2)


def test_delete_shift_closes_gap() -> None:
    survivors = [Item("l1", 0), Item("l3", 2)]

    shifts = compute_delete_shift(survivors, 1)

    assert shifts == [PositionShift("l3", -1)]
    assert is_dense(item.position for item in apply_shifts(survivors, shifts))


def test_clamp_position() -> None:
    assert clamp_position(-3, 4) == 0
    assert clamp_position(2, 4) == 2
    assert clamp_position(10, 4) == 4


def test_is_dense() -> None:
    assert is_dense([])
    assert is_dense([2, 0, 1])
    assert not is_dense([0, 2])
    assert not is_dense([0, 0, 1])


def test_reorder_items_scenario() -> None:
    result = reorder_items(_items("t1", "t2", "t3"), "t1", 2)

    assert _order(result) == ["t2", "t3", "t1"]
    assert [item.position for item in result] == [0, 1, 2]


def test_move_between_scenario() -> None:
    source = _items("t1", "t2")
    dest = _items("t3")

    new_source, new_dest, placed = move_between(source, dest, "t1", 0)

    assert _order(new_source) == ["t2"]
    assert _order(new_dest) == ["t1", "t3"]
    assert placed == Item("t1", 0)
    assert is_dense(item.position for item in new_source)
    assert is_dense(item.position for item in new_dest)


def test_insert_and_remove_keep_positions_dense() -> None:
    items = insert_item(_items("a", "b"), Item("x", 99), 99)
    assert _order(items) == ["a", "b", "x"]

    items = insert_item(items, Item("y", 0), 1)
    assert _order(items) == ["a", "y", "b", "x"]

    items = remove_item(items, "a")
    assert _order(items) == ["y", "b", "x"]
    assert [item.position for item in items] == [0, 1, 2]

    assert remove_item(items, "missing") == items


def test_renumber_repairs_gaps() -> None:
    repaired = renumber([Item("a", 4), Item("b", 1), Item("c", 9)])
    assert [(item.id, item.position) for item in repaired] == [("b", 0), ("a", 1), ("c", 2)]


@pytest.mark.parametrize("size", [1, 2, 3, 5])
def test_every_reorder_preserves_density_and_membership(size: int) -> None:
    ids = [f"i{index}" for index in range(size)]
    for item_id, target in itertools.product(ids, range(size)):
        result = reorder_items(_items(*ids), item_id, target)
        assert sorted(item.id for item in result) == sorted(ids)
        assert is_dense(item.position for item in result)
        assert next(item for item in result if item.id == item_id).position == target


@pytest.mark.parametrize(("source_size", "dest_size"), [(1, 0), (2, 2), (3, 1)])
def test_every_cross_move_preserves_density(source_size: int, dest_size: int) -> None:
    source_ids = [f"s{index}" for index in range(source_size)]
    dest_ids = [f"d{index}" for index in range(dest_size)]
    for item_id, target in itertools.product(source_ids, range(dest_size + 1)):
        new_source, new_dest, placed = move_between(
            _items(*source_ids),
            _items(*dest_ids),
            item_id,
            target,
        )
        assert len(new_source) == source_size - 1
        assert len(new_dest) == dest_size + 1
        assert is_dense(item.position for item in new_source)
        assert is_dense(item.position for item in new_dest)
        assert placed.position == target
