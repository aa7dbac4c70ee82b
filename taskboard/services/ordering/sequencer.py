"""Dense position arithmetic for ordered sibling collections.

Siblings are the children of one parent (lists of a board, tasks of a list).
Their positions must always be exactly ``0..n-1``. Every mutation is described
as one or two :class:`ShiftRange` values; the per-item helpers below are
derived from those ranges, so the bulk SQL path on the server and the in-memory
path on the client produce identical orderings for identical inputs.

All functions are pure. Callers validate ``new_pos`` before calling in; an
out-of-range position raises ``ValueError`` because it is a programming error,
not a recoverable runtime condition.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Protocol, TypeVar

if TYPE_CHECKING:
    from collections.abc import Hashable, Iterable, Sequence


class Positioned(Protocol):
    """Anything with a stable id and a sibling position."""

    @property
    def id(self) -> Hashable: ...

    @property
    def position(self) -> int: ...


ItemT = TypeVar("ItemT", bound=Positioned)


@dataclass(frozen=True)
class ShiftRange:
    """Inclusive position range whose members move by ``delta``.

    ``upper`` of ``None`` means "to the end of the collection".
    """

    lower: int
    upper: int | None
    delta: int

    def contains(self, position: int) -> bool:
        if position < self.lower:
            return False
        return self.upper is None or position <= self.upper


@dataclass(frozen=True)
class PositionShift:
    """One sibling's position change."""

    item_id: Hashable
    delta: int


@dataclass(frozen=True)
class CrossParentMove:
    """Shifts for both parents plus the moved item's final position."""

    source_shifts: list[PositionShift]
    dest_shifts: list[PositionShift]
    position: int


def _check_target(new_pos: int, sibling_count: int) -> None:
    if new_pos < 0 or new_pos > sibling_count:
        msg = f"position {new_pos} outside 0..{sibling_count}"
        raise ValueError(msg)


def clamp_position(requested: int, sibling_count: int) -> int:
    """Clamp a requested slot into ``0..sibling_count``."""
    return max(0, min(requested, sibling_count))


def compute_insert_position(current_max: int | None) -> int:
    """New items append after the current maximum (``0`` when empty)."""
    if current_max is None:
        return 0
    return current_max + 1


def reorder_range(old_pos: int, new_pos: int) -> ShiftRange | None:
    """Range of other siblings displaced by a same-parent move."""
    if new_pos > old_pos:
        return ShiftRange(lower=old_pos + 1, upper=new_pos, delta=-1)
    if new_pos < old_pos:
        return ShiftRange(lower=new_pos, upper=old_pos - 1, delta=1)
    return None


def close_gap_range(removed_pos: int) -> ShiftRange:
    """Range pulled down by one when the item at ``removed_pos`` leaves."""
    return ShiftRange(lower=removed_pos + 1, upper=None, delta=-1)


def open_slot_range(insert_pos: int) -> ShiftRange:
    """Range pushed up by one to make room at ``insert_pos``."""
    return ShiftRange(lower=insert_pos, upper=None, delta=1)


def _shifts_for(
    siblings: Iterable[Positioned],
    shift_range: ShiftRange | None,
    *,
    exclude_id: Hashable | None = None,
) -> list[PositionShift]:
    if shift_range is None:
        return []
    return [
        PositionShift(item_id=item.id, delta=shift_range.delta)
        for item in siblings
        if item.id != exclude_id and shift_range.contains(item.position)
    ]


def compute_reorder(
    siblings: Sequence[Positioned],
    item_id: Hashable,
    old_pos: int,
    new_pos: int,
) -> list[PositionShift]:
    """Shifts for the other siblings when ``item_id`` moves within its parent.

    ``siblings`` may include the moved item; it is never shifted.
    """
    others = sum(1 for item in siblings if item.id != item_id)
    _check_target(new_pos, others)
    return _shifts_for(siblings, reorder_range(old_pos, new_pos), exclude_id=item_id)


def compute_cross_parent_move(
    source_siblings: Sequence[Positioned],
    dest_siblings: Sequence[Positioned],
    old_pos: int,
    new_pos: int,
) -> CrossParentMove:
    """Close the gap in the source parent and open a slot in the destination."""
    _check_target(new_pos, len(dest_siblings))
    return CrossParentMove(
        source_shifts=_shifts_for(source_siblings, close_gap_range(old_pos)),
        dest_shifts=_shifts_for(dest_siblings, open_slot_range(new_pos)),
        position=new_pos,
    )


def compute_delete_shift(
    siblings: Sequence[Positioned],
    deleted_pos: int,
) -> list[PositionShift]:
    """Shifts for the survivors after the item at ``deleted_pos`` is removed."""
    return _shifts_for(siblings, close_gap_range(deleted_pos))


def is_dense(positions: Iterable[int]) -> bool:
    """True when ``positions`` is exactly ``0..n-1`` with no duplicates."""
    ordered = sorted(positions)
    return ordered == list(range(len(ordered)))


# ---------------------------------------------------------------------------
# In-memory application, used by the client reconciliation layer and tests.
# Items are dataclass instances; results are new, position-sorted lists.
# ---------------------------------------------------------------------------


def apply_shifts(items: Sequence[ItemT], shifts: Iterable[PositionShift]) -> list[ItemT]:
    """Return copies of ``items`` with ``shifts`` applied, sorted by position."""
    deltas: dict[Hashable, int] = {}
    for shift in shifts:
        deltas[shift.item_id] = deltas.get(shift.item_id, 0) + shift.delta
    shifted = [
        replace(item, position=item.position + deltas[item.id])
        if item.id in deltas
        else item
        for item in items
    ]
    return sorted(shifted, key=lambda item: item.position)


def renumber(items: Sequence[ItemT]) -> list[ItemT]:
    """Rewrite positions to ``0..n-1`` following the current order."""
    ordered = sorted(items, key=lambda item: item.position)
    return [
        item if item.position == index else replace(item, position=index)
        for index, item in enumerate(ordered)
    ]


def reorder_items(items: Sequence[ItemT], item_id: Hashable, new_pos: int) -> list[ItemT]:
    """Move ``item_id`` to ``new_pos`` within ``items``."""
    moved = next((item for item in items if item.id == item_id), None)
    if moved is None:
        msg = f"item {item_id!r} is not a sibling"
        raise ValueError(msg)
    old_pos = moved.position
    shifts = compute_reorder(items, item_id, old_pos, new_pos)
    result = apply_shifts([item for item in items if item is not moved], shifts)
    result.append(replace(moved, position=new_pos))
    return sorted(result, key=lambda item: item.position)


def insert_item(items: Sequence[ItemT], item: ItemT, position: int) -> list[ItemT]:
    """Insert ``item`` at ``position`` (clamped), opening a slot for it."""
    slot = clamp_position(position, len(items))
    shifts = _shifts_for(items, open_slot_range(slot))
    result = apply_shifts(items, shifts)
    result.append(replace(item, position=slot))
    return sorted(result, key=lambda entry: entry.position)


def remove_item(items: Sequence[ItemT], item_id: Hashable) -> list[ItemT]:
    """Remove ``item_id`` and close the gap it leaves. Unknown ids are a no-op."""
    removed = next((item for item in items if item.id == item_id), None)
    if removed is None:
        return list(items)
    survivors = [item for item in items if item is not removed]
    shifts = compute_delete_shift(survivors, removed.position)
    return apply_shifts(survivors, shifts)


def move_between(
    source: Sequence[ItemT],
    dest: Sequence[ItemT],
    item_id: Hashable,
    new_pos: int,
) -> tuple[list[ItemT], list[ItemT], ItemT]:
    """Move ``item_id`` from ``source`` into ``dest`` at ``new_pos``.

    Returns the new source list, the new destination list and the moved item
    (with its updated position).
    """
    moved = next((item for item in source if item.id == item_id), None)
    if moved is None:
        msg = f"item {item_id!r} is not in the source collection"
        raise ValueError(msg)
    survivors = [item for item in source if item is not moved]
    plan = compute_cross_parent_move(survivors, dest, moved.position, new_pos)
    placed = replace(moved, position=plan.position)
    new_dest = apply_shifts(dest, plan.dest_shifts)
    new_dest.append(placed)
    return (
        apply_shifts(survivors, plan.source_shifts),
        sorted(new_dest, key=lambda item: item.position),
        placed,
    )
