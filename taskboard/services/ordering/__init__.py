"""Dense sibling ordering: pure position arithmetic plus its SQL store."""

from taskboard.services.ordering.sequencer import (
    CrossParentMove,
    PositionShift,
    ShiftRange,
    compute_cross_parent_move,
    compute_delete_shift,
    compute_insert_position,
    compute_reorder,
    is_dense,
)
from taskboard.services.ordering.store import LIST_STORE, TASK_STORE, OrderedCollectionStore

__all__ = [
    "LIST_STORE",
    "TASK_STORE",
    "CrossParentMove",
    "OrderedCollectionStore",
    "PositionShift",
    "ShiftRange",
    "compute_cross_parent_move",
    "compute_delete_shift",
    "compute_insert_position",
    "compute_reorder",
    "is_dense",
]
