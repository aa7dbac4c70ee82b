# ruff: noqa: INP001
"""Board rooms: join/leave bookkeeping and fan-out of emitted events."""

from __future__ import annotations

from types import SimpleNamespace
from uuid import uuid4

import pytest

from taskboard.schemas.tasks import TaskDeleted
from taskboard.services.realtime import (
    TASK_DELETED,
    BoardBroadcaster,
    NullBroadcaster,
    SubscriptionOverflowError,
    get_broadcaster,
)


@pytest.mark.asyncio
async def test_emit_reaches_only_the_boards_subscribers() -> None:
    broadcaster = BoardBroadcaster(queue_size=8)
    board_a, board_b = uuid4(), uuid4()
    first = broadcaster.join(board_a)
    second = broadcaster.join(board_a)
    elsewhere = broadcaster.join(board_b)

    delivered = broadcaster.emit_to_board(board_a, "list:created", {"id": "l1"})

    assert delivered == 2
    for subscription in (first, second):
        event = await subscription.next_event()
        assert event.event == "list:created"
        assert event.payload == {"id": "l1"}
        assert event.board_id == board_a
    assert elsewhere.queue.empty()


@pytest.mark.asyncio
async def test_emit_encodes_models_to_json_ready_payloads() -> None:
    broadcaster = BoardBroadcaster(queue_size=4)
    board_id = uuid4()
    subscription = broadcaster.join(board_id)
    deleted = TaskDeleted(task_id=uuid4(), list_id=uuid4(), board_id=board_id)

    broadcaster.emit_to_board(board_id, TASK_DELETED, deleted)

    event = await subscription.next_event()
    assert event.payload == {
        "task_id": str(deleted.task_id),
        "list_id": str(deleted.list_id),
        "board_id": str(board_id),
    }


def test_emit_without_subscribers_is_a_noop() -> None:
    assert BoardBroadcaster(queue_size=1).emit_to_board(uuid4(), "task:created", {}) == 0


def test_join_and_leave_are_idempotent() -> None:
    broadcaster = BoardBroadcaster(queue_size=1)
    board_id = uuid4()
    subscription = broadcaster.join(board_id)

    broadcaster.add(subscription)
    assert broadcaster.subscriber_count(board_id) == 1

    broadcaster.leave(subscription)
    broadcaster.leave(subscription)
    assert broadcaster.subscriber_count(board_id) == 0


@pytest.mark.asyncio
async def test_overflowed_subscriber_drains_then_ends() -> None:
    broadcaster = BoardBroadcaster(queue_size=1)
    board_id = uuid4()
    slow = broadcaster.join(board_id)
    broadcaster.emit_to_board(board_id, "task:created", {"n": 1})
    fresh = broadcaster.join(board_id)

    delivered = broadcaster.emit_to_board(board_id, "task:created", {"n": 2})

    assert delivered == 1
    assert slow.overflowed
    assert not fresh.overflowed
    assert broadcaster.subscriber_count(board_id) == 1
    assert fresh.queue.get_nowait().payload == {"n": 2}

    assert (await slow.next_event()).payload == {"n": 1}
    with pytest.raises(SubscriptionOverflowError):
        await slow.next_event()
    assert broadcaster.emit_to_board(board_id, "task:created", {"n": 3}) == 1
    assert slow.queue.empty()


@pytest.mark.asyncio
async def test_subscribe_context_leaves_on_exit() -> None:
    broadcaster = BoardBroadcaster(queue_size=2)
    board_id = uuid4()

    async with broadcaster.subscribe(board_id):
        assert broadcaster.subscriber_count(board_id) == 1
    assert broadcaster.subscriber_count(board_id) == 0


def test_get_broadcaster_falls_back_to_null() -> None:
    installed = BoardBroadcaster(queue_size=1)
    with_state = SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace(broadcaster=installed)))
    without_state = SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace()))

    assert get_broadcaster(with_state) is installed
    assert isinstance(get_broadcaster(without_state), NullBroadcaster)
