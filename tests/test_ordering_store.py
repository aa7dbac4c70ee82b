# ruff: noqa: INP001
"""Bulk position updates and the serialized mutation scope."""

from __future__ import annotations

from uuid import uuid4

import pytest
from conftest import make_user
from sqlmodel import col, select

from taskboard.core.errors import ConflictError
from taskboard.models.boards import Board
from taskboard.models.lists import BoardList
from taskboard.services.ordering.sequencer import ShiftRange
from taskboard.services.ordering.store import LIST_STORE, ParentLocks


async def _board_with_lists(session, titles: list[str]) -> Board:
    owner = await make_user(session, "Owner")
    board = Board(title="Roadmap", created_by_user_id=owner.id)
    session.add(board)
    await session.flush()
    for index, title in enumerate(titles):
        session.add(BoardList(board_id=board.id, title=title, position=index))
    await session.commit()
    return board


async def _positions(session, board_id) -> dict[str, int]:
    rows = await session.exec(
        select(BoardList.title, BoardList.position).where(col(BoardList.board_id) == board_id),
    )
    return dict(rows.all())


@pytest.mark.asyncio
async def test_max_position_and_count(session) -> None:
    board = await _board_with_lists(session, ["a", "b", "c"])

    assert await LIST_STORE.max_position(session, board.id) == 2
    assert await LIST_STORE.count(session, board.id) == 3
    assert await LIST_STORE.max_position(session, uuid4()) is None
    assert await LIST_STORE.count(session, uuid4()) == 0


@pytest.mark.asyncio
async def test_count_excludes_given_id(session) -> None:
    board = await _board_with_lists(session, ["a", "b"])
    first = (await LIST_STORE.siblings(session, board.id))[0]

    assert await LIST_STORE.count(session, board.id, exclude_id=first.id) == 1


@pytest.mark.asyncio
async def test_shift_applies_bounded_range(session) -> None:
    board = await _board_with_lists(session, ["a", "b", "c", "d"])

    async with LIST_STORE.serialized(session, board.id):
        await LIST_STORE.shift(session, board.id, ShiftRange(lower=1, upper=2, delta=10))

    assert await _positions(session, board.id) == {"a": 0, "b": 11, "c": 12, "d": 3}


@pytest.mark.asyncio
async def test_shift_open_range_and_exclusion(session) -> None:
    board = await _board_with_lists(session, ["a", "b", "c"])
    siblings = await LIST_STORE.siblings(session, board.id)

    async with LIST_STORE.serialized(session, board.id):
        await LIST_STORE.shift(
            session,
            board.id,
            ShiftRange(lower=0, upper=None, delta=5),
            exclude_id=siblings[1].id,
        )

    assert await _positions(session, board.id) == {"a": 5, "b": 1, "c": 7}


@pytest.mark.asyncio
async def test_shift_with_no_range_is_noop(session) -> None:
    board = await _board_with_lists(session, ["a"])

    await LIST_STORE.shift(session, board.id, None)

    assert await _positions(session, board.id) == {"a": 0}


@pytest.mark.asyncio
async def test_serialized_rolls_back_everything_on_error(session) -> None:
    board = await _board_with_lists(session, ["a", "b"])
    board_id = board.id

    with pytest.raises(RuntimeError):
        async with LIST_STORE.serialized(session, board_id):
            await LIST_STORE.shift(session, board_id, ShiftRange(lower=0, upper=None, delta=3))
            raise RuntimeError("boom")

    assert await _positions(session, board_id) == {"a": 0, "b": 1}


@pytest.mark.asyncio
async def test_serialized_maps_integrity_errors_to_conflict(session) -> None:
    board = await _board_with_lists(session, ["a"])
    board_id = board.id

    with pytest.raises(ConflictError):
        async with LIST_STORE.serialized(session, board_id):
            session.add(BoardList(board_id=uuid4(), title="orphan", position=0))

    assert await _positions(session, board_id) == {"a": 0}


def test_parent_locks_are_shared_per_key() -> None:
    locks = ParentLocks()
    parent_id = uuid4()

    first = locks.get("lists", parent_id)

    assert locks.get("lists", parent_id) is first
    assert locks.get("tasks", parent_id) is not first
    assert locks.get("lists", uuid4()) is not first
