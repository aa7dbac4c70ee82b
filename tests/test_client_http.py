# ruff: noqa: INP001
"""The HTTP board client and the sync layer driven against the real application."""

from __future__ import annotations

import asyncio
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from taskboard.client.api import BoardApiClient, BoardApiError
from taskboard.client.state import LocalBoard
from taskboard.client.sync import BoardSync
from taskboard.core.auth import USER_EMAIL_HEADER, USER_ID_HEADER, USER_NAME_HEADER
from taskboard.core.config import settings
from taskboard.db.session import get_session
from taskboard.main import app
from taskboard.services.realtime import BoardBroadcaster


def _headers(name: str) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {settings.local_auth_token}",
        USER_ID_HEADER: f"idp|{name.lower()}",
        USER_EMAIL_HEADER: f"{name.lower()}@example.com",
        USER_NAME_HEADER: name,
    }


@pytest_asyncio.fixture
async def http_client(session_maker):
    async def _override_get_session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_session] = _override_get_session
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://testserver",
            headers=_headers("Ada"),
        ) as client:
            yield client
    finally:
        app.dependency_overrides.clear()


async def _new_board(http_client: AsyncClient) -> tuple[BoardApiClient, str]:
    created = await http_client.post("/api/v1/boards", json={"title": "Launch"})
    assert created.status_code == 201
    return BoardApiClient(http_client), created.json()["id"]


def _shape(board: LocalBoard) -> list[tuple[str, int, list[tuple[str, int]]]]:
    return [
        (item.id, item.position, [(task.id, task.position) for task in item.tasks])
        for item in board.lists
    ]


@pytest.mark.asyncio
async def test_sync_mutations_match_server_state(http_client: AsyncClient) -> None:
    api, board_id = await _new_board(http_client)
    sync = BoardSync(LocalBoard.from_payload(await api.get_board(board_id)), api)

    todo = await sync.create_list("Todo")
    done = await sync.create_list("Done")
    first = await sync.create_task(todo.id, "Draft")
    second = await sync.create_task(todo.id, "Review")
    third = await sync.create_task(todo.id, "Publish")
    await sync.move_task(first.id, done.id, 0)
    await sync.move_task(third.id, todo.id, 0)
    await sync.delete_task(second.id)

    server = LocalBoard.from_payload(await api.get_board(board_id))
    assert _shape(sync.board) == _shape(server)
    assert _shape(server) == [
        (todo.id, 0, [(third.id, 0)]),
        (done.id, 1, [(first.id, 0)]),
    ]
    assert not any(item.pending for item in sync.board.lists)


@pytest.mark.asyncio
async def test_delete_responses_carry_identifiers(http_client: AsyncClient) -> None:
    api, board_id = await _new_board(http_client)
    board_list = await api.create_list(board_id, "Todo")
    task = await api.create_task(board_list["id"], "Draft")

    assert await api.delete_task(task["id"]) == {
        "task_id": task["id"],
        "list_id": board_list["id"],
        "board_id": board_id,
    }
    assert await api.delete_list(board_list["id"]) == {
        "list_id": board_list["id"],
        "board_id": board_id,
    }


@pytest.mark.asyncio
async def test_server_errors_map_to_status_detail_and_code(http_client: AsyncClient) -> None:
    api, board_id = await _new_board(http_client)

    with pytest.raises(BoardApiError) as missing:
        await api.delete_task(str(uuid4()))
    assert (missing.value.status_code, missing.value.code) == (404, "not_found")
    assert missing.value.detail == "Task not found"

    with pytest.raises(BoardApiError) as invalid:
        await api.update_list(str(uuid4()), position=-1)
    assert invalid.value.status_code == 422
    assert isinstance(invalid.value.detail, list)

    board_list = await api.create_list(board_id, "Todo")
    with pytest.raises(BoardApiError) as past_end:
        await api.update_list(board_list["id"], position=1)
    assert (past_end.value.status_code, past_end.value.code) == (400, "validation_error")

    outsider = BoardApiClient(
        AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://testserver",
            headers=_headers("Mallory"),
        ),
    )
    with pytest.raises(BoardApiError) as forbidden:
        await outsider.create_list(board_id, "Sneaky")
    await outsider.aclose()
    assert (forbidden.value.status_code, forbidden.value.code) == (403, "forbidden")


@pytest.mark.asyncio
async def test_failed_server_call_restores_local_board(http_client: AsyncClient) -> None:
    api, board_id = await _new_board(http_client)
    sync = BoardSync(LocalBoard.from_payload(await api.get_board(board_id)), api)
    todo = await sync.create_list("Todo")
    await api.delete_list(todo.id)

    with pytest.raises(BoardApiError):
        await sync.rename_list(todo.id, "Doing")

    assert [(item.id, item.title) for item in sync.board.lists] == [(todo.id, "Todo")]
    assert sync.last_error is not None
    assert sync.last_error.status_code == 404


@pytest.mark.asyncio
async def test_event_stream_delivers_then_resets_on_overflow(http_client: AsyncClient) -> None:
    api, board_id = await _new_board(http_client)
    broadcaster = BoardBroadcaster(queue_size=1)
    app.state.broadcaster = broadcaster
    sync = BoardSync(LocalBoard.from_payload(await api.get_board(board_id)), api)
    try:
        listening = asyncio.create_task(sync.listen(api.stream_events(board_id)))
        for _ in range(200):
            if broadcaster.subscriber_count(UUID(board_id)):
                break
            await asyncio.sleep(0.01)
        assert broadcaster.subscriber_count(UUID(board_id)) == 1

        pushed = {"id": "l-remote", "board_id": board_id, "title": "Remote", "position": 0}
        broadcaster.emit_to_board(UUID(board_id), "list:created", pushed)
        broadcaster.emit_to_board(UUID(board_id), "list:updated", {**pushed, "title": "Lost"})
        await asyncio.wait_for(listening, timeout=5)
    finally:
        del app.state.broadcaster

    assert [(item.id, item.title) for item in sync.board.lists] == [("l-remote", "Remote")]
    assert sync.needs_refresh
    assert broadcaster.subscriber_count(UUID(board_id)) == 0
