"""Optimistic local mutations reconciled against server results and broadcasts.

Local mutations follow one protocol: snapshot the board, apply the change with
the same position arithmetic the server uses, await the server, then adopt the
server's version. On failure the snapshot is restored, `last_error` records
the server detail, and the error propagates to the caller.

Remote events are authoritative patches. Creation events are ignored when the
entity is already present (our own optimistic write echoed back); update,
move and delete events always apply, and sibling positions are renumbered so
the local view stays dense.
"""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING, Any, Protocol
from uuid import uuid4

from taskboard.client.api import BoardApiError
from taskboard.client.state import LocalBoard, LocalList, LocalTask
from taskboard.core.logging import get_logger
from taskboard.services.ordering.sequencer import (
    clamp_position,
    insert_item,
    move_between,
    remove_item,
    renumber,
    reorder_items,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterable, Awaitable, Callable

    from taskboard.client.events import RemoteEvent

logger = get_logger(__name__)
TEMP_ID_PREFIX = "temp-"
RECENT_ACTIVITY_LIMIT = 50


class BoardApi(Protocol):
    """Server operations the sync layer depends on."""

    async def create_list(self, board_id: str, title: str) -> dict[str, Any]: ...

    async def update_list(
        self,
        list_id: str,
        *,
        title: str | None = None,
        position: int | None = None,
    ) -> dict[str, Any]: ...

    async def delete_list(self, list_id: str) -> dict[str, Any]: ...

    async def create_task(
        self,
        list_id: str,
        title: str,
        *,
        description: str | None = None,
        due_date: str | None = None,
    ) -> dict[str, Any]: ...

    async def update_task(self, task_id: str, **fields: Any) -> dict[str, Any]: ...

    async def move_task(self, task_id: str, list_id: str, position: int) -> dict[str, Any]: ...

    async def delete_task(self, task_id: str) -> dict[str, Any]: ...

    async def assign_task(self, task_id: str, user_id: str) -> dict[str, Any]: ...

    async def unassign_task(self, task_id: str, user_id: str) -> dict[str, Any]: ...


def temp_id() -> str:
    return f"{TEMP_ID_PREFIX}{uuid4().hex}"


class BoardSync:
    """Keeps one `LocalBoard` consistent with the server."""

    def __init__(self, board: LocalBoard, api: BoardApi) -> None:
        self.board = board
        self.api = api
        self.last_error: BoardApiError | None = None
        self.needs_refresh = False
        self.recent_activity: list[dict[str, Any]] = []

    async def _optimistic(
        self,
        apply_local: Callable[[], None],
        call_server: Callable[[], Awaitable[dict[str, Any]]],
    ) -> dict[str, Any]:
        snapshot = self.board.snapshot()
        apply_local()
        try:
            result = await call_server()
        except BoardApiError as exc:
            self.board.restore(snapshot)
            self.last_error = exc
            logger.warning(
                "client.mutation.rolled_back",
                extra={"status_code": exc.status_code, "detail": exc.detail},
            )
            raise
        self.last_error = None
        return result

    # -- list placement -----------------------------------------------------

    def _remove_list(self, list_id: str) -> None:
        self.board.lists = remove_item(self.board.lists, list_id)

    def _place_list(self, board_list: LocalList) -> None:
        """Insert or move `board_list` to its own position, renumbering siblings."""
        self._remove_list(board_list.id)
        self.board.lists = insert_item(self.board.lists, board_list, board_list.position)

    def _list_from_server(self, payload: dict[str, Any], *, keep_tasks: bool) -> LocalList:
        incoming = LocalList.from_payload(payload)
        existing = self.board.find_list(incoming.id)
        if keep_tasks and existing is not None and "tasks" not in payload:
            incoming = replace(incoming, tasks=existing.tasks)
        return incoming

    # -- task placement -----------------------------------------------------

    def _set_tasks(self, list_id: str, tasks: list[LocalTask]) -> None:
        self.board.lists = [
            replace(item, tasks=tasks) if item.id == list_id else item for item in self.board.lists
        ]

    def _remove_task(self, task_id: str) -> None:
        found = self.board.find_task(task_id)
        if found is None:
            return
        board_list, _task = found
        self._set_tasks(board_list.id, remove_item(board_list.tasks, task_id))

    def _place_task(self, task: LocalTask) -> None:
        """Insert or move `task` to its own list and position."""
        self._remove_task(task.id)
        dest = self.board.find_list(task.list_id)
        if dest is None:
            self.needs_refresh = True
            return
        self._set_tasks(dest.id, insert_item(dest.tasks, task, task.position))

    # -- local list mutations ----------------------------------------------

    async def create_list(self, title: str) -> LocalList:
        placeholder = LocalList(
            id=temp_id(),
            board_id=self.board.id,
            title=title,
            position=len(self.board.lists),
            pending=True,
        )

        def apply_local() -> None:
            self.board.lists = insert_item(self.board.lists, placeholder, placeholder.position)

        result = await self._optimistic(
            apply_local,
            lambda: self.api.create_list(self.board.id, title),
        )
        created = LocalList.from_payload(result)
        self._remove_list(placeholder.id)
        if self.board.find_list(created.id) is None:
            self._place_list(created)
        return self.board.find_list(created.id) or created

    async def rename_list(self, list_id: str, title: str) -> LocalList:
        def apply_local() -> None:
            self.board.lists = [
                replace(item, title=title) if item.id == list_id else item
                for item in self.board.lists
            ]

        result = await self._optimistic(
            apply_local,
            lambda: self.api.update_list(list_id, title=title),
        )
        self._place_list(self._list_from_server(result, keep_tasks=True))
        return self.board.find_list(list_id) or LocalList.from_payload(result)

    async def move_list(self, list_id: str, position: int) -> LocalList:
        def apply_local() -> None:
            if self.board.find_list(list_id) is None:
                return
            target = clamp_position(position, len(self.board.lists) - 1)
            self.board.lists = reorder_items(self.board.lists, list_id, target)

        result = await self._optimistic(
            apply_local,
            lambda: self.api.update_list(list_id, position=position),
        )
        self._place_list(self._list_from_server(result, keep_tasks=True))
        return self.board.find_list(list_id) or LocalList.from_payload(result)

    async def delete_list(self, list_id: str) -> None:
        await self._optimistic(
            lambda: self._remove_list(list_id),
            lambda: self.api.delete_list(list_id),
        )

    # -- local task mutations ----------------------------------------------

    async def create_task(
        self,
        list_id: str,
        title: str,
        *,
        description: str | None = None,
    ) -> LocalTask:
        board_list = self.board.find_list(list_id)
        placeholder = LocalTask(
            id=temp_id(),
            list_id=list_id,
            title=title,
            position=len(board_list.tasks) if board_list is not None else 0,
            description=description,
            pending=True,
        )

        result = await self._optimistic(
            lambda: self._place_task(placeholder),
            lambda: self.api.create_task(list_id, title, description=description),
        )
        created = LocalTask.from_payload(result)
        self._remove_task(placeholder.id)
        if self.board.find_task(created.id) is None:
            self._place_task(created)
        found = self.board.find_task(created.id)
        return found[1] if found is not None else created

    async def update_task(self, task_id: str, **fields: Any) -> LocalTask:
        def apply_local() -> None:
            found = self.board.find_task(task_id)
            if found is None:
                return
            board_list, task = found
            local_fields = {key: value for key, value in fields.items() if hasattr(task, key)}
            self._set_tasks(
                board_list.id,
                [replace(item, **local_fields) if item.id == task_id else item for item in board_list.tasks],
            )

        result = await self._optimistic(
            apply_local,
            lambda: self.api.update_task(task_id, **fields),
        )
        return self._adopt_task(result)

    async def move_task(self, task_id: str, list_id: str, position: int) -> LocalTask:
        def apply_local() -> None:
            found = self.board.find_task(task_id)
            dest = self.board.find_list(list_id)
            if found is None or dest is None:
                return
            source, _task = found
            if source.id == dest.id:
                target = clamp_position(position, len(source.tasks) - 1)
                self._set_tasks(source.id, reorder_items(source.tasks, task_id, target))
                return
            target = clamp_position(position, len(dest.tasks))
            new_source, new_dest, placed = move_between(source.tasks, dest.tasks, task_id, target)
            new_dest = [replace(item, list_id=dest.id) if item.id == placed.id else item for item in new_dest]
            self._set_tasks(source.id, new_source)
            self._set_tasks(dest.id, new_dest)

        result = await self._optimistic(
            apply_local,
            lambda: self.api.move_task(task_id, list_id, position),
        )
        return self._adopt_task(result)

    async def delete_task(self, task_id: str) -> None:
        await self._optimistic(
            lambda: self._remove_task(task_id),
            lambda: self.api.delete_task(task_id),
        )

    async def assign_task(self, task_id: str, user_id: str) -> LocalTask:
        def apply_local() -> None:
            found = self.board.find_task(task_id)
            user = self.board.find_member_user(user_id)
            if found is None or user is None:
                return
            board_list, task = found
            if any(assignee.id == user_id for assignee in task.assignees):
                return
            updated = replace(task, assignees=[*task.assignees, user])
            self._set_tasks(
                board_list.id,
                [updated if item.id == task_id else item for item in board_list.tasks],
            )

        result = await self._optimistic(
            apply_local,
            lambda: self.api.assign_task(task_id, user_id),
        )
        return self._adopt_task(result)

    async def unassign_task(self, task_id: str, user_id: str) -> LocalTask:
        def apply_local() -> None:
            found = self.board.find_task(task_id)
            if found is None:
                return
            board_list, task = found
            updated = replace(
                task,
                assignees=[assignee for assignee in task.assignees if assignee.id != user_id],
            )
            self._set_tasks(
                board_list.id,
                [updated if item.id == task_id else item for item in board_list.tasks],
            )

        result = await self._optimistic(
            apply_local,
            lambda: self.api.unassign_task(task_id, user_id),
        )
        return self._adopt_task(result)

    def _adopt_task(self, payload: dict[str, Any]) -> LocalTask:
        task = LocalTask.from_payload(payload)
        self._place_task(task)
        found = self.board.find_task(task.id)
        return found[1] if found is not None else task

    # -- remote events ------------------------------------------------------

    def apply_event(self, event: str, payload: Any) -> None:
        """Merge one broadcast into the local board."""
        if not isinstance(payload, dict):
            logger.warning("client.event.invalid_payload", extra={"event": event})
            return
        if event == "list:created":
            incoming = LocalList.from_payload(payload)
            if self.board.find_list(incoming.id) is None:
                self._place_list(incoming)
        elif event == "list:updated":
            self._place_list(self._list_from_server(payload, keep_tasks=True))
        elif event == "list:deleted":
            self._remove_list(str(payload["list_id"]))
        elif event == "task:created":
            incoming_task = LocalTask.from_payload(payload)
            if self.board.find_task(incoming_task.id) is None:
                self._place_task(incoming_task)
        elif event in {"task:updated", "task:moved"}:
            self._place_task(LocalTask.from_payload(payload))
        elif event == "task:deleted":
            self._remove_task(str(payload["task_id"]))
        elif event == "board:updated":
            self.board.title = str(payload.get("title", self.board.title))
            self.board.description = payload.get("description", self.board.description)
        elif event == "board:deleted":
            self.board.clear()
        elif event in {"member:added", "member:updated", "member:removed", "stream:reset"}:
            self.needs_refresh = True
        elif event == "activity:created":
            self.recent_activity = [payload, *self.recent_activity][:RECENT_ACTIVITY_LIMIT]
        else:
            logger.debug("client.event.ignored", extra={"event": event})
            return
        self._renumber_all()

    def _renumber_all(self) -> None:
        self.board.lists = [
            replace(item, tasks=renumber(item.tasks)) for item in renumber(self.board.lists)
        ]

    async def listen(self, events: AsyncIterable[RemoteEvent]) -> None:
        """Apply events until the stream ends or the board is deleted."""
        async for remote in events:
            self.apply_event(remote.event, remote.data)
            if self.board.deleted:
                break
