"""List mutations within a board: create, rename/reposition, delete."""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

from sqlalchemy import delete
from sqlmodel import col, select

from taskboard.core.errors import ValidationFailedError
from taskboard.core.logging import get_logger
from taskboard.core.time import utcnow
from taskboard.models.lists import BoardList
from taskboard.models.task_assignees import TaskAssignee
from taskboard.models.tasks import Task
from taskboard.schemas.activity import (
    ActivityCreate,
    ListCreatedDetails,
    ListDeletedDetails,
    ListUpdatedDetails,
)
from taskboard.schemas.lists import ListDeleted, ListRead
from taskboard.services.access import get_board_or_404, get_list_or_404, require_membership
from taskboard.services.activity import ActivityLogger
from taskboard.services.ordering.sequencer import (
    close_gap_range,
    compute_insert_position,
    reorder_range,
)
from taskboard.services.ordering.store import LIST_STORE, OrderedCollectionStore
from taskboard.services.realtime import LIST_CREATED, LIST_DELETED, LIST_UPDATED
from taskboard.services.tasks import read_tasks

if TYPE_CHECKING:
    from uuid import UUID

    from sqlmodel.ext.asyncio.session import AsyncSession

    from taskboard.models.users import User
    from taskboard.schemas.lists import ListUpdate
    from taskboard.schemas.tasks import TaskRead
    from taskboard.services.realtime import Broadcaster

logger = get_logger(__name__)
ENTITY_TYPE = "List"


def list_to_read(board_list: BoardList, tasks: list[TaskRead] | None = None) -> ListRead:
    return ListRead(**board_list.model_dump(), tasks=tasks or [])


async def read_lists(session: AsyncSession, board_id: UUID) -> list[ListRead]:
    """Every list of a board in position order, each with its ordered tasks."""
    lists = await BoardList.objects.filter_by(board_id=board_id).order_by(
        col(BoardList.position).asc(),
    ).all(session)
    if not lists:
        return []
    tasks = list(
        await session.exec(
            select(Task)
            .where(col(Task.list_id).in_([board_list.id for board_list in lists]))
            .order_by(col(Task.list_id), col(Task.position).asc()),
        ),
    )
    by_list: dict[UUID, list[TaskRead]] = defaultdict(list)
    for read in await read_tasks(session, tasks, board_id=board_id):
        by_list[read.list_id].append(read)
    return [list_to_read(board_list, by_list.get(board_list.id, [])) for board_list in lists]


async def read_list(session: AsyncSession, board_list: BoardList) -> ListRead:
    tasks = await Task.objects.filter_by(list_id=board_list.id).order_by(
        col(Task.position).asc(),
    ).all(session)
    return list_to_read(
        board_list,
        await read_tasks(session, tasks, board_id=board_list.board_id),
    )


async def delete_tasks_of_lists(session: AsyncSession, list_ids: list[UUID]) -> None:
    """Delete tasks (and their assignments) belonging to `list_ids`."""
    if not list_ids:
        return
    task_ids = select(Task.id).where(col(Task.list_id).in_(list_ids))
    await session.exec(  # type: ignore[call-overload]
        delete(TaskAssignee).where(col(TaskAssignee.task_id).in_(task_ids)),
    )
    await session.exec(  # type: ignore[call-overload]
        delete(Task).where(col(Task.list_id).in_(list_ids)),
    )


class ListMutationService:
    """Board-level list operations on behalf of one actor per call."""

    def __init__(
        self,
        session: AsyncSession,
        broadcaster: Broadcaster,
        activity: ActivityLogger | None = None,
        *,
        store: OrderedCollectionStore[BoardList] = LIST_STORE,
    ) -> None:
        self.session = session
        self.broadcaster = broadcaster
        self.activity = activity or ActivityLogger(session, broadcaster)
        self.store = store

    async def _load(self, list_id: UUID, actor: User) -> BoardList:
        board_list = await get_list_or_404(self.session, list_id)
        await require_membership(self.session, board_list.board_id, actor.id)
        return board_list

    async def get_list(self, list_id: UUID, actor: User) -> ListRead:
        board_list = await self._load(list_id, actor)
        return await read_list(self.session, board_list)

    async def create_list(self, board_id: UUID, title: str, actor: User) -> ListRead:
        """Append a list after the board's current last list."""
        board = await get_board_or_404(self.session, board_id)
        await require_membership(self.session, board.id, actor.id)

        async with self.store.serialized(self.session, board.id):
            current_max = await self.store.max_position(self.session, board.id)
            board_list = BoardList(
                board_id=board.id,
                title=title,
                position=compute_insert_position(current_max),
            )
            self.session.add(board_list)

        logger.info(
            "list.created",
            extra={
                "list_id": str(board_list.id),
                "board_id": str(board.id),
                "position": board_list.position,
            },
        )
        read = list_to_read(board_list)
        self.broadcaster.emit_to_board(board.id, LIST_CREATED, read)
        await self.activity.log(
            ActivityCreate(
                board_id=board.id,
                user_id=actor.id,
                entity_type=ENTITY_TYPE,
                entity_id=board_list.id,
                details=ListCreatedDetails(title=board_list.title),
            ),
        )
        return read

    async def update_list(self, list_id: UUID, payload: ListUpdate, actor: User) -> ListRead:
        """Rename and/or move a list; a move shifts the siblings in between.

        A position past the last slot is rejected with `ValidationFailedError`.
        """
        board_list = await self._load(list_id, actor)
        board_id = board_list.board_id

        async with self.store.serialized(self.session, board_id):
            board_list = await get_list_or_404(self.session, board_list.id, fresh=True)
            previous_position = board_list.position
            if payload.title is not None:
                board_list.title = payload.title
            if payload.position is not None:
                others = await self.store.count(self.session, board_id, exclude_id=board_list.id)
                if payload.position > others:
                    raise ValidationFailedError(f"Position must be between 0 and {others}")
                position = payload.position
                await self.store.shift(
                    self.session,
                    board_id,
                    reorder_range(previous_position, position),
                    exclude_id=board_list.id,
                )
                board_list.position = position
            board_list.updated_at = utcnow()
            self.session.add(board_list)

        logger.info(
            "list.updated",
            extra={
                "list_id": str(board_list.id),
                "board_id": str(board_id),
                "from_position": previous_position,
                "to_position": board_list.position,
            },
        )
        read = await read_list(self.session, board_list)
        self.broadcaster.emit_to_board(board_id, LIST_UPDATED, read)
        await self.activity.log(
            ActivityCreate(
                board_id=board_id,
                user_id=actor.id,
                entity_type=ENTITY_TYPE,
                entity_id=board_list.id,
                details=ListUpdatedDetails(
                    title=board_list.title,
                    position=board_list.position if payload.position is not None else None,
                    previous_position=previous_position if payload.position is not None else None,
                ),
            ),
        )
        return read

    async def delete_list(self, list_id: UUID, actor: User) -> ListDeleted:
        """Delete a list with its tasks and renumber the remaining lists."""
        board_list = await self._load(list_id, actor)
        board_id = board_list.board_id

        async with self.store.serialized(self.session, board_id):
            board_list = await get_list_or_404(self.session, board_list.id, fresh=True)
            await delete_tasks_of_lists(self.session, [board_list.id])
            await self.session.delete(board_list)
            await self.session.flush()
            await self.store.shift(self.session, board_id, close_gap_range(board_list.position))

        logger.info(
            "list.deleted",
            extra={"list_id": str(board_list.id), "board_id": str(board_id)},
        )
        result = ListDeleted(list_id=board_list.id, board_id=board_id)
        self.broadcaster.emit_to_board(board_id, LIST_DELETED, result)
        await self.activity.log(
            ActivityCreate(
                board_id=board_id,
                user_id=actor.id,
                entity_type=ENTITY_TYPE,
                entity_id=board_list.id,
                details=ListDeletedDetails(title=board_list.title),
            ),
        )
        return result
