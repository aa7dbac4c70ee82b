"""Task mutations: create, edit, move within/between lists, delete, assignment.

Every position change runs inside `TASK_STORE.serialized(...)`, which locks the
affected list(s), reads sibling counts under that lock, applies the range
shifts and the task update, and commits them as one transaction.
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

from sqlalchemy import delete
from sqlmodel import col, select

from taskboard.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationFailedError
from taskboard.core.logging import get_logger
from taskboard.core.time import as_naive_utc, utcnow
from taskboard.db.transactions import atomic
from taskboard.models.task_assignees import TaskAssignee
from taskboard.models.tasks import Task
from taskboard.models.users import User
from taskboard.schemas.activity import (
    ActivityCreate,
    TaskAssignedDetails,
    TaskCreatedDetails,
    TaskDeletedDetails,
    TaskMovedDetails,
    TaskUnassignedDetails,
    TaskUpdatedDetails,
)
from taskboard.schemas.tasks import TaskDeleted, TaskRead
from taskboard.schemas.users import UserSummary
from taskboard.services.access import (
    get_list_or_404,
    get_membership,
    get_task_or_404,
    require_membership,
)
from taskboard.services.activity import ActivityLogger
from taskboard.services.ordering.sequencer import (
    clamp_position,
    close_gap_range,
    compute_insert_position,
    open_slot_range,
    reorder_range,
)
from taskboard.services.ordering.store import TASK_STORE, OrderedCollectionStore
from taskboard.services.realtime import TASK_CREATED, TASK_DELETED, TASK_MOVED, TASK_UPDATED

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from sqlmodel.ext.asyncio.session import AsyncSession

    from taskboard.models.lists import BoardList
    from taskboard.schemas.activity import ActivityDetails
    from taskboard.schemas.tasks import TaskCreate, TaskMove, TaskUpdate
    from taskboard.services.realtime import Broadcaster

logger = get_logger(__name__)
ENTITY_TYPE = "Task"


async def assignees_by_task(
    session: AsyncSession,
    task_ids: Sequence[UUID],
) -> dict[UUID, list[UserSummary]]:
    """Assigned users for each task id, in assignment order."""
    if not task_ids:
        return {}
    statement = (
        select(TaskAssignee, User)
        .join(User, col(User.id) == col(TaskAssignee.user_id))
        .where(col(TaskAssignee.task_id).in_(list(task_ids)))
        .order_by(col(TaskAssignee.created_at).asc())
    )
    grouped: dict[UUID, list[UserSummary]] = defaultdict(list)
    for assignment, user in await session.exec(statement):
        grouped[assignment.task_id].append(UserSummary.model_validate(user, from_attributes=True))
    return grouped


def task_to_read(
    task: Task,
    *,
    board_id: UUID,
    assignees: Sequence[UserSummary] = (),
) -> TaskRead:
    return TaskRead(**task.model_dump(), board_id=board_id, assignees=list(assignees))


async def read_tasks(session: AsyncSession, tasks: Sequence[Task], *, board_id: UUID) -> list[TaskRead]:
    assignees = await assignees_by_task(session, [task.id for task in tasks])
    return [
        task_to_read(task, board_id=board_id, assignees=assignees.get(task.id, ()))
        for task in tasks
    ]


async def read_task(session: AsyncSession, task: Task, *, board_id: UUID) -> TaskRead:
    return (await read_tasks(session, [task], board_id=board_id))[0]


class TaskMutationService:
    """Task operations on behalf of one authenticated actor per call."""

    def __init__(
        self,
        session: AsyncSession,
        broadcaster: Broadcaster,
        activity: ActivityLogger | None = None,
        *,
        store: OrderedCollectionStore[Task] = TASK_STORE,
    ) -> None:
        self.session = session
        self.broadcaster = broadcaster
        self.activity = activity or ActivityLogger(session, broadcaster)
        self.store = store

    async def _load(self, task_id: UUID, actor: User) -> tuple[Task, BoardList]:
        task = await get_task_or_404(self.session, task_id)
        board_list = await get_list_or_404(self.session, task.list_id)
        await require_membership(self.session, board_list.board_id, actor.id)
        return task, board_list

    async def _log(self, task: Task, board_id: UUID, actor: User, details: ActivityDetails) -> None:
        await self.activity.log(
            ActivityCreate(
                board_id=board_id,
                user_id=actor.id,
                entity_type=ENTITY_TYPE,
                entity_id=task.id,
                details=details,
            ),
        )

    async def get_task(self, task_id: UUID, actor: User) -> TaskRead:
        task, board_list = await self._load(task_id, actor)
        return await read_task(self.session, task, board_id=board_list.board_id)

    async def create_task(self, payload: TaskCreate, actor: User) -> TaskRead:
        """Append a new task to the end of `payload.list_id`."""
        board_list = await get_list_or_404(self.session, payload.list_id)
        await require_membership(self.session, board_list.board_id, actor.id)

        async with self.store.serialized(self.session, board_list.id):
            current_max = await self.store.max_position(self.session, board_list.id)
            task = Task(
                list_id=board_list.id,
                title=payload.title,
                description=payload.description,
                due_date=as_naive_utc(payload.due_date),
                position=compute_insert_position(current_max),
                created_by_user_id=actor.id,
            )
            self.session.add(task)

        logger.info(
            "task.created",
            extra={"task_id": str(task.id), "list_id": str(board_list.id), "position": task.position},
        )
        read = task_to_read(task, board_id=board_list.board_id)
        self.broadcaster.emit_to_board(board_list.board_id, TASK_CREATED, read)
        await self._log(
            task,
            board_list.board_id,
            actor,
            TaskCreatedDetails(title=task.title, list_title=board_list.title),
        )
        return read

    async def update_task(self, task_id: UUID, payload: TaskUpdate, actor: User) -> TaskRead:
        """Edit title, description or due date. Position is untouched."""
        task, board_list = await self._load(task_id, actor)
        changes = payload.model_dump(exclude_unset=True)
        if changes.get("title", "") is None:
            changes.pop("title")
        if "due_date" in changes:
            changes["due_date"] = as_naive_utc(changes["due_date"])

        async with atomic(self.session):
            for field, value in changes.items():
                setattr(task, field, value)
            task.updated_at = utcnow()
            self.session.add(task)

        read = await read_task(self.session, task, board_id=board_list.board_id)
        self.broadcaster.emit_to_board(board_list.board_id, TASK_UPDATED, read)
        await self._log(
            task,
            board_list.board_id,
            actor,
            TaskUpdatedDetails(title=task.title, changed_fields=sorted(changes)),
        )
        return read

    async def move_task(self, task_id: UUID, payload: TaskMove, actor: User) -> TaskRead:
        """Reorder within a list or move to another list of the same board.

        Within one list a position past the last slot is rejected; into
        another list it clamps to the append slot.
        """
        task, source = await self._load(task_id, actor)
        board_id = source.board_id
        if payload.list_id == source.id:
            dest = source
        else:
            dest = await get_list_or_404(self.session, payload.list_id)
        if dest.board_id != board_id:
            raise ValidationFailedError("Cannot move task to a different board")

        async with self.store.serialized(self.session, source.id, dest.id):
            task = await get_task_or_404(self.session, task.id, fresh=True)
            if task.list_id != source.id:
                raise ConflictError("Task was moved concurrently; reload and retry")
            if dest.id != source.id:
                await get_list_or_404(self.session, dest.id, fresh=True)
            old_position = task.position
            if dest.id == source.id:
                others = await self.store.count(self.session, source.id, exclude_id=task.id)
                if payload.position > others:
                    raise ValidationFailedError(f"Position must be between 0 and {others}")
                position = payload.position
                await self.store.shift(
                    self.session,
                    source.id,
                    reorder_range(old_position, position),
                    exclude_id=task.id,
                )
            else:
                position = clamp_position(
                    payload.position,
                    await self.store.count(self.session, dest.id),
                )
                await self.store.shift(
                    self.session,
                    source.id,
                    close_gap_range(old_position),
                    exclude_id=task.id,
                )
                await self.store.shift(self.session, dest.id, open_slot_range(position))
                task.list_id = dest.id
            task.position = position
            task.updated_at = utcnow()
            self.session.add(task)

        logger.info(
            "task.moved",
            extra={
                "task_id": str(task.id),
                "from_list_id": str(source.id),
                "to_list_id": str(dest.id),
                "from_position": old_position,
                "to_position": position,
            },
        )
        read = await read_task(self.session, task, board_id=board_id)
        self.broadcaster.emit_to_board(board_id, TASK_MOVED, read)
        await self._log(
            task,
            board_id,
            actor,
            TaskMovedDetails(
                title=task.title,
                from_list=source.title,
                to_list=dest.title,
                new_position=position,
            ),
        )
        return read

    async def delete_task(self, task_id: UUID, actor: User) -> TaskDeleted:
        """Delete a task with its assignments and close the gap it leaves."""
        task, board_list = await self._load(task_id, actor)

        async with self.store.serialized(self.session, board_list.id):
            task = await get_task_or_404(self.session, task.id, fresh=True)
            if task.list_id != board_list.id:
                raise ConflictError("Task was moved concurrently; reload and retry")
            await self.session.exec(  # type: ignore[call-overload]
                delete(TaskAssignee).where(col(TaskAssignee.task_id) == task.id),
            )
            await self.session.delete(task)
            await self.session.flush()
            await self.store.shift(self.session, board_list.id, close_gap_range(task.position))

        logger.info(
            "task.deleted",
            extra={"task_id": str(task.id), "list_id": str(board_list.id)},
        )
        result = TaskDeleted(task_id=task.id, list_id=board_list.id, board_id=board_list.board_id)
        self.broadcaster.emit_to_board(board_list.board_id, TASK_DELETED, result)
        await self._log(task, board_list.board_id, actor, TaskDeletedDetails(title=task.title))
        return result

    async def assign_task(self, task_id: UUID, user_id: UUID, actor: User) -> TaskRead:
        """Assign a board member to a task."""
        task, board_list = await self._load(task_id, actor)
        if await get_membership(self.session, board_list.board_id, user_id) is None:
            raise ForbiddenError("User is not a member of this board")
        existing = await TaskAssignee.objects.filter_by(task_id=task.id, user_id=user_id).first(
            self.session,
        )
        if existing is not None:
            raise ConflictError("User is already assigned to this task")
        assignee = await User.objects.by_id(user_id).first(self.session)
        if assignee is None:
            raise NotFoundError("User not found")

        async with atomic(self.session):
            self.session.add(TaskAssignee(task_id=task.id, user_id=user_id))
            task.updated_at = utcnow()
            self.session.add(task)

        read = await read_task(self.session, task, board_id=board_list.board_id)
        self.broadcaster.emit_to_board(board_list.board_id, TASK_UPDATED, read)
        await self._log(
            task,
            board_list.board_id,
            actor,
            TaskAssignedDetails(
                title=task.title,
                assigned_user=assignee.name,
                assigned_user_id=assignee.id,
            ),
        )
        return read

    async def unassign_task(self, task_id: UUID, user_id: UUID, actor: User) -> TaskRead:
        task, board_list = await self._load(task_id, actor)
        assignment = await TaskAssignee.objects.filter_by(task_id=task.id, user_id=user_id).first(
            self.session,
        )
        if assignment is None:
            raise NotFoundError("User is not assigned to this task")
        removed = await User.objects.by_id(user_id).first(self.session)

        async with atomic(self.session):
            await self.session.delete(assignment)
            task.updated_at = utcnow()
            self.session.add(task)

        read = await read_task(self.session, task, board_id=board_list.board_id)
        self.broadcaster.emit_to_board(board_list.board_id, TASK_UPDATED, read)
        await self._log(
            task,
            board_list.board_id,
            actor,
            TaskUnassignedDetails(
                title=task.title,
                unassigned_user=removed.name if removed is not None else "",
                unassigned_user_id=user_id,
            ),
        )
        return read
