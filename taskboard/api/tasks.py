"""Task endpoints: CRUD, moves between positions and lists, assignment."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, status

from taskboard.api.deps import TASK_SERVICE_DEP, USER_DEP
from taskboard.models.users import User
from taskboard.schemas.tasks import (
    TaskAssign,
    TaskCreate,
    TaskDeleted,
    TaskMove,
    TaskRead,
    TaskUpdate,
)
from taskboard.services.tasks import TaskMutationService

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.post("", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
async def create_task(
    payload: TaskCreate,
    service: TaskMutationService = TASK_SERVICE_DEP,
    user: User = USER_DEP,
) -> TaskRead:
    """Append a task to the end of a list."""
    return await service.create_task(payload, user)


@router.get("/{task_id}", response_model=TaskRead)
async def get_task(
    task_id: UUID,
    service: TaskMutationService = TASK_SERVICE_DEP,
    user: User = USER_DEP,
) -> TaskRead:
    return await service.get_task(task_id, user)


@router.patch("/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: UUID,
    payload: TaskUpdate,
    service: TaskMutationService = TASK_SERVICE_DEP,
    user: User = USER_DEP,
) -> TaskRead:
    """Edit task content. Use the move endpoint to change position or list."""
    return await service.update_task(task_id, payload, user)


@router.put("/{task_id}/move", response_model=TaskRead)
async def move_task(
    task_id: UUID,
    payload: TaskMove,
    service: TaskMutationService = TASK_SERVICE_DEP,
    user: User = USER_DEP,
) -> TaskRead:
    """Move a task within its list or to another list on the same board."""
    return await service.move_task(task_id, payload, user)


@router.delete("/{task_id}", response_model=TaskDeleted)
async def delete_task(
    task_id: UUID,
    service: TaskMutationService = TASK_SERVICE_DEP,
    user: User = USER_DEP,
) -> TaskDeleted:
    return await service.delete_task(task_id, user)


@router.post("/{task_id}/assignees", response_model=TaskRead)
async def assign_task(
    task_id: UUID,
    payload: TaskAssign,
    service: TaskMutationService = TASK_SERVICE_DEP,
    user: User = USER_DEP,
) -> TaskRead:
    """Assign a board member to the task."""
    return await service.assign_task(task_id, payload.user_id, user)


@router.delete("/{task_id}/assignees/{user_id}", response_model=TaskRead)
async def unassign_task(
    task_id: UUID,
    user_id: UUID,
    service: TaskMutationService = TASK_SERVICE_DEP,
    user: User = USER_DEP,
) -> TaskRead:
    return await service.unassign_task(task_id, user_id, user)
