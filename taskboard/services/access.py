"""Board membership checks and load-or-404 helpers shared by the services."""

from __future__ import annotations

from typing import TYPE_CHECKING

from taskboard.core.errors import ForbiddenError, NotFoundError
from taskboard.models.board_members import BoardMember
from taskboard.models.boards import Board
from taskboard.models.lists import BoardList
from taskboard.models.tasks import Task

if TYPE_CHECKING:
    from uuid import UUID

    from sqlmodel.ext.asyncio.session import AsyncSession


async def get_membership(
    session: AsyncSession,
    board_id: UUID,
    user_id: UUID,
) -> BoardMember | None:
    return await BoardMember.objects.filter_by(board_id=board_id, user_id=user_id).first(session)


async def is_member(session: AsyncSession, board_id: UUID, user_id: UUID) -> bool:
    return await get_membership(session, board_id, user_id) is not None


async def require_membership(
    session: AsyncSession,
    board_id: UUID,
    user_id: UUID,
) -> BoardMember:
    """Return the caller's membership or raise `ForbiddenError`."""
    member = await get_membership(session, board_id, user_id)
    if member is None:
        raise ForbiddenError
    return member


async def require_admin(session: AsyncSession, board_id: UUID, user_id: UUID) -> BoardMember:
    """Return the caller's membership when it carries the ADMIN role."""
    member = await require_membership(session, board_id, user_id)
    if not member.is_admin:
        raise ForbiddenError("Admin access required")
    return member


async def get_board_or_404(session: AsyncSession, board_id: UUID) -> Board:
    board = await Board.objects.by_id(board_id).first(session)
    if board is None:
        raise NotFoundError("Board not found")
    return board


async def get_list_or_404(
    session: AsyncSession,
    list_id: UUID,
    *,
    fresh: bool = False,
) -> BoardList:
    """Load a list; `fresh` re-reads a row this session already holds."""
    query = BoardList.objects.by_id(list_id)
    board_list = await (query.fresh() if fresh else query).first(session)
    if board_list is None:
        raise NotFoundError("List not found")
    return board_list


async def get_task_or_404(session: AsyncSession, task_id: UUID, *, fresh: bool = False) -> Task:
    query = Task.objects.by_id(task_id)
    task = await (query.fresh() if fresh else query).first(session)
    if task is None:
        raise NotFoundError("Task not found")
    return task
