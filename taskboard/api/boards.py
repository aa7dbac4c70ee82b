"""Board CRUD and membership endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from fastapi import APIRouter, Query, status

from taskboard.api.deps import BOARD_SERVICE_DEP, SESSION_DEP, USER_DEP
from taskboard.db.pagination import paginate
from taskboard.models.users import User
from taskboard.schemas.board_members import MemberAdd, MemberRead, MemberRoleUpdate
from taskboard.schemas.boards import BoardCreate, BoardDetailRead, BoardRead, BoardUpdate
from taskboard.schemas.common import OkResponse
from taskboard.schemas.pagination import DefaultLimitOffsetPage
from taskboard.services.boards import (
    BoardService,
    board_rows_to_read,
    boards_for_user_statement,
)

if TYPE_CHECKING:
    from fastapi_pagination.limit_offset import LimitOffsetPage
    from sqlmodel.ext.asyncio.session import AsyncSession

router = APIRouter(prefix="/boards", tags=["boards"])
SEARCH_QUERY = Query(default=None, max_length=200, description="Case-insensitive title filter.")


@router.get("", response_model=DefaultLimitOffsetPage[BoardRead])
async def list_boards(
    search: str | None = SEARCH_QUERY,
    session: AsyncSession = SESSION_DEP,
    user: User = USER_DEP,
) -> LimitOffsetPage[BoardRead]:
    """List boards the caller belongs to, most recently updated first."""
    statement = boards_for_user_statement(user, search=search)
    return await paginate(session, statement, transformer=board_rows_to_read)


@router.post("", response_model=BoardRead, status_code=status.HTTP_201_CREATED)
async def create_board(
    payload: BoardCreate,
    service: BoardService = BOARD_SERVICE_DEP,
    user: User = USER_DEP,
) -> BoardRead:
    """Create a board owned by the caller."""
    return await service.create_board(payload, user)


@router.get("/{board_id}", response_model=BoardDetailRead)
async def get_board(
    board_id: UUID,
    service: BoardService = BOARD_SERVICE_DEP,
    user: User = USER_DEP,
) -> BoardDetailRead:
    """Return the full board: members, ordered lists and ordered tasks."""
    return await service.get_board_detail(board_id, user)


@router.patch("/{board_id}", response_model=BoardRead)
async def update_board(
    board_id: UUID,
    payload: BoardUpdate,
    service: BoardService = BOARD_SERVICE_DEP,
    user: User = USER_DEP,
) -> BoardRead:
    return await service.update_board(board_id, payload, user)


@router.delete("/{board_id}", response_model=OkResponse)
async def delete_board(
    board_id: UUID,
    service: BoardService = BOARD_SERVICE_DEP,
    user: User = USER_DEP,
) -> OkResponse:
    """Delete a board with all of its lists, tasks, members and history."""
    await service.delete_board(board_id, user)
    return OkResponse()


@router.post(
    "/{board_id}/members",
    response_model=MemberRead,
    status_code=status.HTTP_201_CREATED,
)
async def add_member(
    board_id: UUID,
    payload: MemberAdd,
    service: BoardService = BOARD_SERVICE_DEP,
    user: User = USER_DEP,
) -> MemberRead:
    """Add an existing user to the board by email (admins only)."""
    return await service.add_member(board_id, payload, user)


@router.patch("/{board_id}/members/{user_id}", response_model=MemberRead)
async def update_member_role(
    board_id: UUID,
    user_id: UUID,
    payload: MemberRoleUpdate,
    service: BoardService = BOARD_SERVICE_DEP,
    user: User = USER_DEP,
) -> MemberRead:
    return await service.update_member_role(board_id, user_id, payload, user)


@router.delete("/{board_id}/members/{user_id}", response_model=OkResponse)
async def remove_member(
    board_id: UUID,
    user_id: UUID,
    service: BoardService = BOARD_SERVICE_DEP,
    user: User = USER_DEP,
) -> OkResponse:
    """Remove a member; their assignments on this board are dropped too."""
    await service.remove_member(board_id, user_id, user)
    return OkResponse()
