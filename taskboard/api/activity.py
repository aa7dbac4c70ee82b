"""Board activity history endpoint."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from fastapi import APIRouter

from taskboard.api.deps import SESSION_DEP, USER_DEP
from taskboard.db.pagination import paginate
from taskboard.models.users import User
from taskboard.schemas.activity import ActivityRead
from taskboard.schemas.pagination import DefaultLimitOffsetPage
from taskboard.services.access import get_board_or_404, require_membership
from taskboard.services.activity import activity_rows_to_read, board_activities_statement

if TYPE_CHECKING:
    from fastapi_pagination.limit_offset import LimitOffsetPage
    from sqlmodel.ext.asyncio.session import AsyncSession

router = APIRouter(prefix="/boards", tags=["activity"])


@router.get("/{board_id}/activities", response_model=DefaultLimitOffsetPage[ActivityRead])
async def list_board_activities(
    board_id: UUID,
    session: AsyncSession = SESSION_DEP,
    user: User = USER_DEP,
) -> LimitOffsetPage[ActivityRead]:
    """Newest-first activity for a board the caller belongs to."""
    board = await get_board_or_404(session, board_id)
    await require_membership(session, board.id, user.id)
    return await paginate(
        session,
        board_activities_statement(board.id),
        transformer=activity_rows_to_read,
    )
