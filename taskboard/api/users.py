"""Current-user profile endpoints and member lookup."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Query
from sqlalchemy import func, or_
from sqlmodel import col

from taskboard.api.deps import SESSION_DEP, USER_DEP
from taskboard.core.time import utcnow
from taskboard.db.transactions import atomic
from taskboard.models.users import User
from taskboard.schemas.users import UserRead, UserSummary, UserUpdate

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

router = APIRouter(prefix="/users", tags=["users"])
SEARCH_QUERY = Query(min_length=2, max_length=100)
SEARCH_LIMIT = 10


@router.get("/me", response_model=UserRead)
async def get_me(user: User = USER_DEP) -> UserRead:
    """Return the caller's synced profile."""
    return UserRead.model_validate(user, from_attributes=True)


@router.patch("/me", response_model=UserRead)
async def update_me(
    payload: UserUpdate,
    session: AsyncSession = SESSION_DEP,
    user: User = USER_DEP,
) -> UserRead:
    """Update the caller's display name or avatar."""
    updates = payload.model_dump(exclude_unset=True, exclude_none=True)
    if updates:
        async with atomic(session):
            for field, value in updates.items():
                setattr(user, field, value)
            user.updated_at = utcnow()
            session.add(user)
    return UserRead.model_validate(user, from_attributes=True)


@router.get("/search", response_model=list[UserSummary])
async def search_users(
    q: str = SEARCH_QUERY,
    session: AsyncSession = SESSION_DEP,
    _user: User = USER_DEP,
) -> list[UserSummary]:
    """Find users by name or email prefix, e.g. to invite them to a board."""
    term = q.strip().lower()
    users = await (
        User.objects.filter(
            or_(
                func.lower(col(User.email)).startswith(term, autoescape=True),
                func.lower(col(User.name)).contains(term, autoescape=True),
            ),
        )
        .order_by(col(User.name).asc())
        .limit(SEARCH_LIMIT)
        .all(session)
    )
    return [UserSummary.model_validate(found, from_attributes=True) for found in users]
