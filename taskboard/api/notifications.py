"""Notification inbox endpoints for the current user."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from fastapi import APIRouter, Query

from taskboard.api.deps import SESSION_DEP, USER_DEP
from taskboard.db.pagination import paginate
from taskboard.models.users import User
from taskboard.schemas.common import OkResponse
from taskboard.schemas.notifications import NotificationCount, NotificationRead
from taskboard.schemas.pagination import DefaultLimitOffsetPage
from taskboard.services.notifications import (
    delete_notification,
    mark_all_read,
    mark_read,
    notifications_for_user_statement,
)

if TYPE_CHECKING:
    from fastapi_pagination.limit_offset import LimitOffsetPage
    from sqlmodel.ext.asyncio.session import AsyncSession

router = APIRouter(prefix="/notifications", tags=["notifications"])
UNREAD_QUERY = Query(default=False)


@router.get("", response_model=DefaultLimitOffsetPage[NotificationRead])
async def list_notifications(
    unread: bool = UNREAD_QUERY,
    session: AsyncSession = SESSION_DEP,
    user: User = USER_DEP,
) -> LimitOffsetPage[NotificationRead]:
    """Newest-first notifications addressed to the caller."""
    return await paginate(session, notifications_for_user_statement(user.id, unread_only=unread))


@router.post("/read-all", response_model=NotificationCount)
async def read_all_notifications(
    session: AsyncSession = SESSION_DEP,
    user: User = USER_DEP,
) -> NotificationCount:
    return NotificationCount(updated=await mark_all_read(session, user.id))


@router.post("/{notification_id}/read", response_model=NotificationRead)
async def read_notification(
    notification_id: UUID,
    session: AsyncSession = SESSION_DEP,
    user: User = USER_DEP,
) -> NotificationRead:
    notification = await mark_read(session, notification_id, user.id)
    return NotificationRead.model_validate(notification, from_attributes=True)


@router.delete("/{notification_id}", response_model=OkResponse)
async def remove_notification(
    notification_id: UUID,
    session: AsyncSession = SESSION_DEP,
    user: User = USER_DEP,
) -> OkResponse:
    await delete_notification(session, notification_id, user.id)
    return OkResponse()
